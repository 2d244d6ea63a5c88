# Copyright 2025 acstorbench Authors. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Module containing pgbench command lines, run and parsing functions.

pgbench is executed inside the primary pod of the database cluster. Its
summary (tps, latency) is printed on stdout while the per interval progress
lines go to stderr.
"""

import collections
import logging
import re

from absl import flags

from acstorbench import errors
from acstorbench import kubectl
from acstorbench import log_util
from acstorbench import regex_util
from acstorbench import sample

flags.DEFINE_integer('pgbench_scale_factor', 1000,
                     'Scale factor used to fill the database.', lower_bound=1)
flags.DEFINE_integer('pgbench_clients', 8,
                     'Number of pgbench clients; the same number of threads '
                     'is used.', lower_bound=1)
flags.DEFINE_integer('pgbench_seconds_per_test', 300,
                     'Number of seconds to run each timed sub-test.',
                     lower_bound=1)
flags.DEFINE_integer('pgbench_warmup_seconds', 120,
                     'Number of seconds of the discarded warm-up run.',
                     lower_bound=0)
flags.DEFINE_integer('pgbench_progress_interval', 10,
                     'Seconds between pgbench progress reports.',
                     lower_bound=1)

FLAGS = flags.FLAGS

DATABASE = 'benchmarkdb'
USER = 'postgres'

# Margin on top of the run duration before kubectl exec is killed.
_EXEC_TIMEOUT_MARGIN = 600

SubTest = collections.namedtuple('SubTest', ['name', 'args'])

MIXED = SubTest('mixed read-write', [])
READ_ONLY = SubTest('read-only', ['-S'])
WRITE_ONLY = SubTest('write-only', ['-N'])
SUB_TESTS = (MIXED, READ_ONLY, WRITE_ONLY)

SUMMARY_LINE_REGEX = (r'^(transaction type|scaling factor|query mode|'
                      r'number of|duration|latency|initial connection time|'
                      r'tps)')
_TPS_REGEX = r'^tps = (%s)' % regex_util.FLOAT_REGEX
_LATENCY_AVERAGE_REGEX = r'^latency average = (%s) ms' % regex_util.FLOAT_REGEX
_LATENCY_STDDEV_REGEX = r'^latency stddev = (%s) ms' % regex_util.FLOAT_REGEX
_PROGRESS_TPS_REGEX = (r'^progress: %s s, (%s) tps' %
                       (regex_util.FLOAT_REGEX, regex_util.FLOAT_REGEX))


def InitCommand(scale_factor):
  return ['pgbench', '-i', '-s', str(scale_factor), '-U', USER, DATABASE]


def RunCommand(clients, seconds, extra_args=(), progress_interval=None):
  cmd = ['pgbench', '-c', str(clients), '-j', str(clients), '-T',
         str(seconds)]
  if progress_interval:
    cmd += ['-P', str(progress_interval)]
  cmd += list(extra_args)
  return cmd + ['-U', USER, DATABASE]


def RunPgbench(pod, cmd, timeout, require_stdout=True):
  """Runs pgbench in the pod.

  Args:
    pod: Name of the pod pgbench runs in.
    cmd: pgbench command line.
    timeout: Seconds before kubectl exec is killed.
    require_stdout: Whether an empty stdout is a failure. pgbench -i reports
      only on stderr.

  Returns:
    stdout and stderr of pgbench.

  Raises:
    errors.Benchmarks.RunError: if pgbench failed or printed nothing.
  """
  logging.info('Running in %s: %s', pod, ' '.join(cmd))
  try:
    stdout, stderr, retcode = kubectl.Exec(pod, cmd, timeout=timeout,
                                           raise_on_failure=False)
  except errors.Command.IssueCommandTimeoutError as e:
    raise errors.Benchmarks.RunError('pgbench did not finish: %s' % e) from e
  if retcode:
    raise errors.Benchmarks.RunError(
        'pgbench exited with %s: %s' % (retcode, stderr.strip()))
  output = stdout if require_stdout else stdout + stderr
  if not output.strip():
    raise errors.Benchmarks.RunError('pgbench produced no output.')
  return stdout, stderr


def Initialize(pod, scale_factor=None):
  scale_factor = scale_factor or FLAGS.pgbench_scale_factor
  logging.info('Initializing pgbench database with scale factor %d...',
               scale_factor)
  # At least an hour; large scale factors get 4 seconds per unit.
  timeout = max(3600, scale_factor * 4)
  return RunPgbench(pod, InitCommand(scale_factor), timeout=timeout,
                    require_stdout=False)


def WarmUp(pod, clients, seconds):
  """Runs pgbench and discards the result."""
  logging.info('Running %d-second warm-up...', seconds)
  RunPgbench(pod, RunCommand(clients, seconds),
             timeout=seconds + _EXEC_TIMEOUT_MARGIN)


def RunSubTest(pod, sub_test, clients, seconds):
  """Runs one timed sub-test; its log lines are labeled with its name."""
  logging.info('=== Running %s test ===', sub_test.name)
  with log_util.GetThreadLogContext().ExtendLabel(sub_test.name):
    return RunPgbench(
        pod,
        RunCommand(clients, seconds, sub_test.args,
                   progress_interval=FLAGS.pgbench_progress_interval),
        timeout=seconds + _EXEC_TIMEOUT_MARGIN)


def ExtractSummaryLines(stdout):
  return regex_util.ExtractMatchingLines(SUMMARY_LINE_REGEX, stdout)


def ParsePgbenchOutput(stdout, stderr, metadata=None):
  """Creates samples from the given pgbench output.

  Args:
    stdout: pgbench summary.
    stderr: pgbench progress lines.
    metadata: dict added to every sample.

  Returns:
    A list of samples: tps, latency average and stddev when reported, and the
    distribution of the per interval tps.

  Raises:
    errors.Benchmarks.RunError: if the output has no tps figure.
  """
  metadata = metadata or {}
  try:
    tps = regex_util.ExtractFloat(_TPS_REGEX, stdout, flags=re.MULTILINE)
  except regex_util.NoMatchError as e:
    raise errors.Benchmarks.RunError(
        'pgbench output has no tps figure.') from e
  samples = [sample.Sample('tps', tps, 'tps', metadata)]
  for metric, regex in (('latency_average', _LATENCY_AVERAGE_REGEX),
                        ('latency_stddev', _LATENCY_STDDEV_REGEX)):
    try:
      value = regex_util.ExtractFloat(regex, stdout, flags=re.MULTILINE)
    except regex_util.NoMatchError:
      continue
    samples.append(sample.Sample(metric, value, 'ms', metadata))

  progress_tps = [float(v) for v in _ProgressTps(stderr or '')]
  if progress_tps:
    percentiles = sample.PercentileCalculator(progress_tps)
    for key in ('p5', 'p50', 'p95', 'stddev'):
      samples.append(sample.Sample('interval_tps_%s' % key, percentiles[key],
                                   'tps', metadata))
  return samples


def _ProgressTps(stderr):
  try:
    return regex_util.ExtractAllMatches(_PROGRESS_TPS_REGEX, stderr,
                                        flags=re.MULTILINE)
  except regex_util.NoMatchError:
    return []
