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
"""Module containing the fio pod, command line and output parsing functions."""

import logging
import re

from absl import flags

from acstorbench import errors
from acstorbench import kubectl
from acstorbench import manifests
from acstorbench import regex_util
from acstorbench import resource
from acstorbench import sample

flags.DEFINE_integer('fio_runtime', 60,
                     'Seconds of the timed part of each fio run.',
                     lower_bound=1)
flags.DEFINE_integer('fio_ramp_time', 15,
                     'Seconds fio runs before it starts measuring.',
                     lower_bound=0)
flags.DEFINE_string('fio_size', '800m', 'Size of the fio test file.')
flags.DEFINE_integer('fio_iodepth', 32, 'Queue depth of each fio job.',
                     lower_bound=1)
flags.DEFINE_integer('fio_numjobs', 16, 'Number of fio jobs.', lower_bound=1)
flags.DEFINE_string('fio_ioengine', 'io_uring', 'fio I/O engine.')
flags.DEFINE_string('fio_rw', 'randread', 'fio I/O pattern.')
flags.DEFINE_string('fio_image', 'openeuler/fio',
                    'Container image of the fio pod.')

FLAGS = flags.FLAGS

FIO_JOB_NAME = 'benchtest'
FIO_POD_NAME = 'fiopod'
TEST_FILE = '/volume/test'

# Lines worth keeping from fio's human readable output: the IOPS/BW line of
# each direction, the run status group totals, slat/clat/lat statistics and
# the percentiles header.
SUMMARY_LINE_REGEX = r'IOPS=|BW=|bw=|\b[cs]?lat\b|percentiles'

_IOPS_REGEX = r'IOPS=(%s)([kM]?)' % regex_util.FLOAT_REGEX
_BW_REGEX = r'BW=(%s)(B|KiB|MiB|GiB)/s' % regex_util.FLOAT_REGEX
_CLAT_REGEX = (r'^\s*clat \((nsec|usec|msec)\):.*?avg=\s*(%s)' %
               regex_util.FLOAT_REGEX)

_IOPS_MULTIPLIERS = {'': 1, 'k': 1e3, 'M': 1e6}
_BW_TO_MIB = {'B': 1.0 / 2**20, 'KiB': 1.0 / 1024, 'MiB': 1.0, 'GiB': 1024.0}
_TO_USEC = {'nsec': 1e-3, 'usec': 1.0, 'msec': 1e3}


def FioCommand(block_size, runtime=None, ramp_time=None, rw=None,
               ioengine=None, iodepth=None, numjobs=None, size=None,
               group_reporting=True):
  """Returns the fio command line; unset arguments come from the flags.

  A ramp_time of 0 leaves --ramp_time out.
  """
  ramp_time = FLAGS.fio_ramp_time if ramp_time is None else ramp_time
  cmd = [
      'fio',
      '--name=%s' % FIO_JOB_NAME,
      '--size=%s' % (size or FLAGS.fio_size),
      '--filename=%s' % TEST_FILE,
      '--direct=1',
      '--rw=%s' % (rw or FLAGS.fio_rw),
      '--ioengine=%s' % (ioengine or FLAGS.fio_ioengine),
      '--iodepth=%d' % (iodepth or FLAGS.fio_iodepth),
      '--numjobs=%d' % (numjobs or FLAGS.fio_numjobs),
      '--time_based',
      '--runtime=%d' % (runtime or FLAGS.fio_runtime),
  ]
  if group_reporting:
    cmd.append('--group_reporting')
  if ramp_time:
    cmd.append('--ramp_time=%d' % ramp_time)
  cmd.append('--bs=%s' % block_size)
  return cmd


def ExtractSummaryLines(output):
  return regex_util.ExtractMatchingLines(SUMMARY_LINE_REGEX, output)


def ParseFioOutput(output, metadata=None):
  """Creates samples from fio's human readable output.

  One IOPS, bandwidth and completion latency sample is created per data
  direction (read, write) found in the output.

  Args:
    output: stdout of fio.
    metadata: dict added to every sample.

  Returns:
    A list of sample.Sample.
  """
  metadata = metadata or {}
  samples = []
  for direction, block in _SplitDirections(output):
    sample_metadata = dict(metadata, direction=direction)
    try:
      value, suffix = regex_util.ExtractAllMatches(_IOPS_REGEX, block)[0]
      samples.append(sample.Sample(
          '%s_iops' % direction, float(value) * _IOPS_MULTIPLIERS[suffix],
          'IOPS', sample_metadata))
    except regex_util.NoMatchError:
      pass
    try:
      value, unit = regex_util.ExtractAllMatches(_BW_REGEX, block)[0]
      samples.append(sample.Sample(
          '%s_bandwidth' % direction, float(value) * _BW_TO_MIB[unit],
          'MiB/s', sample_metadata))
    except regex_util.NoMatchError:
      pass
    try:
      unit, value = regex_util.ExtractAllMatches(_CLAT_REGEX, block,
                                                 flags=re.MULTILINE)[0]
      samples.append(sample.Sample(
          '%s_clat_avg' % direction, float(value) * _TO_USEC[unit], 'usec',
          sample_metadata))
    except regex_util.NoMatchError:
      pass
  return samples


def _SplitDirections(output):
  """Yields (direction, text) for each 'read:'/'write:' section of output."""
  matches = list(re.finditer(r'^\s*(read|write|trim):', output, re.MULTILINE))
  for i, match in enumerate(matches):
    end = matches[i + 1].start() if i + 1 < len(matches) else len(output)
    yield match.group(1), output[match.start():end]


class FioPod(resource.BaseResource):
  """A pod with fio and an ephemeral volume on the benchmarked storage.

  Creating the pod first removes any pod with the same name and waits until
  it is gone, so at most one fio pod exists per run.
  """

  def __init__(self, spec: manifests.FioPodSpec,
               manifest_filename='fio-pod.yaml'):
    super().__init__()
    self.spec = spec
    self.manifest_filename = manifest_filename

  def __repr__(self):
    return 'FioPod(%s)' % self.spec.name

  @property
  def resource_name(self):
    return 'pod/%s' % self.spec.name

  def _CreateDependencies(self):
    kubectl.DeleteAndWait(self.resource_name)

  def _Create(self):
    kubectl.ApplyManifest([self.spec], self.manifest_filename)

  def _WaitUntilReady(self):
    logging.info('Waiting for pod to be ready...')
    self.ready = kubectl.WaitForResource(self.resource_name, 'Ready',
                                         timeout=self.READY_TIMEOUT)

  def RunFio(self, fio_cmd, timeout):
    """Runs fio in the pod and returns its stdout.

    Raises:
      errors.Benchmarks.RunError: if fio failed or printed nothing.
    """
    logging.info('Running fio: %s', ' '.join(fio_cmd))
    try:
      stdout, stderr, retcode = kubectl.Exec(
          self.spec.name, fio_cmd, timeout=timeout, raise_on_failure=False)
    except errors.Command.IssueCommandTimeoutError as e:
      raise errors.Benchmarks.RunError('fio did not finish: %s' % e) from e
    if retcode:
      raise errors.Benchmarks.RunError(
          'fio exited with %s: %s' % (retcode, stderr.strip()))
    if not stdout.strip():
      raise errors.Benchmarks.RunError('fio produced no output.')
    return stdout
