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
"""Timestamped result logs of benchmark sub-tests.

A result log is built in memory once the tool output has been parsed and is
written exactly once. Its file name depends only on the tool, the label and
the timestamp: <tool>-<slug(label)>-<timestamp>.log.txt.
"""

import dataclasses
import datetime
import logging
import os
import re
from typing import Optional, Sequence

from acstorbench import errors
from acstorbench import flags
from acstorbench import sample

FLAGS = flags.FLAGS

TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S'
LOG_SUFFIX = '.log.txt'
# Same-named logs tried before giving up.
_MAX_NAME_ATTEMPTS = 100

FIO_TOOL = 'acstor-fio'
PGBENCH_TOOL = 'acstor-pgbench'


def Slugify(label: str) -> str:
  """Lowercases label and collapses every non alphanumeric run into '-'."""
  return re.sub(r'[^a-z0-9]+', '-', label.lower()).strip('-')


def FormatTimestamp(when: Optional[datetime.datetime] = None) -> str:
  return (when or datetime.datetime.now()).strftime(TIMESTAMP_FORMAT)


def ResultLogFilename(tool: str, label: str, timestamp: str) -> str:
  return '%s-%s-%s%s' % (tool, Slugify(label), timestamp, LOG_SUFFIX)


@dataclasses.dataclass(frozen=True)
class ResultLog:
  """Summary of one completed benchmark sub-test.

  Attributes:
    tool: Tool prefix of the file name, e.g. acstor-fio.
    label: Human readable label, slugified into the file name.
    timestamp: Output of FormatTimestamp.
    summary_lines: Lines extracted from the tool output.
    samples: Parsed metrics.
    metadata: Run parameters recorded in the header.
  """
  tool: str
  label: str
  timestamp: str
  summary_lines: Sequence[str] = ()
  samples: Sequence[sample.Sample] = ()
  metadata: Sequence[tuple] = ()

  @property
  def filename(self) -> str:
    return ResultLogFilename(self.tool, self.label, self.timestamp)

  def Render(self) -> str:
    lines = ['# %s: %s' % (self.tool, self.label),
             '# timestamp: %s' % self.timestamp]
    lines.extend('# %s: %s' % (key, value) for key, value in self.metadata)
    if self.samples:
      lines.append('')
      lines.extend(s.Format() for s in self.samples)
    lines.append('')
    lines.extend(self.summary_lines)
    return '\n'.join(lines) + '\n'

  def Write(self, results_dir: Optional[str] = None) -> str:
    """Writes the log and returns its path.

    An existing log is never overwritten: when two logs share a name, e.g.
    two runs finishing within the same second, the later one gets a numeric
    suffix (<name>-1.log.txt, <name>-2.log.txt, ...).

    Raises:
      errors.Benchmarks.RunError: if no free file name was found.
    """
    results_dir = results_dir or FLAGS.results_dir
    os.makedirs(results_dir, exist_ok=True)
    stem = os.path.join(results_dir, self.filename[:-len(LOG_SUFFIX)])
    for attempt in range(_MAX_NAME_ATTEMPTS):
      path = stem + ('-%d' % attempt if attempt else '') + LOG_SUFFIX
      try:
        with open(path, 'x') as log_file:
          log_file.write(self.Render())
      except FileExistsError:
        continue
      logging.info('Results written to %s', path)
      return path
    raise errors.Benchmarks.RunError(
        'Could not write %s: %d logs with that name already exist.' %
        (self.filename, _MAX_NAME_ATTEMPTS))
