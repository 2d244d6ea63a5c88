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
"""Tests for acstorbench.results."""

import datetime
import os
import unittest
from unittest import mock

from acstorbench import errors
from acstorbench import results
from acstorbench import sample
from tests import acstorbench_common_test_case


class FilenameTest(unittest.TestCase):

  def testFormatTimestamp(self):
    self.assertEqual(
        results.FormatTimestamp(datetime.datetime(2025, 6, 10, 9, 5, 3)),
        '20250610-090503')

  def testFilenameIsDeterministic(self):
    name = results.ResultLogFilename('acstor-fio', 'iops', '20250610-090503')
    self.assertEqual(name, 'acstor-fio-iops-20250610-090503.log.txt')
    self.assertEqual(
        name, results.ResultLogFilename('acstor-fio', 'iops',
                                        '20250610-090503'))

  def testLabelIsSlugified(self):
    self.assertEqual(
        results.ResultLogFilename('acstor-pgbench',
                                  'premium2-disk-sc Read/Write', '1'),
        'acstor-pgbench-premium2-disk-sc-read-write-1.log.txt')

  def testSlugify(self):
    self.assertEqual(results.Slugify('  Read Only (SELECT)  '),
                     'read-only-select')


class ResultLogTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def _MakeLog(self):
    return results.ResultLog(
        tool=results.FIO_TOOL,
        label='iops',
        timestamp='20250610-090503',
        summary_lines=('read: IOPS=412k, BW=1609MiB/s',),
        samples=(sample.Sample('read_iops', 412000, 'IOPS'),),
        metadata=(('mode', 'iops'), ('block_size', '4k')))

  def testRender(self):
    self.assertEqual(self._MakeLog().Render(), '\n'.join([
        '# acstor-fio: iops',
        '# timestamp: 20250610-090503',
        '# mode: iops',
        '# block_size: 4k',
        '',
        'read_iops: 412000 IOPS',
        '',
        'read: IOPS=412k, BW=1609MiB/s',
    ]) + '\n')

  def testWrite(self):
    path = self._MakeLog().Write()
    self.assertEqual(
        path,
        os.path.join(self.tmp_dir, 'acstor-fio-iops-20250610-090503.log.txt'))
    with open(path) as log_file:
      self.assertIn('read: IOPS=412k', log_file.read())

  def testWriteNeverOverwrites(self):
    result_log = self._MakeLog()
    first = result_log.Write()
    second = result_log.Write()
    third = result_log.Write()
    self.assertEqual(
        [os.path.basename(p) for p in (first, second, third)],
        ['acstor-fio-iops-20250610-090503.log.txt',
         'acstor-fio-iops-20250610-090503-1.log.txt',
         'acstor-fio-iops-20250610-090503-2.log.txt'])
    with open(second) as log_file:
      self.assertIn('read: IOPS=412k', log_file.read())

  def testWriteGivesUpAfterManyDuplicates(self):
    result_log = self._MakeLog()
    self.enter_context(mock.patch.object(results, '_MAX_NAME_ATTEMPTS', 2))
    result_log.Write()
    result_log.Write()
    with self.assertRaises(errors.Benchmarks.RunError):
      result_log.Write()

  def testWriteCreatesDirectory(self):
    results_dir = os.path.join(self.tmp_dir, 'nested', 'results')
    path = self._MakeLog().Write(results_dir)
    self.assertTrue(os.path.exists(path))


if __name__ == '__main__':
  unittest.main()
