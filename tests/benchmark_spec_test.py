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
"""Tests for acstorbench.benchmark_spec."""

import unittest

from absl.testing import parameterized
from acstorbench import benchmark_spec
from acstorbench import errors
from acstorbench import storage


class ForModeTest(parameterized.TestCase):

  @parameterized.named_parameters(
      ('Iops', 'iops', '4k', 'local'),
      ('Bandwidth', 'bandwidth', '128k', 'local'),
      ('Pgsql', 'pgsql', '', 'local'),
      ('PgsqlAzureDisk', 'pgsql-azure-disk', '', 'premium2-disk-sc'),
  )
  def testModes(self, mode, block_size, storage_class):
    spec = benchmark_spec.ForMode(mode)
    self.assertEqual(spec.block_size, block_size)
    self.assertEqual(spec.storage_class, storage_class)

  def testCleanupHasNoBackend(self):
    spec = benchmark_spec.ForMode('cleanup')
    self.assertIsNone(spec.backend)
    self.assertIsNone(spec.storage_class)
    self.assertFalse(spec.is_fio)
    self.assertFalse(spec.is_pgbench)

  def testOverrides(self):
    spec = benchmark_spec.ForMode('pgsql', duration=30, clients=4, scale=10,
                                  warmup=0)
    self.assertEqual((spec.duration, spec.clients, spec.scale, spec.warmup),
                     (30, 4, 10, 0))
    self.assertEqual(spec.backend, storage.StorageBackend.EPHEMERAL_NVME)
    self.assertTrue(spec.is_pgbench)

  def testUnknownMode(self):
    with self.assertRaises(errors.Config.InvalidValue):
      benchmark_spec.ForMode('latency')

  def testNonPositiveDuration(self):
    with self.assertRaises(errors.Config.InvalidValue):
      benchmark_spec.ForMode('iops', duration=0)


if __name__ == '__main__':
  unittest.main()
