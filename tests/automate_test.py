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
"""Tests for acstorbench.automate."""

import io
import os
import unittest
from unittest import mock

from absl import flags
from acstorbench import automate
from acstorbench import cluster_cleanup
from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import log_util
from tests import acstorbench_common_test_case
from tests import mock_command

FLAGS = flags.FLAGS

_PROVIDER_ID = ('azure:///subscriptions/0000/resourceGroups/mc_rg/providers/'
                'Microsoft.Compute/virtualMachineScaleSets/aks-pool/'
                'virtualMachines/0')


def _ReadTestData(filename):
  path = os.path.join(os.path.dirname(__file__), 'data', filename)
  with open(path) as fp:
    return fp.read()


class AutomateTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def setUp(self):
    super().setUp()
    self.stdout = self.enter_context(
        mock.patch('sys.stdout', new_callable=io.StringIO))
    self.on_path = self.enter_context(
        mock.patch.object(cmd_util, 'ExecutableOnPath', return_value=True))
    self.enter_context(
        mock.patch.object(log_util, 'ConfigureLoggingFromFlags'))

  def _ResultLogs(self):
    return [f for f in os.listdir(self.tmp_dir) if f.endswith('.log.txt')]

  def _MockExistingCluster(self):
    return mock_command.MockIssueCommand({
        'exec fiopod': [(_ReadTestData('fio-randread.txt'), '', 0)],
        'cluster-info': [('running', '', 0)],
        'get sc/local': [('localdisk.csi.acstor.io', '', 0)],
        'get nodes': [(_PROVIDER_ID, '', 0)],
    }, self)

  def testNoModeShowsUsage(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    self.assertEqual(automate.Main(['acstorbench']), 0)
    self.assertIn('Azure Container Storage Test Automation',
                  self.stdout.getvalue())
    self.assertEmpty(mock_cmd.commands)

  def testHelp(self):
    self.assertEqual(automate.Main(['acstorbench', '-h']), 0)
    self.assertIn('--force-new-cluster', self.stdout.getvalue())

  def testUnknownFlag(self):
    self.assertEqual(automate.Main(['acstorbench', '--turbo']), 1)
    self.assertIn('Error:', self.stdout.getvalue())

  def testPositionalArgument(self):
    self.assertEqual(automate.Main(['acstorbench', 'iops']), 1)
    self.assertIn('Unknown argument: iops', self.stdout.getvalue())

  def testMultipleModes(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops', '--pgsql']), 1)
    self.assertIn('Multiple modes specified: iops, pgsql',
                  self.stdout.getvalue())
    self.assertEmpty(mock_cmd.commands)

  def testMissingExecutable(self):
    self.on_path.return_value = False
    mock_cmd = mock_command.MockIssueCommand({}, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 1)
    self.assertEmpty(mock_cmd.commands)

  def testIopsReusesCluster(self):
    mock_cmd = self._MockExistingCluster()
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 0)
    self.assertEmpty(mock_cmd.CommandsContaining('az '))
    [log] = self._ResultLogs()
    self.assertTrue(log.startswith('acstor-fio-iops-'))

  def testIopsProvisionsCluster(self):
    mock_cmd = mock_command.MockIssueCommand({
        'exec fiopod': [(_ReadTestData('fio-randread.txt'), '', 0)],
        'get sc/local': [('', 'storageclasses "local" not found', 1)],
    }, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 0)
    self.assertLen(mock_cmd.CommandsContaining('az account show'), 1)
    self.assertLen(mock_cmd.CommandsContaining('az aks create'), 1)
    self.assertLen(mock_cmd.CommandsContaining('k8s-extension create'), 1)
    self.assertLen(self._ResultLogs(), 1)

  def testForceNewCluster(self):
    mock_cmd = self._MockExistingCluster()
    self.assertEqual(
        automate.Main(['acstorbench', '--bandwidth', '--force-new-cluster']),
        0)
    self.assertEmpty(mock_cmd.CommandsContaining('get sc/local'))
    self.assertLen(mock_cmd.CommandsContaining('az aks create'), 1)
    [log] = self._ResultLogs()
    self.assertTrue(log.startswith('acstor-fio-bandwidth-'))

  def testProvisioningNeedsLogin(self):
    mock_cmd = mock_command.MockIssueCommand({
        'get sc/local': [('', 'storageclasses "local" not found', 1)],
        'account show': [('', 'Please run az login', 1)],
    }, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 1)
    self.assertEmpty(mock_cmd.CommandsContaining('aks create'))
    self.assertEmpty(self._ResultLogs())

  def testProvisioningFailure(self):
    mock_cmd = mock_command.MockIssueCommand({
        'get sc/local': [('', 'storageclasses "local" not found', 1)],
        'aks create': [('', 'QuotaExceeded', 1)],
    }, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 1)
    self.assertEmpty(mock_cmd.CommandsContaining('exec fiopod'))

  def testKubectlUnreachableAfterRetries(self):
    mock_cmd = mock_command.MockIssueCommand({
        'apply -f': [errors.Command.IssueCommandTimeoutError(
            'Unable to connect to the server: dial tcp 10.0.0.1:443')],
        'cluster-info': [('running', '', 0)],
        'get sc/local': [('localdisk.csi.acstor.io', '', 0)],
        'get nodes': [(_PROVIDER_ID, '', 0)],
    }, self)
    with self.assertLogs(level='ERROR') as logs:
      self.assertEqual(
          automate.Main(['acstorbench', '--iops', '--default_timeout=0']), 1)
    self.assertIn('Timed out after 1 tries', logs.output[-1])
    self.assertEmpty(mock_cmd.CommandsContaining('exec fiopod'))
    self.assertEmpty(self._ResultLogs())

  def testBenchmarkFailure(self):
    mock_command.MockIssueCommand({
        'exec fiopod': [('', 'fio: engine io_uring not loadable', 1)],
        'cluster-info': [('running', '', 0)],
        'get sc/local': [('localdisk.csi.acstor.io', '', 0)],
        'get nodes': [(_PROVIDER_ID, '', 0)],
    }, self)
    self.assertEqual(automate.Main(['acstorbench', '--iops']), 1)
    self.assertEmpty(self._ResultLogs())

  def testCleanup(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    with mock.patch.object(cluster_cleanup, 'CleanupCluster') as cleanup:
      self.assertEqual(automate.Main(['acstorbench', '--cleanup']), 0)
    cleanup.assert_called_once_with()
    self.assertEmpty(mock_cmd.CommandsContaining('az '))
    self.assertEqual(self.on_path.call_args_list, [mock.call(FLAGS.kubectl)])


class MakeBenchmarkSpecTest(
    acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testFioRuntime(self):
    FLAGS.fio_runtime = 30
    self.assertEqual(automate.MakeBenchmarkSpec('iops').duration, 30)

  def testPgbenchOverrides(self):
    FLAGS.pgbench_clients = 16
    FLAGS.pgbench_warmup_seconds = 0
    spec = automate.MakeBenchmarkSpec('pgsql')
    self.assertEqual(spec.clients, 16)
    self.assertEqual(spec.warmup, 0)


if __name__ == '__main__':
  unittest.main()
