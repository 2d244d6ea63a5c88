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
"""Tests for acstorbench.kubectl."""

import os
import unittest
from unittest import mock

from absl import flags
from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import kubectl
from acstorbench import manifests
from tests import acstorbench_common_test_case
from tests import mock_command

FLAGS = flags.FLAGS


class KubectlCommandTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testPlain(self):
    self.assertEqual(kubectl.KubectlCommand(['get', 'pods']),
                     ['kubectl', 'get', 'pods'])

  def testKubeconfigAndContext(self):
    FLAGS.kubeconfig = '/tmp/kubeconfig'
    self.assertEqual(
        kubectl.KubectlCommand(['cluster-info'], context='aks-1'),
        ['kubectl', '--kubeconfig', '/tmp/kubeconfig', '--context', 'aks-1',
         'cluster-info'])


class RunKubectlCommandTest(
    acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testRetryableErrorRaisedAsTimeout(self):
    suppress = {}

    def _Capture(cmd, **kwargs):
      del cmd
      suppress['fn'] = kwargs['suppress_failure']
      return '', '', 0

    self.enter_context(
        mock.patch.object(cmd_util, 'IssueCommand',
                                   side_effect=_Capture))
    kubectl.RunKubectlCommand(['get', 'pods'])
    with self.assertRaises(errors.Command.IssueCommandTimeoutError):
      suppress['fn']('', 'read: connection reset by peer', 1)
    self.assertFalse(suppress['fn']('', 'forbidden', 1))

  def testRetryableCommandRetries(self):
    self.mock_cmd = mock_command.MockIssueCommand(
        {'get pods': [
            errors.Command.IssueCommandTimeoutError('conn reset'),
            ('pod-a', '', 0)]},
        self)
    stdout, _, _ = kubectl.RunRetryableKubectlCommand(['get', 'pods'],
                                                      timeout=-1)
    self.assertEqual(stdout, 'pod-a')
    self.assertEqual(self.mock_cmd.progress_through_calls['get pods'], 2)

  def testRetryableCommandRejectsNoRaiseOnTimeout(self):
    with self.assertRaises(ValueError):
      kubectl.RunRetryableKubectlCommand(['get', 'pods'],
                                         raise_on_timeout=False)


class ClusterInfoTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testReachable(self):
    mock_command.MockIssueCommand(
        {'cluster-info': [('Kubernetes control plane is running', '', 0)]},
        self)
    self.assertTrue(kubectl.ClusterInfo())

  def testUnreachable(self):
    mock_command.MockIssueCommand(
        {'cluster-info': [('', 'connection refused', 1)]}, self)
    self.assertFalse(kubectl.ClusterInfo())

  def testTimeout(self):
    mock_command.MockIssueCommand(
        {'cluster-info': [errors.Command.IssueCommandTimeoutError('slow')]},
        self)
    self.assertFalse(kubectl.ClusterInfo(context='old-ctx'))


class ApplyManifestTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testWritesAndApplies(self):
    mock_cmd = mock_command.MockIssueCommand(
        {'apply': [('storageclass.storage.k8s.io/local created\n', '', 0)]},
        self)
    resources = kubectl.ApplyManifest(
        [manifests.StorageClassSpec(name='local', provisioner='localdisk')],
        'storageclass.yaml')
    self.assertEqual(resources, ['storageclass.storage.k8s.io/local'])
    path = os.path.join(self.tmp_dir, 'storageclass.yaml')
    with open(path) as manifest_file:
      self.assertIn('name: local', manifest_file.read())
    self.assertEqual(mock_cmd.CommandsContaining('apply'),
                     ['kubectl apply -f %s' % path])

  def testParseApplyOutput(self):
    stdout = ('deployment.apps/web created\n'
              'service/web unchanged\n'
              'warning: something\n'
              'cluster.postgresql.cnpg.io/pg serverside-applied\n')
    self.assertEqual(kubectl._ParseApplyOutput(stdout),
                     ['deployment.apps/web', 'service/web',
                      'cluster.postgresql.cnpg.io/pg'])


class WaitForResourceTest(
    acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testReady(self):
    mock_cmd = mock_command.MockIssueCommand({'wait': [('', '', 0)]}, self)
    self.assertTrue(kubectl.WaitForResource('pod/fiopod', 'Ready',
                                            timeout=60))
    self.assertEqual(
        mock_cmd.CommandsContaining('wait'),
        ['kubectl wait --for=condition=Ready --timeout=60s pod/fiopod'])

  def testNotReadyWarns(self):
    mock_cmd = mock_command.MockIssueCommand(
        {'wait': [('', 'timed out waiting for the condition', 1)]}, self)
    self.assertFalse(kubectl.WaitForResource('sp/nvme', 'Ready',
                                             namespace='acstor'))
    self.assertLen(mock_cmd.CommandsContaining('describe sp nvme -n acstor'),
                   1)

  def testNotReadyRaises(self):
    mock_command.MockIssueCommand(
        {'wait': [('', 'timed out waiting for the condition', 1)]}, self)
    with self.assertRaises(errors.Resource.NotReadyError):
      kubectl.WaitForResource('deployment/cnpg', 'Available',
                              raise_on_failure=True)


class DeleteTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testDeleteResourceForce(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    kubectl.DeleteResource('pvc', namespace='default', force=True,
                           extra_args=['--all'])
    self.assertEqual(mock_cmd.commands, [
        'kubectl delete pvc --ignore-not-found=true -n default --force '
        '--grace-period=0 --all'])

  def testDeleteAndWaitToleratesNotFound(self):
    mock_command.MockIssueCommand(
        {'wait --for=delete': [('', 'Error from server (NotFound): pods '
                                '"fiopod" not found', 1)]},
        self)
    self.assertTrue(kubectl.DeleteAndWait('pod/fiopod'))

  def testDeleteAndWaitTwice(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    self.assertTrue(kubectl.DeleteAndWait('pod/fiopod'))
    self.assertTrue(kubectl.DeleteAndWait('pod/fiopod'))
    self.assertLen(mock_cmd.CommandsContaining('delete pod fiopod'), 2)

  def testDeleteAndWaitStillPresent(self):
    mock_command.MockIssueCommand(
        {'wait --for=delete': [('', 'timed out waiting', 1)]}, self)
    self.assertFalse(kubectl.DeleteAndWait('pod/fiopod', timeout=5))

  def testClearFinalizers(self):
    mock_cmd = mock_command.MockIssueCommand({}, self)
    self.assertTrue(kubectl.ClearFinalizers('pvc/data-0', namespace='db'))
    self.assertEqual(mock_cmd.commands, [
        'kubectl patch pvc data-0 -p {"metadata":{"finalizers":[]}} '
        '--type=merge -n db'])


class GetTest(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testGetPodName(self):
    mock_command.MockIssueCommand({'get pods': [('pg-1\n', '', 0)]}, self)
    self.assertEqual(kubectl.GetPodName('role=primary'), 'pg-1')

  def testGetPodNameMissing(self):
    mock_command.MockIssueCommand({'get pods': [('', '', 0)]}, self)
    self.assertIsNone(kubectl.GetPodName('role=primary'))

  def testGetJsonPathFailure(self):
    mock_command.MockIssueCommand({'get sc': [('', 'not found', 1)]}, self)
    self.assertIsNone(kubectl.GetJsonPath('sc/local', '.provisioner'))

  def testGetJsonPathConnectionError(self):
    mock_command.MockIssueCommand({'get nodes': [
        errors.Command.IssueCommandTimeoutError(
            'Unable to connect to the server: net/http: TLS handshake timeout')
    ]}, self)
    self.assertIsNone(
        kubectl.GetJsonPath('nodes', '.items[0].spec.providerID'))

  def testGetFallsBackToStderr(self):
    mock_command.MockIssueCommand(
        {'get sp': [('', 'No resources found', 1)]}, self)
    self.assertEqual(kubectl.Get(['sp', '-n', 'acstor']),
                     'No resources found')


if __name__ == '__main__':
  unittest.main()
