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
"""Tests for acstorbench.manifests."""

import unittest

from absl.testing import parameterized
from acstorbench import errors
from acstorbench import manifests


class StorageClassSpecTest(parameterized.TestCase):

  def testRender(self):
    spec = manifests.StorageClassSpec(
        name='managed-csi-premium-v2',
        provisioner='disk.csi.azure.com',
        parameters={'skuName': 'PremiumV2_LRS', 'DiskIOPSReadWrite': '80000'})
    [doc] = manifests.Load(spec)
    self.assertEqual(doc['kind'], 'StorageClass')
    self.assertEqual(doc['metadata']['name'], 'managed-csi-premium-v2')
    self.assertEqual(doc['provisioner'], 'disk.csi.azure.com')
    self.assertEqual(doc['parameters']['DiskIOPSReadWrite'], '80000')
    self.assertEqual(doc['reclaimPolicy'], 'Delete')
    self.assertEqual(doc['volumeBindingMode'], 'WaitForFirstConsumer')
    self.assertIs(doc['allowVolumeExpansion'], True)

  def testNoParameters(self):
    [doc] = manifests.Load(
        manifests.StorageClassSpec(name='local', provisioner='localdisk'))
    self.assertNotIn('parameters', doc)

  @parameterized.named_parameters(
      ('ReclaimPolicy', {'reclaim_policy': 'Recycle'}),
      ('BindingMode', {'volume_binding_mode': 'Later'}),
  )
  def testInvalidChoice(self, kwargs):
    with self.assertRaises(errors.Config.InvalidValue):
      manifests.StorageClassSpec(name='sc', provisioner='p', **kwargs)


class StoragePoolSpecTest(unittest.TestCase):

  def testEphemeralNvme(self):
    spec = manifests.StoragePoolSpec(name='ephemeraldisk-nvme')
    [doc] = manifests.Load(spec)
    self.assertEqual(doc['metadata'],
                     {'name': 'ephemeraldisk-nvme', 'namespace': 'acstor'})
    self.assertEqual(doc['spec']['poolType'],
                     {'ephemeralDisk': {'diskType': 'nvme'}})
    self.assertNotIn('resources', doc['spec'])
    self.assertEqual(spec.storage_class, 'acstor-ephemeraldisk-nvme')

  def testCapacity(self):
    [doc] = manifests.Load(manifests.StoragePoolSpec(
        name='azuredisk', pool_type='azureDisk', disk_type='',
        capacity='1Ti'))
    self.assertEqual(doc['spec']['poolType'], {'azureDisk': {}})
    self.assertEqual(doc['spec']['resources']['requests']['storage'], '1Ti')


class FioPodSpecTest(unittest.TestCase):

  def testRender(self):
    spec = manifests.FioPodSpec(
        storage_class='acstor-ephemeraldisk-nvme',
        node_selector={'acstor.azure.com/io-engine': 'acstor'},
        volume_labels={'type': 'my-ephemeral-volume'})
    [doc] = manifests.Load(spec)
    self.assertEqual(doc['metadata']['name'], 'fiopod')
    self.assertEqual(doc['spec']['nodeSelector'],
                     {'acstor.azure.com/io-engine': 'acstor'})
    claim = doc['spec']['volumes'][0]['ephemeral']['volumeClaimTemplate']
    self.assertEqual(claim['metadata']['labels'],
                     {'type': 'my-ephemeral-volume'})
    self.assertEqual(claim['spec']['storageClassName'],
                     'acstor-ephemeraldisk-nvme')
    self.assertEqual(claim['spec']['accessModes'], ['ReadWriteOnce'])
    self.assertEqual(claim['spec']['resources']['requests']['storage'],
                     '10Gi')

  def testInvalidAccessMode(self):
    with self.assertRaises(errors.Config.InvalidValue):
      manifests.FioPodSpec(access_mode='ReadWriteSometimes')


class CnpgSpecsTest(unittest.TestCase):

  def testCluster(self):
    spec = manifests.CnpgClusterSpec(
        name='pg-nvme', storage_class='local', storage_size='100Gi',
        parameters={'max_connections': '500'},
        inherited_annotations={'example.com/owner': 'bench'})
    [doc] = manifests.Load(spec)
    self.assertEqual(doc['kind'], 'Cluster')
    self.assertEqual(doc['spec']['instances'], 3)
    self.assertEqual(doc['spec']['storage'],
                     {'storageClass': 'local', 'size': '100Gi',
                      'pvcTemplate': {'accessModes': ['ReadWriteOnce']}})
    self.assertEqual(doc['spec']['bootstrap']['initdb']['secret']['name'],
                     'pg-nvme-superuser')
    self.assertEqual(doc['spec']['postgresql']['parameters'],
                     {'max_connections': '500'})
    self.assertEqual(doc['spec']['inheritedMetadata']['annotations'],
                     {'example.com/owner': 'bench'})

  def testClusterNeedsAnInstance(self):
    with self.assertRaises(errors.Config.InvalidValue):
      manifests.CnpgClusterSpec(name='pg', storage_class='local',
                                storage_size='1Gi', instances=0)

  def testSecretQuotesValues(self):
    [doc] = manifests.Load(manifests.BasicAuthSecretSpec(
        name='pg-superuser', username='postgres', password='1234: yes'))
    self.assertEqual(doc['stringData'],
                     {'username': 'postgres', 'password': '1234: yes'})


class RenderAllTest(unittest.TestCase):

  def testMultipleDocuments(self):
    text = manifests.RenderAll([
        manifests.StorageClassSpec(name='a', provisioner='p'),
        manifests.StorageClassSpec(name='b', provisioner='p'),
    ])
    self.assertEqual(text.count('kind: StorageClass'), 2)
    self.assertIn('---\n', text)


if __name__ == '__main__':
  unittest.main()
