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
"""Storage backends and the storage classes that expose them.

A backend is chosen once per run. It determines which storage class (and for
Azure Container Storage pools, which storage pool) is applied to the cluster
and which node VM family the backend needs.
"""

import dataclasses
import enum
import logging
import re
from typing import List, Optional

from acstorbench import errors
from acstorbench import kubectl
from acstorbench import manifests

# Provisioner of the Azure Container Storage local disk CSI driver.
LOCAL_DISK_PROVISIONER = 'localdisk.csi.acstor.io'
AZURE_DISK_PROVISIONER = 'disk.csi.azure.com'
LOCAL_STORAGE_CLASS = 'local'
PREMIUM_V2_STORAGE_CLASS = 'premium2-disk-sc'
# Preinstalled by the Azure Disk CSI driver on every AKS cluster.
MANAGED_CSI_PREMIUM_STORAGE_CLASS = 'managed-csi-premium'
ELASTIC_SAN_POOL = 'azuresan'

# Annotation a PVC on the local storage class needs to accept data loss when
# its node goes away.
ACCEPT_EPHEMERAL_STORAGE_ANNOTATION = (
    'localdisk.csi.acstor.io/accept-ephemeral-storage')

LOCAL_STORAGE_CLASS_SPEC = manifests.StorageClassSpec(
    name=LOCAL_STORAGE_CLASS,
    provisioner=LOCAL_DISK_PROVISIONER,
    reclaim_policy='Delete',
    volume_binding_mode='WaitForFirstConsumer',
    allow_volume_expansion=True)

PREMIUM_V2_STORAGE_CLASS_SPEC = manifests.StorageClassSpec(
    name=PREMIUM_V2_STORAGE_CLASS,
    provisioner=AZURE_DISK_PROVISIONER,
    reclaim_policy='Delete',
    volume_binding_mode='Immediate',
    allow_volume_expansion=True,
    parameters={
        'cachingMode': 'None',
        'skuName': 'PremiumV2_LRS',
        'DiskIOPSReadWrite': '80000',
        'DiskMBpsReadWrite': '1200',
    })

ELASTIC_SAN_POOL_SPEC = manifests.StoragePoolSpec(
    name=ELASTIC_SAN_POOL,
    pool_type='elasticSan',
    disk_type='',
    capacity='1Ti')


class StorageBackend(enum.Enum):
  EPHEMERAL_NVME = 'ephemeral-nvme'
  EPHEMERAL_TEMP_SSD = 'ephemeral-temp-ssd'
  AZURE_DISK = 'azure-disk'
  ELASTIC_SAN = 'elastic-san'
  PREMIUM_SSD_V2 = 'premium-ssd-v2'


@dataclasses.dataclass(frozen=True)
class BackendInfo:
  """Static facts about a storage backend.

  Attributes:
    description: Human readable name.
    storage_class: Name of the storage class volumes are requested from.
    vm_size_regex: Pattern node VM sizes must match, None if any size works.
    vm_family_hint: Explanation shown when the VM size does not match.
  """
  description: str
  storage_class: str
  vm_size_regex: Optional[str] = None
  vm_family_hint: str = ''


_BACKENDS = {
    StorageBackend.EPHEMERAL_NVME: BackendInfo(
        description='Ephemeral Disk (local NVMe)',
        storage_class=LOCAL_STORAGE_CLASS,
        vm_size_regex=r'^Standard_L\d+[a-z]*_v\d+$',
        vm_family_hint='local NVMe needs a storage optimized L-series size '
        'such as Standard_L16s_v3'),
    StorageBackend.EPHEMERAL_TEMP_SSD: BackendInfo(
        description='Ephemeral Disk (temp SSD)',
        storage_class=LOCAL_STORAGE_CLASS,
        vm_size_regex=r'^Standard_[A-Z]+\d+[a-z]*d[a-z]*(_v\d+)?$',
        vm_family_hint='a temp SSD needs a size with a local disk, marked '
        'by a "d" in its capabilities such as Standard_D4ds_v5'),
    StorageBackend.AZURE_DISK: BackendInfo(
        description='Azure Disk',
        storage_class=MANAGED_CSI_PREMIUM_STORAGE_CLASS),
    StorageBackend.ELASTIC_SAN: BackendInfo(
        description='Azure Elastic SAN',
        storage_class=ELASTIC_SAN_POOL_SPEC.storage_class),
    StorageBackend.PREMIUM_SSD_V2: BackendInfo(
        description='Azure Premium SSD v2',
        storage_class=PREMIUM_V2_STORAGE_CLASS),
}


def GetBackendInfo(backend: StorageBackend) -> BackendInfo:
  return _BACKENDS[backend]


def ValidateVmSize(backend: StorageBackend, vm_size: str) -> None:
  """Checks that nodes of vm_size can host the backend.

  Raises:
    errors.Config.InvalidValue: if the VM family does not fit the backend.
  """
  info = GetBackendInfo(backend)
  if info.vm_size_regex and not re.match(info.vm_size_regex, vm_size):
    raise errors.Config.InvalidValue(
        'VM size %s cannot be used with %s: %s.' %
        (vm_size, info.description, info.vm_family_hint))


def StorageClassManifests(backend: StorageBackend) -> List:
  """Returns the specs that must be applied for the backend's storage class."""
  if backend in (StorageBackend.EPHEMERAL_NVME,
                 StorageBackend.EPHEMERAL_TEMP_SSD):
    return [LOCAL_STORAGE_CLASS_SPEC]
  if backend == StorageBackend.PREMIUM_SSD_V2:
    return [PREMIUM_V2_STORAGE_CLASS_SPEC]
  if backend == StorageBackend.ELASTIC_SAN:
    return [ELASTIC_SAN_POOL_SPEC]
  return []


def ApplyStorageClass(backend: StorageBackend) -> str:
  """Applies what the backend needs and returns its storage class name."""
  info = GetBackendInfo(backend)
  specs = StorageClassManifests(backend)
  if specs:
    logging.info('Applying storage class %s for %s', info.storage_class,
                 info.description)
    kubectl.ApplyManifest(specs, 'storageclass-%s.yaml' % backend.value)
  else:
    logging.info('Using preinstalled storage class %s for %s',
                 info.storage_class, info.description)
  return info.storage_class
