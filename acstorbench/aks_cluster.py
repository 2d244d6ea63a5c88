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
"""Contains classes related to AKS clusters with Azure Container Storage.

Provisioning is strictly sequential: resource group, cluster, credentials and
then the storage extension. Every step must succeed; a failure raises
errors.Resource.CreationError and is never retried since a second attempt
could leave duplicate billable resources behind.
"""

import dataclasses
import logging
from typing import Optional, Sequence

from acstorbench import azure_cli
from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import flags
from acstorbench import kubectl
from acstorbench import resource

FLAGS = flags.FLAGS

ACSTOR_EXTENSION_NAME = 'acstor'
ACSTOR_EXTENSION_TYPE = 'microsoft.azurecontainerstoragev2'
# Half hour timeout on creating the cluster.
CLUSTER_CREATE_TIMEOUT = 1800
EXTENSION_CREATE_TIMEOUT = 1200


@dataclasses.dataclass(frozen=True)
class ClusterHandle:
  """Identifies an AKS cluster and how it was sized.

  node_count None lets AKS pick its default.
  """
  resource_group: str
  name: str
  region: str
  vm_size: str
  node_count: Optional[int] = None
  zones: Sequence[str] = ()

  @classmethod
  def FromFlags(cls, suffix: Optional[str] = None) -> 'ClusterHandle':
    """Builds a handle with a fresh random suffix from the cluster flags."""
    suffix = suffix or cmd_util.GenerateRandomHex(4)
    return cls(
        resource_group=FLAGS.resource_group_prefix + suffix,
        name='aks-cluster-' + suffix,
        region=FLAGS.az_location,
        vm_size=FLAGS.aks_node_vm_size,
        node_count=FLAGS.aks_node_count,
        zones=tuple(FLAGS.aks_zones))

  @property
  def delete_command(self) -> str:
    return ' '.join(azure_cli.DeleteResourceGroupCommand(self.resource_group))


def _IssueCreationCommand(cmd, what, timeout=cmd_util.DEFAULT_TIMEOUT):
  try:
    return cmd_util.IssueCommand(cmd, timeout=timeout)
  except (errors.Command.IssueCommandError,
          errors.Command.IssueCommandTimeoutError) as e:
    raise errors.Resource.CreationError('Failed to %s: %s' % (what, e)) from e


class AzureResourceGroup(resource.BaseResource):
  """A Resource Group, the basic unit of Azure provisioning."""

  def __init__(self, name, location):
    super().__init__()
    self.name = name
    self.location = location
    self.args = ['--resource-group', self.name]

  def __repr__(self):
    return 'AzureResourceGroup(%s)' % self.name

  def _Create(self):
    logging.info('Creating Azure resource group: %s', self.name)
    _IssueCreationCommand(
        azure_cli.AzCommand('group', 'create', '--name', self.name,
                            '--location', self.location),
        'create resource group %s' % self.name)


class AksCluster(resource.BaseResource):
  """An AKS cluster, optionally with the Azure Container Storage extension."""

  def __init__(self, handle: ClusterHandle, install_storage_extension=True):
    super().__init__()
    self.handle = handle
    self.install_storage_extension = install_storage_extension
    self.resource_group = AzureResourceGroup(handle.resource_group,
                                             handle.region)

  def __repr__(self):
    return 'AksCluster(%s/%s)' % (self.handle.resource_group, self.handle.name)

  def _CreateDependencies(self):
    self.resource_group.Create()

  def _Create(self):
    """Creates the AKS cluster."""
    logging.info('Creating AKS cluster: %s', self.handle.name)
    cmd = azure_cli.AzCommand(
        'aks', 'create', '--name', self.handle.name,
        '--node-vm-size', self.handle.vm_size,
        '--enable-managed-identity', '--generate-ssh-keys',
    ) + self.resource_group.args
    if self.handle.node_count:
      cmd += ['--node-count', str(self.handle.node_count)]
    if self.handle.zones:
      cmd += ['--zones'] + list(self.handle.zones)
    _IssueCreationCommand(cmd, 'create AKS cluster %s' % self.handle.name,
                          timeout=CLUSTER_CREATE_TIMEOUT)

  def _PostCreate(self):
    """Fetches credentials and installs the storage extension."""
    logging.info('Getting AKS credentials')
    try:
      azure_cli.GetAksCredentials(self.handle.resource_group,
                                  self.handle.name)
    except errors.Command.IssueCommandError as e:
      raise errors.Resource.CreationError(
          'Failed to get credentials of %s: %s' % (self.handle.name, e)) from e
    if self.install_storage_extension:
      self._InstallStorageExtension()
    logging.info('Verifying cluster setup')
    if not kubectl.ClusterInfo():
      logging.warning('kubectl cluster-info failed for the new cluster.')
    logging.info('Storage classes:\n%s', kubectl.Get(['sc']))
    logging.info('Setup complete! Resource Group: %s AKS Cluster: %s',
                 self.handle.resource_group, self.handle.name)
    logging.info('To clean up resources:\n  %s', self.handle.delete_command)

  def _InstallStorageExtension(self):
    logging.info('Installing Azure Container Storage extension')
    cmd = azure_cli.AzCommand(
        'k8s-extension', 'create',
        '--cluster-type', 'managedClusters',
        '--cluster-name', self.handle.name,
        '--resource-group', self.handle.resource_group,
        '-n', ACSTOR_EXTENSION_NAME,
        '--extension-type', ACSTOR_EXTENSION_TYPE,
        '--scope', 'cluster',
        '--release-train', FLAGS.acstor_release_train,
        '--release-namespace', 'kube-system',
        '--auto-upgrade-minor-version', 'false',
        '--version', FLAGS.acstor_extension_version)
    _IssueCreationCommand(cmd, 'install Azure Container Storage extension',
                          timeout=EXTENSION_CREATE_TIMEOUT)


def EnableContainerStorage(resource_group: str, cluster_name: str) -> None:
  """Enables ephemeral NVMe Azure Container Storage on an existing cluster.

  Raises:
    errors.Resource.CreationError: if az aks update failed.
  """
  logging.info('Enabling Azure Container Storage with NVMe support')
  _IssueCreationCommand(
      azure_cli.AzCommand(
          'aks', 'update', '-n', cluster_name, '-g', resource_group,
          '--enable-azure-container-storage', 'ephemeralDisk',
          '--storage-pool-option', 'NVMe',
          '--ephemeral-disk-volume-type', 'PersistentVolumeWithAnnotation'),
      'enable Azure Container Storage on %s' % cluster_name,
      timeout=CLUSTER_CREATE_TIMEOUT)
