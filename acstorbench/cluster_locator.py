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
"""Finds out whether the current kubectl context can be reused."""

import logging

from acstorbench import errors
from acstorbench import kubectl
from acstorbench import storage


def FindReusableCluster(storage_class=storage.LOCAL_STORAGE_CLASS,
                        provisioner=storage.LOCAL_DISK_PROVISIONER):
  """Returns True if the current context is an AKS cluster with ACStor.

  All queries are read only. Any failure, including a timeout, means "not
  found" so that the caller falls back to provisioning.

  Args:
    storage_class: Storage class that must exist.
    provisioner: Provisioner the storage class must use.
  """
  logging.info('Checking for existing AKS cluster with Azure Container '
               'Storage...')
  try:
    if not kubectl.ClusterInfo():
      logging.info('No reachable cluster in the current kubectl context.')
      return False
    found = kubectl.GetJsonPath('sc/%s' % storage_class, '.provisioner')
    if found != provisioner:
      logging.info('Storage class %s with provisioner %s not found (got %r).',
                   storage_class, provisioner, found)
      return False
    provider_id = kubectl.GetJsonPath('nodes', '.items[0].spec.providerID')
    if not provider_id or 'azure' not in provider_id:
      logging.info('Cluster nodes are not Azure VMs (providerID %r).',
                   provider_id)
      return False
  except errors.Error as e:
    logging.info('Cluster lookup failed, treating as not found: %s', e)
    return False
  logging.info('Found existing AKS cluster with Azure Container Storage!')
  return True
