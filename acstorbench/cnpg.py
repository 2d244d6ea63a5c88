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
"""CloudNativePG operator and highly available PostgreSQL clusters."""

import logging

from absl import flags

from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import kubectl
from acstorbench import manifests
from acstorbench import resource
from acstorbench import storage

flags.DEFINE_string(
    'cnpg_operator_manifest',
    'https://raw.githubusercontent.com/cloudnative-pg/cloudnative-pg/'
    'release-1.27/releases/cnpg-1.27.0.yaml',
    'Release manifest of the CloudNativePG operator.')
flags.DEFINE_integer('cnpg_instances', 3,
                     'Instances of the PostgreSQL cluster (1 primary, the '
                     'rest replicas).', lower_bound=1)
flags.DEFINE_string('cnpg_superuser_password', 'benchmark123',
                    'Password of the postgres superuser of the benchmark '
                    'database.')

FLAGS = flags.FLAGS

OPERATOR_NAMESPACE = 'cnpg-system'
OPERATOR_DEPLOYMENT = 'deployment/cnpg-controller-manager'
OPERATOR_READY_TIMEOUT = 300

CLUSTER_NAME_PREFIX = 'postgres-cnpg-'
DATABASE = 'benchmarkdb'
SUPERUSER = 'postgres'
HEALTHY_PHASE = 'Cluster in healthy state'
READY_POLL_INTERVAL = 10
READY_MAX_ATTEMPTS = 60

# Volume size per storage class; anything else gets DEFAULT_STORAGE_SIZE.
STORAGE_SIZES = {
    storage.LOCAL_STORAGE_CLASS: '100Gi',
    storage.PREMIUM_V2_STORAGE_CLASS: '1Ti',
}
DEFAULT_STORAGE_SIZE = '8Ti'

POSTGRESQL_PARAMETERS = {
    'shared_buffers': '128MB',
    'effective_cache_size': '256MB',
    'max_connections': '500',
    'checkpoint_completion_target': '0.5',
    'wal_buffers': '1MB',
    'default_statistics_target': '100',
    'random_page_cost': '4.0',
    'seq_page_cost': '1.0',
    'effective_io_concurrency': '200',
    'work_mem': '4MB',
    'maintenance_work_mem': '256MB',
    'min_wal_size': '1GB',
    'max_wal_size': '4GB',
    'checkpoint_timeout': '15min',
    'checkpoint_flush_after': '0',
    'max_worker_processes': '8',
    'max_parallel_workers_per_gather': '4',
    'max_parallel_workers': '8',
    'max_parallel_maintenance_workers': '4',
    'log_checkpoints': 'on',
    'log_statement': 'none',
    'log_min_duration_statement': '1000',
    'synchronous_commit': 'on',
    'full_page_writes': 'on',
    'wal_compression': 'off',
    'commit_delay': '0',
    'fsync': 'on',
}


def ClusterName(storage_class):
  """Returns the cluster name for a storage class, e.g. postgres-cnpg-local."""
  return CLUSTER_NAME_PREFIX + storage_class.replace('-', '')


def StorageSize(storage_class):
  return STORAGE_SIZES.get(storage_class, DEFAULT_STORAGE_SIZE)


def InstallOperator():
  """Installs the operator and waits for its controller to be Available.

  Raises:
    errors.Resource.NotReadyError: if the controller is not Available in time.
  """
  logging.info('Installing CloudNativePG operator...')
  kubectl.ApplyFile(FLAGS.cnpg_operator_manifest, server_side=True)
  logging.info('Waiting for CNPG operator to be ready...')
  kubectl.WaitForResource(OPERATOR_DEPLOYMENT, 'Available',
                          namespace=OPERATOR_NAMESPACE,
                          timeout=OPERATOR_READY_TIMEOUT,
                          raise_on_failure=True)
  logging.info('CNPG operator installed successfully!')


def MakeClusterSpec(storage_class, instances=None):
  annotations = {}
  if storage_class == storage.LOCAL_STORAGE_CLASS:
    annotations[storage.ACCEPT_EPHEMERAL_STORAGE_ANNOTATION] = 'true'
  return manifests.CnpgClusterSpec(
      name=ClusterName(storage_class),
      storage_class=storage_class,
      storage_size=StorageSize(storage_class),
      instances=instances or FLAGS.cnpg_instances,
      database=DATABASE,
      owner=SUPERUSER,
      inherited_annotations=annotations,
      parameters=dict(POSTGRESQL_PARAMETERS))


class CnpgCluster(resource.BaseResource):
  """A replicated PostgreSQL cluster managed by CloudNativePG.

  Readiness is the 'Cluster in healthy state' phase or at least one ready
  instance. Running out of attempts only warns so that the cluster can still
  be inspected.
  """

  POLL_INTERVAL = READY_POLL_INTERVAL

  def __init__(self, spec: manifests.CnpgClusterSpec):
    super().__init__()
    self.spec = spec
    self.secret = manifests.BasicAuthSecretSpec(
        name=spec.secret_name,
        username=SUPERUSER,
        password=FLAGS.cnpg_superuser_password)

  def __repr__(self):
    return 'CnpgCluster(%s)' % self.spec.name

  @property
  def name(self):
    return self.spec.name

  @property
  def resource_name(self):
    return 'cluster/%s' % self.spec.name

  def _CreateDependencies(self):
    logging.info('Creating CNPG PostgreSQL cluster %s with storage class %s '
                 '(%d instances: 1 primary + %d replicas)', self.spec.name,
                 self.spec.storage_class, self.spec.instances,
                 self.spec.instances - 1)
    InstallOperator()
    kubectl.DeleteAndWait(self.resource_name)

  def _Create(self):
    kubectl.ApplyManifest([self.spec], '%s.yaml' % self.spec.name)
    kubectl.ApplyManifest([self.secret], '%s.yaml' % self.spec.secret_name)

  def _IsReady(self):
    phase = kubectl.GetJsonPath(self.resource_name, '.status.phase')
    if phase and HEALTHY_PHASE in phase:
      logging.info('CNPG cluster is ready!')
      return True
    ready = kubectl.GetJsonPath(self.resource_name, '.status.readyInstances')
    try:
      ready_instances = int(ready or 0)
    except ValueError:
      ready_instances = 0
    if ready_instances >= 1:
      logging.info('Primary instance is ready (%d/%d instances ready)',
                   ready_instances, self.spec.instances)
      return True
    logging.info('Waiting for CNPG cluster %s (phase: %s)', self.spec.name,
                 phase or 'unknown')
    return False

  def _WaitUntilReady(self):
    self.ready = cmd_util.WaitUntil(
        self._IsReady, poll_interval=self.POLL_INTERVAL,
        max_attempts=READY_MAX_ATTEMPTS)
    if not self.ready:
      self._OnReadyTimeout()

  def _OnReadyTimeout(self):
    logging.warning('CNPG cluster %s may not be fully ready', self.spec.name)
    kubectl.DescribeResource(self.resource_name)

  def _PostCreate(self):
    logging.info('CNPG Cluster Status:\n%s\n%s',
                 kubectl.Get([self.resource_name]),
                 kubectl.Get(['pods', '-l', 'cnpg.io/cluster=%s' % self.name]))

  def GetPrimaryPod(self):
    """Returns the name of the primary pod.

    Raises:
      errors.Benchmarks.RunError: if there is no primary pod.
    """
    pod = kubectl.GetPodName(
        'cnpg.io/cluster=%s,cnpg.io/instanceRole=primary' % self.name)
    if not pod:
      raise errors.Benchmarks.RunError(
          'Could not find primary pod for cluster %s' % self.name)
    return pod
