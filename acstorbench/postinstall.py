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
"""Enables Azure Container Storage on an existing AKS cluster and tests it.

Usage:
  acstorbench-postinstall <resource-group> <cluster-name>

The cluster gets an ephemeral NVMe storage pool; a fio pod on the pool's
storage class then runs a one minute mixed random read/write test.
"""

import logging
import sys

from absl import flags

from acstorbench import aks_cluster
from acstorbench import azure_cli
from acstorbench import errors
from acstorbench import fio
from acstorbench import flag_alias
from acstorbench import kubectl
from acstorbench import log_util
from acstorbench import manifests
from acstorbench import preflight
from acstorbench import results

FLAGS = flags.FLAGS

TOOL_NAME = 'postinstall'
STORAGE_POOL_MANIFEST = 'acstor-storagepool.yaml'
POD_MANIFEST = 'acstor-pod.yaml'
POOL_READY_TIMEOUT = 300
FIO_RUNTIME = 60
_EXEC_TIMEOUT_MARGIN = 300

STORAGE_POOL_SPEC = manifests.StoragePoolSpec(name='ephemeraldisk-nvme')

FIO_POD_SPEC = manifests.FioPodSpec(
    name=fio.FIO_POD_NAME,
    image='nixery.dev/shell/fio',
    storage_class=STORAGE_POOL_SPEC.storage_class,
    capacity='1Gi',
    node_selector={'acstor.azure.com/io-engine': 'acstor'},
    volume_labels={'type': 'my-ephemeral-volume'})

USAGE = """\
Usage: acstorbench-postinstall <resource-group> <cluster-name>
Example: acstorbench-postinstall rg-acstorbench-3866bd66 aks-cluster-3866bd66
"""


def FioCommand():
  return fio.FioCommand('4k', runtime=FIO_RUNTIME, ramp_time=0, rw='randrw',
                        ioengine='libaio', iodepth=16, numjobs=8,
                        group_reporting=False)


def CreateStoragePool():
  """Applies the ephemeral NVMe storage pool and waits for it.

  Returns:
    Whether the pool became Ready.
  """
  logging.info('Checking existing storage pools:\n%s',
               kubectl.Get(['sp', '-n', STORAGE_POOL_SPEC.namespace]))
  logging.info('Creating ephemeral disk storage pool')
  kubectl.ApplyManifest([STORAGE_POOL_SPEC], STORAGE_POOL_MANIFEST)
  logging.info('Waiting for storage pool to be ready...')
  ready = kubectl.WaitForResource(
      'sp/%s' % STORAGE_POOL_SPEC.name, 'Ready',
      namespace=STORAGE_POOL_SPEC.namespace, timeout=POOL_READY_TIMEOUT)
  kubectl.DescribeResource('sp/%s' % STORAGE_POOL_SPEC.name,
                           namespace=STORAGE_POOL_SPEC.namespace)
  storage_classes = [
      line for line in kubectl.Get(['sc']).splitlines()
      if line.startswith('acstor-')]
  logging.info('Available storage classes:\n%s', '\n'.join(storage_classes))
  return ready


def RunFioTest():
  """Creates the fio pod on the pool and writes the fio result log.

  Returns:
    Path of the result log.
  """
  pod = fio.FioPod(FIO_POD_SPEC, manifest_filename=POD_MANIFEST)
  pod.Create()
  kubectl.DescribeResource(pod.resource_name)
  logging.info('Running fio benchmark test')
  output = pod.RunFio(FioCommand(),
                      timeout=FIO_RUNTIME + _EXEC_TIMEOUT_MARGIN)
  logging.info('fio output:\n%s', output)
  metadata = (('storage_class', FIO_POD_SPEC.storage_class),
              ('block_size', '4k'), ('rw', 'randrw'), ('ioengine', 'libaio'),
              ('iodepth', 16), ('numjobs', 8), ('runtime', FIO_RUNTIME))
  result_log = results.ResultLog(
      tool=results.FIO_TOOL,
      label='postinstall %s' % STORAGE_POOL_SPEC.name,
      timestamp=results.FormatTimestamp(),
      summary_lines=tuple(fio.ExtractSummaryLines(output)),
      samples=tuple(fio.ParseFioOutput(output, dict(metadata))),
      metadata=metadata)
  return result_log.Write()


def PostInstall(resource_group, cluster_name):
  """Runs every post installation step against the cluster.

  Raises:
    errors.Resource.CreationError: if enabling the storage failed.
    errors.Setup.NoClusterContextError: if the cluster is not reachable.
    errors.Benchmarks.RunError: if fio failed.
  """
  logging.info('Post-installation setup for Azure Container Storage\n'
               'Resource Group: %s\nAKS Cluster: %s', resource_group,
               cluster_name)
  logging.info('Getting AKS credentials and connecting to cluster')
  azure_cli.GetAksCredentials(resource_group, cluster_name,
                              overwrite_existing=True)
  if not kubectl.ClusterInfo():
    raise errors.Setup.NoClusterContextError(
        'kubectl cannot reach cluster %s' % cluster_name)
  aks_cluster.EnableContainerStorage(resource_group, cluster_name)
  CreateStoragePool()
  path = RunFioTest()
  logging.info(
      'Post-installation setup complete! Results saved to: %s\n'
      'To interact with your cluster:\n'
      '  kubectl get pods\n  kubectl get pvc\n  kubectl get sc\n'
      '  kubectl get sp -n %s\n'
      'To clean up resources:\n'
      '  kubectl delete pod %s\n  kubectl delete sp %s -n %s\n  %s',
      path, STORAGE_POOL_SPEC.namespace, FIO_POD_SPEC.name,
      STORAGE_POOL_SPEC.name, STORAGE_POOL_SPEC.namespace,
      ' '.join(azure_cli.DeleteResourceGroupCommand(resource_group)))
  return path


def Main(argv=None):
  """Runs the post installation and returns the process exit code."""
  argv = sys.argv if argv is None else argv
  log_util.ConfigureBasicLogging()
  try:
    args = flag_alias.ParseArgs(argv)
  except flags.Error as e:
    print('Error: %s\n' % e)
    print(USAGE)
    return 1
  if FLAGS.show_help:
    print(USAGE)
    return 0
  if len(args) != 2:
    print(USAGE)
    return 1
  log_util.ConfigureLoggingFromFlags(TOOL_NAME)
  try:
    preflight.Run()
    PostInstall(*args)
  except errors.Command.IssueCommandError as e:
    logging.error('Command failed: %s', e)
    return 1
  except errors.Error as e:
    logging.error(str(e))
    return 1
  return 0


def main():
  sys.exit(Main())
