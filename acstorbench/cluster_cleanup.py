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
"""Aggressive removal of benchmark workloads from the current cluster.

Storage classes, the Azure Container Storage components and the CloudNativePG
operator are kept. Everything a benchmark may have left behind (database
clusters, deployments, services, pods and volume claims) is force deleted in
parallel. Deletes are best effort: a failing delete is reported and the rest of
the batch still runs. Running the cleanup on an already clean cluster issues
the same deletes and succeeds.
"""

import json
import logging
import re

from acstorbench import background_tasks
from acstorbench import errors
from acstorbench import kubectl

SYSTEM_NAMESPACES = ('kube-system', 'kube-public', 'kube-node-lease',
                     'azure-arc', 'gatekeeper-system')
OPERATOR_NAMESPACE = 'cnpg-system'
DEFAULT_NAMESPACE = 'default'
CNPG_CLUSTER_KIND = 'clusters.postgresql.cnpg.io'

_ACSTOR_POD_REGEX = r'acstor|local-csi'


def ListObjects(kind, field_selector=None):
  """Lists (namespace, name) of every object of kind in all namespaces.

  A failed listing is logged and yields nothing to delete.
  """
  cmd = ['get', kind, '--all-namespaces', '-o', 'json']
  if field_selector:
    cmd.append('--field-selector=%s' % field_selector)
  stdout, stderr, retcode = kubectl.RunKubectlCommand(
      cmd, raise_on_failure=False)
  if retcode:
    logging.warning('Could not list %s: %s', kind, stderr.strip())
    return []
  items = json.loads(stdout or '{}').get('items', [])
  return [(item['metadata'].get('namespace', ''), item['metadata']['name'])
          for item in items]


def ListNamespaces():
  return [name for _, name in ListObjects('namespaces')]


def UserNamespaces(namespaces):
  """Returns the namespaces to sweep, always including the default one."""
  excluded = SYSTEM_NAMESPACES + (OPERATOR_NAMESPACE, DEFAULT_NAMESPACE)
  return [ns for ns in namespaces if ns not in excluded] + [DEFAULT_NAMESPACE]


def _OutsideSystemNamespaces(objects):
  return [(ns, name) for ns, name in objects if ns not in SYSTEM_NAMESPACES]


def ForceDelete(kind, name=None, namespace=None, clear_finalizers=False):
  """Force deletes one object, or every object of kind when name is None."""
  if name is None:
    kubectl.DeleteResource(kind, namespace=namespace, force=True,
                           extra_args=['--all'])
    return
  resource = '%s/%s' % (kind, name)
  if clear_finalizers:
    kubectl.ClearFinalizers(resource, namespace=namespace)
  kubectl.DeleteResource(resource, namespace=namespace, force=True)


def DeleteTasks():
  """Returns the ((args), {kwargs}) of every ForceDelete of the sweep."""
  tasks = [((CNPG_CLUSTER_KIND,), {})]
  namespaces = UserNamespaces(ListNamespaces())
  for kind in ('deployments', 'services'):
    tasks += [((kind,), {'namespace': ns}) for ns in namespaces]
  tasks += [(('pod', name), {'namespace': ns})
            for ns, name in _OutsideSystemNamespaces(ListObjects('pods'))]
  tasks += [(('pvc', name), {'namespace': ns, 'clear_finalizers': True})
            for ns, name in ListObjects('pvc')]
  return tasks


def ClearStuckPods():
  """Strips finalizers from pods that are not Running after the deletes."""
  stuck = _OutsideSystemNamespaces(
      ListObjects('pods', field_selector='status.phase!=Running'))
  for ns, name in stuck:
    kubectl.ClearFinalizers('pod/%s' % name, namespace=ns)
  return stuck


def CleanupCluster():
  """Force deletes benchmark workloads from the current cluster.

  Returns:
    list of background_tasks.TaskResult, one per issued delete.

  Raises:
    errors.Setup.NoClusterContextError: if no cluster is reachable.
  """
  logging.info('Performing aggressive cluster cleanup...')
  if not kubectl.ClusterInfo():
    raise errors.Setup.NoClusterContextError(
        'No active kubectl context found.')

  task_results = background_tasks.RunThreaded(
      ForceDelete, DeleteTasks(), suppress_exceptions=True)
  failed = [r for r in task_results if not r.succeeded]
  if failed:
    logging.warning('%d of %d deletes failed:\n  %s', len(failed),
                    len(task_results),
                    '\n  '.join(r.call_string for r in failed))

  logging.info('Removing any stuck resources...')
  ClearStuckPods()
  ReportRemaining()
  return task_results


def ReportRemaining():
  """Logs what the cleanup intentionally keeps."""
  acstor_pods = [
      line for line in kubectl.Get(['pods', '-n', 'kube-system']).splitlines()
      if re.search(_ACSTOR_POD_REGEX, line)]
  logging.info(
      'Aggressive cleanup completed. Remaining resources:\n'
      'Storage Classes (kept intact):\n%s\n'
      'ACStor components (kept intact):\n%s\n'
      'CNPG operator (kept intact):\n%s',
      kubectl.Get(['sc']),
      '\n'.join(acstor_pods) or 'No ACStor pods found',
      kubectl.Get(['pods', '-n', OPERATOR_NAMESPACE]) or
      'No CNPG operator found')
