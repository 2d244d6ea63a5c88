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
"""Functions for driving a Kubernetes cluster through kubectl."""

import logging
import os
import re
from typing import Iterable, List, Optional, Tuple

from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import flags
from acstorbench import manifests

FLAGS = flags.FLAGS

RETRYABLE_KUBECTL_ERRORS = [
    (
        '"unable to decode an event from the watch stream: http2: client'
        ' connection lost"'
    ),
    'read: connection reset by peer',
    'Unable to connect to the server: dial tcp',
    'Unable to connect to the server: net/http: TLS handshake timeout',
    # These come up in kubectl exec
    'error dialing backend:',
    'connect: connection timed out',
    'error sending request:',
    '(abnormal closure): unexpected EOF',
]

# Deleting a pod or a database cluster waits this long for it to disappear.
DELETE_TIMEOUT = 120
# Default bound of a readiness wait.
READY_TIMEOUT = 300

# Merge patch that strips every finalizer of an object.
CLEAR_FINALIZERS_PATCH = '{"metadata":{"finalizers":[]}}'

_NOT_FOUND_ERRORS = ('NotFound', 'not found')


def KubectlCommand(command: List[str], context: Optional[str] = None
                  ) -> List[str]:
  cmd = [FLAGS.kubectl]
  if FLAGS.kubeconfig:
    cmd += ['--kubeconfig', FLAGS.kubeconfig]
  if context:
    cmd += ['--context', context]
  return cmd + command


def RunKubectlCommand(command: List[str], context: Optional[str] = None,
                      **kwargs) -> Tuple[str, str, int]:
  """Run a kubectl command.

  Connection level failures listed in RETRYABLE_KUBECTL_ERRORS are raised as
  IssueCommandTimeoutError so that RunRetryableKubectlCommand can retry them.
  """
  cmd = KubectlCommand(command, context=context)

  orig_suppress_failure = kwargs.get('suppress_failure')

  def _DetectTimeoutViaSuppressFailure(stdout, stderr, retcode):
    if retcode != 0:
      for error_substring in RETRYABLE_KUBECTL_ERRORS:
        if error_substring in stderr:
          if kwargs.get('raise_on_timeout', True):
            raise errors.Command.IssueCommandTimeoutError(stderr)
    if orig_suppress_failure is not None:
      return orig_suppress_failure(stdout, stderr, retcode)
    return False

  kwargs['suppress_failure'] = _DetectTimeoutViaSuppressFailure
  return cmd_util.IssueCommand(cmd, **kwargs)


def RunRetryableKubectlCommand(command: List[str],
                               timeout: Optional[int] = None,
                               **kwargs) -> Tuple[str, str, int]:
  """Runs a kubectl command, retrying somewhat expected errors."""
  if kwargs.get('raise_on_timeout') is False:
    raise ValueError(
        'RunRetryableKubectlCommand does not allow `raise_on_timeout=False`'
        ' (since timeouts are retried).')
  kwargs.pop('raise_on_timeout', None)

  @cmd_util.Retry(
      timeout=timeout,
      retryable_exceptions=(errors.Command.IssueCommandTimeoutError,),
  )
  def _RunRetryablePart():
    return RunKubectlCommand(command, raise_on_timeout=True, **kwargs)

  return _RunRetryablePart()


def IsNotFound(stderr: str) -> bool:
  return any(s in stderr for s in _NOT_FOUND_ERRORS)


def ClusterInfo(context: Optional[str] = None, timeout: int = 30) -> bool:
  """Returns True if `kubectl cluster-info` succeeds."""
  try:
    _, _, retcode = RunKubectlCommand(
        ['cluster-info'], context=context, timeout=timeout,
        raise_on_failure=False, suppress_warning=True)
  except errors.Command.IssueCommandTimeoutError:
    return False
  return retcode == 0


def GetJsonPath(resource: str, jsonpath: str,
                namespace: Optional[str] = None) -> Optional[str]:
  """Returns a jsonpath field of a resource, None if it cannot be read.

  Connection errors and timeouts also read as None, so pollers simply try
  again on their next attempt.
  """
  cmd = ['get', resource, '-o', 'jsonpath={%s}' % jsonpath]
  if namespace:
    cmd += ['-n', namespace]
  try:
    stdout, _, retcode = RunKubectlCommand(
        cmd, raise_on_failure=False, suppress_warning=True)
  except errors.Command.IssueCommandTimeoutError as e:
    logging.info('Could not read %s of %s: %s', jsonpath, resource, e)
    return None
  if retcode:
    return None
  return stdout.strip()


def _ParseApplyOutput(stdout: str) -> List[str]:
  """Parses the output of kubectl apply to get the name of the resources."""
  # Example input: deployment.apps/cnpg-controller-manager created
  resources = []
  for line in stdout.splitlines():
    match = re.search(r'([^\s/]+/[^\s/]+) (created|configured|unchanged|'
                      r'serverside-applied)', line)
    if match:
      resources.append(match.group(1))
  return resources


def ManifestPath(filename: str) -> str:
  return os.path.join(FLAGS.manifest_dir, filename)


def ApplyManifest(specs: Iterable, filename: str,
                  server_side: bool = False) -> List[str]:
  """Renders specs, persists them as filename and applies them.

  Args:
    specs: manifests.*Spec objects to render into one file.
    filename: Name of the file written to --manifest_dir.
    server_side: Whether to use server side apply.

  Returns:
    Names of the resources, e.g. [storageclass.storage.k8s.io/local]
  """
  text = manifests.RenderAll(list(specs))
  os.makedirs(FLAGS.manifest_dir, exist_ok=True)
  path = ManifestPath(filename)
  with open(path, 'w') as manifest_file:
    manifest_file.write(text)
  logging.info('Rendered manifest file %s with contents:\n%s', path, text)
  return ApplyFile(path, server_side=server_side)


def ApplyFile(path_or_url: str, server_side: bool = False) -> List[str]:
  """Runs `kubectl apply -f` on a local file or URL."""
  cmd = ['apply']
  if server_side:
    cmd.append('--server-side')
  cmd += ['-f', path_or_url]
  stdout, _, _ = RunRetryableKubectlCommand(cmd)
  return _ParseApplyOutput(stdout)


def WaitForResource(resource: str, condition: str,
                    namespace: Optional[str] = None,
                    timeout: int = READY_TIMEOUT,
                    raise_on_failure: bool = False) -> bool:
  """Waits for a condition on a Kubernetes resource (eg: deployment, pod).

  Args:
    resource: e.g. 'pod/fiopod'.
    condition: The condition name, e.g. 'Ready' or 'Available'.
    namespace: Namespace of the resource.
    timeout: Seconds kubectl waits before giving up.
    raise_on_failure: Raise instead of warning when the wait fails.

  Returns:
    True if the condition was met.

  Raises:
    errors.Resource.NotReadyError: if the wait failed and raise_on_failure.
  """
  cmd = ['wait', '--for=condition=%s' % condition,
         '--timeout=%ds' % timeout, resource]
  if namespace:
    cmd.append('--namespace=%s' % namespace)
  _, stderr, retcode = RunKubectlCommand(
      cmd, timeout=timeout + 10, raise_on_failure=False,
      raise_on_timeout=False)
  if not retcode:
    return True
  message = '%s did not reach condition %s within %ds: %s' % (
      resource, condition, timeout, stderr.strip())
  if raise_on_failure:
    raise errors.Resource.NotReadyError(message)
  logging.warning(message)
  DescribeResource(resource, namespace=namespace)
  return False


def DescribeResource(resource: str, namespace: Optional[str] = None) -> str:
  """Logs `kubectl describe` of a resource for diagnostics."""
  cmd = ['describe'] + resource.split('/', 1)
  if namespace:
    cmd += ['-n', namespace]
  stdout, stderr, _ = RunKubectlCommand(
      cmd, raise_on_failure=False, suppress_warning=True)
  logging.info('kubectl describe %s:\n%s', resource, stdout or stderr)
  return stdout


def DeleteResource(resource: str, namespace: Optional[str] = None,
                   force: bool = False,
                   extra_args: Optional[List[str]] = None) -> None:
  """Deletes a resource, an absent resource is not an error."""
  cmd = ['delete'] + resource.split('/', 1) + ['--ignore-not-found=true']
  if namespace:
    cmd += ['-n', namespace]
  if force:
    cmd += ['--force', '--grace-period=0']
  if extra_args:
    cmd += extra_args
  RunKubectlCommand(cmd)


def DeleteAndWait(resource: str, namespace: Optional[str] = None,
                  timeout: int = DELETE_TIMEOUT) -> bool:
  """Deletes a resource and waits until it is gone.

  Deleting something that does not exist succeeds, so calling this twice in a
  row is safe.

  Args:
    resource: e.g. 'pod/fiopod'.
    namespace: Namespace of the resource.
    timeout: Seconds to wait for the resource to disappear.

  Returns:
    True if the resource is confirmed absent.
  """
  DeleteResource(resource, namespace=namespace)
  cmd = ['wait', '--for=delete', resource, '--timeout=%ds' % timeout]
  if namespace:
    cmd.append('--namespace=%s' % namespace)
  _, stderr, retcode = RunKubectlCommand(
      cmd, timeout=timeout + 10, raise_on_failure=False,
      raise_on_timeout=False, suppress_warning=True)
  if not retcode or IsNotFound(stderr):
    return True
  logging.warning('%s still present after %ds: %s', resource, timeout,
                  stderr.strip())
  return False


def ClearFinalizers(resource: str, namespace: Optional[str] = None) -> bool:
  """Strips all finalizers from a resource. Returns False on failure."""
  cmd = ['patch'] + resource.split('/', 1) + [
      '-p', CLEAR_FINALIZERS_PATCH, '--type=merge']
  if namespace:
    cmd += ['-n', namespace]
  _, _, retcode = RunKubectlCommand(
      cmd, raise_on_failure=False, suppress_warning=True)
  return retcode == 0


def Exec(pod: str, command: List[str], timeout: Optional[int] = None,
         raise_on_failure: bool = True) -> Tuple[str, str, int]:
  """Runs command inside the pod's first container."""
  return RunKubectlCommand(['exec', pod, '--'] + command, timeout=timeout,
                           raise_on_failure=raise_on_failure)


def GetPodName(selector: str, namespace: Optional[str] = None
               ) -> Optional[str]:
  """Returns the name of the first pod matching the label selector."""
  cmd = ['get', 'pods', '-l', selector, '-o',
         'jsonpath={.items[0].metadata.name}']
  if namespace:
    cmd += ['-n', namespace]
  stdout, _, retcode = RunKubectlCommand(
      cmd, raise_on_failure=False, suppress_warning=True)
  if retcode or not stdout.strip():
    return None
  return stdout.strip()


def Get(args: List[str]) -> str:
  """Runs `kubectl get <args>` for display, never raising."""
  stdout, stderr, _ = RunKubectlCommand(
      ['get'] + args, raise_on_failure=False, suppress_warning=True)
  return stdout or stderr
