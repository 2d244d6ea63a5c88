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
"""Utilities for working with the Azure CLI."""

import collections
import json
from typing import Dict, List

from acstorbench import cmd_util
from acstorbench import flags

FLAGS = flags.FLAGS

OUTPUT_JSON = ['--output', 'json']
OUTPUT_TSV = ['--output', 'tsv']


def AzCommand(*args) -> List[str]:
  """Returns an az command line with the configured CLI path."""
  return [FLAGS.azure_path] + list(args)


def IsLoggedIn() -> bool:
  """Returns True if the Azure CLI has an active login session."""
  _, _, retcode = cmd_util.IssueCommand(
      AzCommand('account', 'show') + OUTPUT_JSON,
      suppress_warning=True,
      raise_on_failure=False)
  return retcode == 0


def SetSubscription(subscription: str) -> None:
  cmd_util.IssueCommand(
      AzCommand('account', 'set', '--subscription', subscription))


def ListResourceGroups(pattern: str) -> List[str]:
  """Lists the resource groups whose name contains pattern."""
  stdout, _, _ = cmd_util.IssueCommand(
      AzCommand('group', 'list', '--query',
                "[?contains(name, '%s')].name" % pattern) + OUTPUT_TSV)
  return [line.strip() for line in stdout.splitlines() if line.strip()]


def GetResourceGroupLocation(resource_group: str) -> str:
  stdout, _, retcode = cmd_util.IssueCommand(
      AzCommand('group', 'show', '--name', resource_group, '--query',
                'location') + OUTPUT_TSV,
      raise_on_failure=False)
  return stdout.strip() if not retcode and stdout.strip() else 'unknown'


def ListResourceTypes(resource_group: str) -> List[str]:
  """Returns the type of every resource in the resource group."""
  stdout, _, _ = cmd_util.IssueCommand(
      AzCommand('resource', 'list', '--resource-group', resource_group,
                '--query', '[].type') + OUTPUT_JSON)
  return json.loads(stdout or '[]')


def ResourceTypeHistogram(resource_types: List[str]) -> Dict[str, int]:
  """Counts resource types, most common first."""
  return dict(collections.Counter(resource_types).most_common())


def DeleteResourceGroupCommand(resource_group: str) -> List[str]:
  """Returns the non-blocking deletion command for a resource group."""
  return AzCommand('group', 'delete', '--name', resource_group, '--yes',
                   '--no-wait')


def DeleteResourceGroup(resource_group: str) -> None:
  """Initiates deletion of a resource group without waiting for completion.

  Raises:
    errors.Command.IssueCommandError: if Azure rejected the request.
  """
  cmd_util.IssueCommand(DeleteResourceGroupCommand(resource_group))


def GetAksCredentials(resource_group: str, cluster_name: str,
                      overwrite_existing: bool = False) -> None:
  """Merges the cluster's credentials into the local kubeconfig."""
  cmd = AzCommand('aks', 'get-credentials', '--resource-group',
                  resource_group, '--name', cluster_name)
  if FLAGS.kubeconfig:
    cmd += ['--file', FLAGS.kubeconfig]
  if overwrite_existing:
    cmd.append('--overwrite-existing')
  cmd_util.IssueCommand(cmd)
