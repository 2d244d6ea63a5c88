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
"""Interactive creation of an AKS cluster for Azure Container Storage."""

import collections
import logging
import sys

from absl import flags
import questionary

from acstorbench import aks_cluster
from acstorbench import azure_cli
from acstorbench import errors
from acstorbench import flag_alias
from acstorbench import log_util
from acstorbench import preflight
from acstorbench import storage

FLAGS = flags.FLAGS

TOOL_NAME = 'quickstart'
CLUSTER_NAME = 'myAKSCluster'
DEFAULT_VM_SIZE = 'Standard_D4s_v5'
DEFAULT_REGION = 'eastus2'
DEFAULT_BACKEND = storage.StorageBackend.AZURE_DISK

USAGE = """\
Usage: acstorbench-quickstart

Prompts for a subscription, resource group, VM size, region and storage
backend, then creates an AKS cluster named %s and fetches its credentials.
""" % CLUSTER_NAME

QuickstartOptions = collections.namedtuple(
    'QuickstartOptions',
    ['subscription', 'resource_group', 'vm_size', 'region', 'backend'])


class Cancelled(Exception):
  """The user aborted a prompt."""


def _Answer(question):
  answer = question.ask()
  if answer is None or answer == '':
    raise Cancelled()
  return answer


def PromptOptions():
  """Asks for every option of the deployment.

  Raises:
    Cancelled: if a prompt was aborted or left empty.
  """
  subscription = _Answer(questionary.text(
      'Please enter your Azure Subscription ID:'))
  resource_group = _Answer(questionary.text(
      'Please enter the name of the Resource Group to create:'))
  vm_size = _Answer(questionary.text(
      'Please enter the type of VM to use for the AKS Cluster:',
      default=DEFAULT_VM_SIZE))
  region = _Answer(questionary.text(
      'Please enter the region you would like your resources deployed in:',
      default=DEFAULT_REGION))
  choices = [
      questionary.Choice(storage.GetBackendInfo(backend).description,
                         value=backend)
      for backend in storage.StorageBackend]
  backend = _Answer(questionary.select(
      'Select the storage backend:', choices=choices,
      default=choices[list(storage.StorageBackend).index(DEFAULT_BACKEND)]))
  return QuickstartOptions(subscription, resource_group, vm_size, region,
                           backend)


def ConfirmOptions(options):
  print('You have entered the following details:')
  print('Subscription ID: %s' % options.subscription)
  print('Resource Group: %s' % options.resource_group)
  print('VM Type: %s' % options.vm_size)
  print('Region: %s' % options.region)
  print('Storage backend: %s' %
        storage.GetBackendInfo(options.backend).description)
  return bool(questionary.confirm('Continue with the deployment?',
                                  default=True).ask())


def Deploy(options):
  """Creates the resource group and cluster and fetches credentials.

  Raises:
    errors.Resource.CreationError: if a creation step failed.
  """
  logging.info('Setting Azure Subscription to %s...', options.subscription)
  azure_cli.SetSubscription(options.subscription)
  handle = aks_cluster.ClusterHandle(
      resource_group=options.resource_group,
      name=CLUSTER_NAME,
      region=options.region,
      vm_size=options.vm_size)
  aks_cluster.AksCluster(handle, install_storage_extension=False).Create()
  logging.info('AKS Cluster setup is complete!')
  return handle


def Main(argv=None):
  """Runs the quickstart and returns the process exit code."""
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
  if args:
    print(USAGE)
    return 1
  log_util.ConfigureLogging(log_util.LOG_LEVELS[FLAGS.log_level], None,
                            TOOL_NAME)
  print('Welcome to the Azure Container Storage quickstart!')
  try:
    preflight.Run()
    options = PromptOptions()
    storage.ValidateVmSize(options.backend, options.vm_size)
    if not ConfirmOptions(options):
      raise Cancelled()
    Deploy(options)
  except Cancelled:
    print('Deployment cancelled.')
    return 1
  except errors.Error as e:
    logging.error(str(e))
    return 1
  return 0


def main():
  sys.exit(Main())
