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
"""Destructive cleanup of stale kubectl contexts and Azure resource groups.

Every mode previews by default and only deletes with --delete. A preview never
issues a delete; a destructive sweep issues exactly one delete per stale
context or matching resource group and reports each outcome, so one failure
does not stop the others.

Usage:
  acstorbench-nuke contexts              # preview context cleanup
  acstorbench-nuke resources --inspect   # preview with resource details
  acstorbench-nuke resources --delete    # delete matching resource groups
"""

import collections
import logging
import re
import sys
import time

from absl import flags
import colorlog

from acstorbench import azure_cli
from acstorbench import errors
from acstorbench import flag_alias
from acstorbench import kubectl
from acstorbench import log_util
from acstorbench import preflight

flags.DEFINE_boolean('nuke_delete', False,
                     'Actually execute destructive operations. Also --delete.')
flags.DEFINE_boolean('nuke_inspect', False,
                     'Show detailed resource information in the resources '
                     'mode. Also --inspect.')
flags.DEFINE_string('nuke_pattern', 'acstorbench-',
                    'Resource groups whose name contains this are swept.')

FLAGS = flags.FLAGS

CONTEXTS = 'contexts'
RESOURCES = 'resources'
MODES = (CONTEXTS, RESOURCES)

# Seconds a probed context status stays valid.
CACHE_TIMEOUT = 300
PROBE_TIMEOUT = 3

ACTIVE = 'active'
UNREACHABLE = 'unreachable'
ERROR = 'error'
STALE_STATUSES = (UNREACHABLE, ERROR)

# AKS contexts are named <cluster>_<resource group>_<suffix>.
_AKS_CONTEXT_REGEX = r'^(.+)_(.+)_(.+)$'
_UNKNOWN_CONTEXT_ERRORS = ('context was not found', 'does not exist',
                           'no context exists')

USAGE = """\
Usage: acstorbench-nuke [OPTIONS] [MODE]

Nuke - destructive operations utility

MODES:
  contexts     Clean up stale/unreachable kubectl contexts
  resources    Delete all Azure resource groups matching the pattern

OPTIONS:
  --delete         Actually execute destructive operations (DANGEROUS!)
  --inspect        Show detailed resource information (use with resources)
  --nuke_pattern   Substring of the resource group names (default: %s)
  --help, -h       Show this help message

By default, operations run in preview mode and change nothing.
WARNING: Operations with --delete are DESTRUCTIVE and cannot be undone!
"""

ContextSweepResult = collections.namedtuple(
    'ContextSweepResult', ['active', 'stale', 'deleted', 'failed'])
ResourceSweepResult = collections.namedtuple(
    'ResourceSweepResult', ['groups', 'total_resources', 'initiated',
                            'failed'])


def Print(message, color=None):
  """Prints a report line, colored when stdout is a terminal."""
  if color and sys.stdout.isatty():
    message = '%s%s%s' % (colorlog.escape_codes[color], message,
                          colorlog.escape_codes['reset'])
  print(message)


class ContextStatusCache(object):
  """Reachability of kubectl contexts, each entry valid for a fixed window.

  Attributes:
    timeout: Seconds an entry stays valid.
  """

  def __init__(self, timeout=CACHE_TIMEOUT, clock=time.time):
    self.timeout = timeout
    self._clock = clock
    self._entries = {}

  def Get(self, context):
    """Returns the cached status, None if missing or expired."""
    entry = self._entries.get(context)
    if entry is None:
      return None
    status, checked_at = entry
    if self._clock() - checked_at >= self.timeout:
      return None
    return status

  def Put(self, context, status):
    self._entries[context] = (status, self._clock())

  def Evict(self, context):
    self._entries.pop(context, None)

  def __contains__(self, context):
    return self.Get(context) is not None

  def __len__(self):
    return len(self._entries)


def ListContexts():
  stdout, _, retcode = kubectl.RunKubectlCommand(
      ['config', 'get-contexts', '-o', 'name'], raise_on_failure=False,
      suppress_warning=True)
  if retcode:
    return []
  return [line.strip() for line in stdout.splitlines() if line.strip()]


def ProbeContext(context, cache=None, timeout=PROBE_TIMEOUT):
  """Returns active, unreachable or error for a kubectl context.

  A fresh cached status is returned without probing; a probed status is
  stored in the cache.
  """
  if cache is not None:
    status = cache.Get(context)
    if status is not None:
      return status
  try:
    _, stderr, retcode = kubectl.RunKubectlCommand(
        ['cluster-info'], context=context, timeout=timeout,
        raise_on_failure=False, suppress_warning=True)
  except errors.Command.IssueCommandTimeoutError:
    status = UNREACHABLE
  else:
    if not retcode:
      status = ACTIVE
    elif any(e in stderr for e in _UNKNOWN_CONTEXT_ERRORS):
      status = ERROR
    else:
      status = UNREACHABLE
  if cache is not None:
    cache.Put(context, status)
  return status


def ParseAksContext(context):
  """Returns (resource group, cluster) of an AKS style context name or None."""
  match = re.match(_AKS_CONTEXT_REGEX, context)
  if not match:
    return None
  return match.group(2), match.group(1)


def DeleteContext(context):
  _, _, retcode = kubectl.RunKubectlCommand(
      ['config', 'delete-context', context], raise_on_failure=False)
  return retcode == 0


def PrintBanner(delete):
  if delete:
    Print('=' * 59, 'red')
    Print('  DESTRUCTIVE MODE ACTIVE: changes WILL be made and are PERMANENT',
          'red')
    Print('=' * 59, 'red')
  else:
    Print('=' * 59, 'green')
    Print('  PREVIEW MODE (DEFAULT): no changes will be made', 'green')
    Print('=' * 59, 'green')
  Print('')


def _Progress(delete, message):
  if delete:
    Print('EXECUTING: %s' % message, 'yellow')
  else:
    Print('PREVIEW: %s' % message, 'green')


def SweepContexts(delete=False, cache=None):
  """Finds unreachable kubectl contexts and deletes them when delete is set.

  Args:
    delete: Delete the stale contexts instead of only reporting them.
    cache: ContextStatusCache consulted before probing a context.

  Returns:
    A ContextSweepResult.

  Raises:
    errors.Setup.NoClusterContextError: if kubectl knows no context.
  """
  cache = cache if cache is not None else ContextStatusCache()
  PrintBanner(delete)
  Print('Kubectl Context Cleanup%s' % (' - DESTRUCTIVE MODE' if delete
                                       else ' Preview'),
        'red' if delete else 'cyan')
  contexts = ListContexts()
  if not contexts:
    raise errors.Setup.NoClusterContextError('No kubectl contexts found!')
  _Progress(delete, 'Scanning %d kubectl contexts for stale/unreachable '
            'clusters...' % len(contexts))

  active, stale = [], []
  for i, context in enumerate(contexts, 1):
    logging.info('[%d/%d] Testing: %s', i, len(contexts), context)
    if ProbeContext(context, cache) in STALE_STATUSES:
      stale.append(context)
    else:
      active.append(context)

  if not stale:
    Print('No stale contexts found!', 'green')
    Print('All %d kubectl contexts are reachable.' % len(contexts), 'blue')
    return ContextSweepResult(active, stale, [], [])

  Print('Contexts Summary:', 'white')
  Print('  Active contexts: %d' % len(active), 'green')
  Print('  Stale contexts: %d' % len(stale), 'red')
  if not delete and active:
    Print('Active contexts (will be kept):', 'white')
    for context in active:
      Print('  %s' % context, 'green')
  Print('Stale contexts (%s):' % ('will be deleted' if delete
                                  else 'would be deleted'), 'white')
  for context in stale:
    Print('  %s' % context, 'red' if delete else 'yellow')
    aks = ParseAksContext(context)
    if aks:
      Print('     RG: %s | Cluster: %s' % aks, 'blue')

  if not delete:
    Print('PREVIEW SUMMARY:', 'green')
    Print('  Would delete %d stale context(s)' % len(stale), 'green')
    Print('  Would keep %d active context(s)' % len(active), 'green')
    Print('  Run with --delete to execute these changes', 'blue')
    return ContextSweepResult(active, stale, [], [])

  Print('Deleting stale contexts...', 'yellow')
  deleted, failed = [], []
  for context in stale:
    if DeleteContext(context):
      Print('Deleted: %s' % context, 'green')
      deleted.append(context)
      cache.Evict(context)
    else:
      Print('Failed to delete: %s' % context, 'red')
      failed.append(context)
  Print('Successfully deleted %d context(s).' % len(deleted), 'green')
  return ContextSweepResult(active, stale, deleted, failed)


def _InspectResourceGroup(resource_group, delete):
  """Prints location and resource types; returns the resource count."""
  location = azure_cli.GetResourceGroupLocation(resource_group)
  try:
    resource_types = azure_cli.ListResourceTypes(resource_group)
  except errors.Command.IssueCommandError:
    logging.warning('Could not list the resources of %s', resource_group)
    resource_types = []
  Print('     Location: %s | Resources: %d' % (location, len(resource_types)),
        'blue')
  if not delete and resource_types:
    Print('     Resource types:', 'blue')
    for resource_type, count in azure_cli.ResourceTypeHistogram(
        resource_types).items():
      Print('       %4d %s' % (count, resource_type), 'blue')
  return len(resource_types)


def SweepResourceGroups(delete=False, inspect=False, pattern=None):
  """Deletes (or previews deleting) the resource groups matching pattern.

  Deletions are not awaited: az returns once Azure accepted the request.

  Args:
    delete: Issue the deletions instead of only reporting them.
    inspect: Also report location and resources of each group.
    pattern: Substring of the resource group names, --nuke_pattern if unset.

  Returns:
    A ResourceSweepResult.
  """
  pattern = pattern or FLAGS.nuke_pattern
  PrintBanner(delete)
  Print('Azure Resource Group Deletion%s' % (' - DESTRUCTIVE MODE' if delete
                                             else ' Preview'),
        'red' if delete else 'cyan')
  _Progress(delete, "Scanning for resource groups matching pattern '%s*'..." %
            pattern)
  groups = azure_cli.ListResourceGroups(pattern)
  if not groups:
    Print('No matching resource groups found!', 'green')
    Print("No resource groups matching '%s*' pattern." % pattern, 'blue')
    return ResourceSweepResult([], 0, [], [])

  if delete:
    Print('Found %d resource groups that will be PERMANENTLY deleted:' %
          len(groups), 'yellow')
  else:
    Print('Found %d resource groups matching pattern:' % len(groups), 'white')
  total_resources = 0
  for resource_group in groups:
    Print('  %s' % resource_group, 'red' if delete else 'yellow')
    if inspect:
      total_resources += _InspectResourceGroup(resource_group, delete)

  if not delete:
    Print('PREVIEW SUMMARY:', 'green')
    Print('  Would delete %d resource group(s)' % len(groups), 'green')
    if inspect:
      Print('  Total resources affected: %d' % total_resources, 'green')
      Print("  Estimated cost impact: Run 'az consumption usage list' for "
            'cost analysis', 'yellow')
    else:
      Print('  Use --inspect to see detailed resource information', 'blue')
    Print('  Run with --delete to execute these deletions', 'red')
    Print('Remember: Resource group deletion is PERMANENT and IRREVERSIBLE!',
          'red')
    return ResourceSweepResult(groups, total_resources, [], [])

  Print('This will DELETE ALL RESOURCES in these groups!', 'red')
  if inspect:
    Print('Total resources to be deleted: %d' % total_resources, 'red')
  Print('Deleting resource groups (no-wait mode)...', 'yellow')
  initiated, failed = [], []
  for resource_group in groups:
    try:
      azure_cli.DeleteResourceGroup(resource_group)
    except errors.Command.IssueCommandError as e:
      logging.debug('Deletion of %s failed: %s', resource_group, e)
      Print('Failed to delete: %s' % resource_group, 'red')
      failed.append(resource_group)
    else:
      Print('Deletion initiated: %s' % resource_group, 'green')
      initiated.append(resource_group)
  Print('Successfully initiated deletion of %d resource group(s).' %
        len(initiated), 'green')
  Print('Note: Deletions are running in the background and may take several '
        'minutes to complete.', 'blue')
  return ResourceSweepResult(groups, total_resources, initiated, failed)


def PrintUsage():
  Print(USAGE % FLAGS.nuke_pattern)


def Main(argv=None):
  """Runs the nuke utility and returns the process exit code."""
  argv = sys.argv if argv is None else argv
  log_util.ConfigureBasicLogging()
  try:
    modes = flag_alias.ParseArgs(argv, flag_alias.NUKE_TRANSLATIONS)
  except flags.Error as e:
    Print('Unknown option: %s' % e, 'red')
    PrintUsage()
    return 1
  if FLAGS.show_help:
    PrintUsage()
    return 0
  unknown = [m for m in modes if m not in MODES]
  if unknown:
    Print('Unknown option: %s' % unknown[0], 'red')
    PrintUsage()
    return 1
  if len(modes) > 1:
    Print('Multiple modes specified: %s' % ' and '.join(modes), 'red')
    return 1
  if not modes:
    PrintUsage()
    return 0
  log_util.ConfigureLogging(log_util.LOG_LEVELS[FLAGS.log_level], None,
                            'nuke')

  try:
    if modes[0] == CONTEXTS:
      preflight.Run(need_azure=False)
      SweepContexts(FLAGS.nuke_delete, ContextStatusCache())
    else:
      preflight.Run(need_kubectl=False)
      SweepResourceGroups(FLAGS.nuke_delete, FLAGS.nuke_inspect)
  except errors.Setup.NotLoggedInError as e:
    Print('Not logged into Azure CLI: %s' % e, 'red')
    return 1
  except errors.Error as e:
    Print(str(e), 'red')
    return 1
  return 0


def main():
  sys.exit(Main())
