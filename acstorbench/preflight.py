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
"""Checks that run before any command with side effects."""

import logging

from acstorbench import azure_cli
from acstorbench import cmd_util
from acstorbench import errors
from acstorbench import flags

FLAGS = flags.FLAGS


def CheckExecutables(executables):
  """Raises if any of the executables is not on the PATH.

  Raises:
    errors.Setup.MissingExecutableError: naming the first missing executable.
  """
  for executable in executables:
    if not cmd_util.ExecutableOnPath(executable):
      raise errors.Setup.MissingExecutableError(
          'Could not find required executable "%s". Please install it and '
          'make sure it is on your PATH.' % executable)


def CheckAzureLogin():
  """Raises errors.Setup.NotLoggedInError without an az login session."""
  if not azure_cli.IsLoggedIn():
    raise errors.Setup.NotLoggedInError(
        "You are not logged in to Azure. Please run 'az login' to log in.")


def Run(need_azure=True, need_kubectl=True, need_login=None):
  """Verifies the CLI tools and, when Azure is needed, the login session.

  Args:
    need_azure: Whether the Azure CLI is required.
    need_kubectl: Whether kubectl is required.
    need_login: Whether an active az login is required. Defaults to
      need_azure.
  """
  executables = []
  if need_azure:
    executables.append(FLAGS.azure_path)
  if need_kubectl:
    executables.append(FLAGS.kubectl)
  CheckExecutables(executables)
  if need_azure if need_login is None else need_login:
    CheckAzureLogin()
  logging.info('Preflight checks passed.')
