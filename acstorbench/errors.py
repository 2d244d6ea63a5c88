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

"""A common location for all acstorbench-defined exceptions."""


class Error(Exception):
  pass


class Setup(object):
  """Errors raised while checking prerequisites, before any side effect."""

  class MissingExecutableError(Error):
    """Error raised when we cannot find an executable we need."""
    pass

  class NotLoggedInError(Error):
    """Error raised when the Azure CLI has no active login session."""
    pass

  class NoClusterContextError(Error):
    """Error raised when kubectl cannot reach any cluster."""
    pass


class Command(object):
  """Errors raised by cmd_util.py."""

  class IssueCommandError(Error):
    pass

  class IssueCommandTimeoutError(Error):
    pass

  class ThreadException(Error):
    pass


class Resource(object):
  """Errors related to resource creation and deletion."""

  class CreationError(Error):
    """An error on creation which is not retryable."""
    pass

  class NotReadyError(Error):
    """A resource did not reach the requested condition in time."""
    pass


class Benchmarks(object):
  """Errors raised by individual benchmarks."""

  class RunError(Error):
    pass


class Config(object):
  """Errors related to configs."""

  class InvalidValue(Error):
    """User provided an invalid value for a config option."""
    pass
