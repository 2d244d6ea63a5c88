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
"""Module containing abstract class for reliable resources.

The Resource class wraps unreliable create commands in a lifecycle so that
callers can bring up cloud and cluster objects with a uniform Create().
Readiness is polled with a bounded wait; what happens when the bound is
exhausted is decided by the subclass. Teardown is not part of the lifecycle,
it is done by the cleanup tools.
"""

import abc

from acstorbench import cmd_util
from acstorbench import errors


class BaseResource(metaclass=abc.ABCMeta):
  """An object representing something that can be created.

  Attributes:
    created: True if the resource has been created.
    ready: True if the resource reported ready within READY_TIMEOUT.
  """

  # Timeout in seconds for resource to be ready.
  READY_TIMEOUT = 300
  # Time between readiness polls.
  POLL_INTERVAL = 5

  def __init__(self):
    self.created = False
    self.ready = False

  @abc.abstractmethod
  def _Create(self):
    """Creates the underlying resource."""
    raise NotImplementedError()

  def _IsReady(self):
    """Return true if the underlying resource is ready.

    Supplying this method is optional. If the subclass does not implement
    it then it just returns true.
    """
    return True

  def _OnReadyTimeout(self):
    """Called when the resource did not become ready within READY_TIMEOUT."""
    raise errors.Resource.NotReadyError(
        '%s was not ready after %s seconds.' % (self, self.READY_TIMEOUT))

  def _PostCreate(self):
    """Method that will be called once the resource is created and ready."""
    pass

  def _CreateDependencies(self):
    """Method that will be called once before _Create() is called."""
    pass

  def _CreateResource(self):
    """Creates the underlying resource once, creation is never retried."""
    if self.created:
      return
    self._Create()
    self.created = True

  def _WaitUntilReady(self):
    """Polls _IsReady until it succeeds or READY_TIMEOUT is exhausted."""
    self.ready = cmd_util.WaitUntil(
        self._IsReady, poll_interval=self.POLL_INTERVAL,
        timeout=self.READY_TIMEOUT)
    if not self.ready:
      self._OnReadyTimeout()

  def Create(self):
    """Creates a resource and its dependencies, then waits until it is ready."""
    self._CreateDependencies()
    self._CreateResource()
    self._WaitUntilReady()
    self._PostCreate()
