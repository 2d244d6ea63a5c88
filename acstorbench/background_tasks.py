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
"""Background tasks that propagate the caller's log context.

RunThreaded fans a target out over a list of parameters on a bounded thread
pool and joins every task before returning. Failures of individual tasks are
captured per task, so a caller doing best-effort work (cleanup) can inspect
them afterwards instead of losing the whole batch to the first failure.
"""

from concurrent import futures
import functools
import logging
import os
import traceback

from acstorbench import errors
from acstorbench import log_util

# Default maximum number of concurrent threads.
MAX_CONCURRENT_THREADS = 16


class TaskResult(object):
  """Outcome of a single background task.

  Attributes:
    call_string: str. Readable representation of the call.
    return_value: Return value if the call was executed successfully, or None
        otherwise.
    exception: The exception raised by the call, or None.
    traceback: The traceback string if the call raised an exception, or None
        otherwise.
  """

  def __init__(self, call_string):
    self.call_string = call_string
    self.return_value = None
    self.exception = None
    self.traceback = None

  @property
  def succeeded(self):
    return self.exception is None

  def __repr__(self):
    return 'TaskResult(%s, succeeded=%s)' % (self.call_string, self.succeeded)


def _GetCallString(target, args, kwargs):
  """Returns the string representation of a function call."""
  while isinstance(target, functools.partial):
    args = target.args + args
    inner_kwargs = target.keywords.copy()
    inner_kwargs.update(kwargs)
    kwargs = inner_kwargs
    target = target.func
  arg_strings = [str(a) for a in args]
  arg_strings.extend(['{0}={1}'.format(k, v) for k, v in kwargs.items()])
  return '{0}({1})'.format(getattr(target, '__name__', target),
                           ', '.join(arg_strings))


def _RunTask(parent_log_context, result, target, args, kwargs):
  """Runs target in a worker thread with a copy of the parent's log context."""
  log_util.SetThreadLogContext(log_util.ThreadLogContext(parent_log_context))
  try:
    result.return_value = target(*args, **kwargs)
  except Exception as e:  # pylint: disable=broad-except
    result.exception = e
    result.traceback = traceback.format_exc()
  return result


def RunParallelThreads(target_arg_tuples, max_concurrency,
                       suppress_exceptions=False):
  """Executes function calls concurrently in separate threads.

  Args:
    target_arg_tuples: list of (target, args, kwargs) tuples. Each tuple
        contains the function to call and the arguments to pass it.
    max_concurrency: int. The maximum number of concurrent threads.
    suppress_exceptions: bool. When True the failures are only logged and
        reported through the returned TaskResults.

  Returns:
    list of TaskResult in the order corresponding to the order of
    target_arg_tuples.

  Raises:
    errors.Command.ThreadException: When an exception occurred in any of the
        called functions and suppress_exceptions is False.
  """
  parent_log_context = log_util.GetThreadLogContext()
  results = [TaskResult(_GetCallString(*t)) for t in target_arg_tuples]
  max_concurrency = max(1, min(max_concurrency, len(target_arg_tuples)))
  with futures.ThreadPoolExecutor(max_workers=max_concurrency) as executor:
    pending = [
        executor.submit(_RunTask, parent_log_context, result, target, args,
                        kwargs)
        for result, (target, args, kwargs) in zip(results, target_arg_tuples)
    ]
    futures.wait(pending)

  error_strings = []
  for result in results:
    if result.traceback:
      msg = 'Exception occurred while calling {0}:{1}{2}'.format(
          result.call_string, os.linesep, result.traceback)
      if suppress_exceptions:
        logging.warning(msg)
      else:
        logging.error(msg)
      error_strings.append(msg)

  if error_strings and not suppress_exceptions:
    raise errors.Command.ThreadException(
        'The following exceptions occurred during parallel execution:'
        '{0}{1}'.format(os.linesep, os.linesep.join(error_strings)))
  return results


def RunThreaded(target, thread_params,
                max_concurrent_threads=MAX_CONCURRENT_THREADS,
                suppress_exceptions=False):
  """Runs the target method in parallel threads.

  The method starts up threads with one arg from thread_params as the first arg.

  Args:
    target: The method to invoke in the thread.
    thread_params: A thread is launched for each value in the list. The items
        in the list can either be a singleton or a (args, kwargs) tuple/list.
    max_concurrent_threads: The maximum number of concurrent threads to allow.
    suppress_exceptions: When True, a failing call does not raise; its error
        is kept on its TaskResult.

  Returns:
    List of TaskResult of the same length as thread_params, in the
    corresponding order.

  Raises:
    ValueError: when thread_params is not valid.
    errors.Command.ThreadException: When an exception occurred in any of the
        called functions and suppress_exceptions is False.

  Example:
    RunThreaded(DeleteNamespace, ['team-a', 'team-b'],
                suppress_exceptions=True)
  """
  if not isinstance(thread_params, list):
    raise ValueError('Param "thread_params" must be a list')

  if not thread_params:
    return []

  if not isinstance(thread_params[0], tuple):
    target_arg_tuples = [(target, (arg,), {}) for arg in thread_params]
  elif (not isinstance(thread_params[0][0], tuple) or
        not isinstance(thread_params[0][1], dict)):
    raise ValueError('If Param is a tuple, the tuple must be (tuple, dict)')
  else:
    target_arg_tuples = [(target, args, kwargs)
                         for args, kwargs in thread_params]

  return RunParallelThreads(target_arg_tuples,
                            max_concurrency=max_concurrent_threads,
                            suppress_exceptions=suppress_exceptions)
