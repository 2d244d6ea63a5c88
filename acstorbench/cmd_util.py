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

"""Set of utility functions for running local commands and polling."""

import functools
import logging
import random
import shutil
import subprocess
import tempfile
import threading
import time

from acstorbench import errors
from acstorbench import flags

FLAGS = flags.FLAGS

# Default timeout for issuing a command.
DEFAULT_TIMEOUT = 300

# Defaults for retrying commands.
POLL_INTERVAL = 30
FUZZ = .5
MAX_RETRIES = -1


class RetryError(errors.Error):
  """Base class for errors raised when Retry gives up."""


class TimeoutExceededRetryError(RetryError):
  """Exception that is raised when a retryable function times out."""


class RetriesExceededRetryError(RetryError):
  """Exception that is raised when a retryable function hits its retry limit."""


def Retry(poll_interval=POLL_INTERVAL, max_retries=MAX_RETRIES,
          timeout=None, fuzz=FUZZ, log_errors=True,
          retryable_exceptions=None, backoff=1.0, max_poll_interval=None):
  """A function decorator that will retry when exceptions are thrown.

  Args:
    poll_interval: The time between the first two tries in seconds. This is
        the maximum poll interval when fuzz is specified.
    max_retries: The maximum number of retries before giving up. If -1, this
        means continue until the timeout is reached. The function will stop
        retrying when either max_retries is met or timeout is reached.
    timeout: The timeout for all tries in seconds. If -1, this means continue
        until max_retries is met. If None, --default_timeout is used.
    fuzz: The amount of randomness in the sleep time. This is used to
        keep threads from all retrying at the same time. At 0, this
        means sleep exactly poll_interval seconds. At 1, this means
        sleep anywhere from 0 to poll_interval seconds.
    log_errors: A boolean describing whether errors should be logged.
    retryable_exceptions: A tuple of exceptions that should be retried. By
        default, this is None, which indicates that all exceptions should
        be retried.
    backoff: Multiplier applied to the poll interval after every failed try.
        1.0 keeps a fixed interval.
    max_poll_interval: Upper bound of the poll interval when backoff grows it.

  Returns:
    A function that wraps functions in retry logic. It can be
        used as a decorator.

  Raises:
    TimeoutExceededRetryError: when the timeout is exhausted.
    RetriesExceededRetryError: when max_retries is exhausted.
  """
  if retryable_exceptions is None:
    retryable_exceptions = Exception

  def Wrap(f):
    """Wraps the supplied function with retry logic."""

    @functools.wraps(f)
    def WrappedFunction(*args, **kwargs):
      """Holds the retry logic."""
      local_timeout = FLAGS.default_timeout if timeout is None else timeout

      if local_timeout >= 0:
        deadline = time.time() + local_timeout
      else:
        deadline = float('inf')

      tries = 0
      interval = poll_interval
      while True:
        try:
          tries += 1
          return f(*args, **kwargs)
        except retryable_exceptions as e:
          fuzz_multiplier = 1 - fuzz + random.random() * fuzz
          sleep_time = interval * fuzz_multiplier
          if (time.time() + sleep_time) >= deadline:
            raise TimeoutExceededRetryError(
                'Timed out after %s tries of %s' % (tries, f.__name__)) from e
          if max_retries >= 0 and tries > max_retries:
            raise RetriesExceededRetryError(
                'Gave up after %s tries of %s' % (tries, f.__name__)) from e
          if log_errors:
            logging.info('Retrying exception running %s: %s', f.__name__, e)
          time.sleep(sleep_time)
          interval *= backoff
          if max_poll_interval is not None:
            interval = min(interval, max_poll_interval)
    return WrappedFunction
  return Wrap


class _ConditionNotMet(Exception):
  pass


def WaitUntil(condition, poll_interval=10, max_attempts=-1, timeout=-1,
              backoff=1.0, max_poll_interval=None):
  """Polls condition until it returns a truthy value.

  This is the single bounded-wait contract used for asynchronous readiness:
  it never raises because the wait ran out, the caller decides whether an
  exhausted wait is a warning or fatal.

  Args:
    condition: Callable taking no arguments. Exceptions it raises propagate.
    poll_interval: Seconds between the first two attempts.
    max_attempts: Maximum number of calls to condition, -1 for no limit.
    timeout: Overall bound in seconds, -1 for no limit.
    backoff: See Retry.
    max_poll_interval: See Retry.

  Returns:
    True if condition was met, False if the bound was exhausted.
  """
  if max_attempts < 0 and timeout < 0:
    raise ValueError('WaitUntil needs max_attempts or timeout to be bounded.')

  @Retry(poll_interval=poll_interval,
         max_retries=max_attempts - 1 if max_attempts > 0 else -1,
         timeout=timeout, fuzz=0, log_errors=False,
         retryable_exceptions=(_ConditionNotMet,), backoff=backoff,
         max_poll_interval=max_poll_interval)
  def _Poll():
    if not condition():
      raise _ConditionNotMet()

  try:
    _Poll()
  except RetryError:
    return False
  return True


def IssueCommand(cmd, force_info_log=False, suppress_warning=False,
                 env=None, timeout=DEFAULT_TIMEOUT, cwd=None,
                 raise_on_failure=True, suppress_failure=None,
                 raise_on_timeout=True):
  """Tries running the provided command once.

  Args:
    cmd: A list of strings such as is given to the subprocess.Popen()
        constructor.
    force_info_log: A boolean indicating whether the command result should
        always be logged at the info level. Command results will always be
        logged at the debug level if they aren't logged at another level.
    suppress_warning: A boolean indicating whether the results should
        not be logged at the info level in the event of a non-zero
        return code. When force_info_log is True, the output is logged
        regardless of suppress_warning's value.
    env: A dict of key/value strings, such as is given to the subprocess.Popen()
        constructor, that contains environment variables to be injected.
    timeout: Timeout for the command in seconds. If the command has not finished
        before the timeout is reached, it will be killed. Set timeout to None to
        let the command run indefinitely.
    cwd: Directory in which to execute the command.
    raise_on_failure: A boolean indicating if non-zero return codes should raise
        IssueCommandError.
    suppress_failure: A function passed (stdout, stderr, ret_code) for non-zero
        return codes to determine if the failure should be suppressed e.g. a
        delete command which fails because the item to be deleted does not
        exist.
    raise_on_timeout: A boolean indicating if killing the process due to the
        timeout being hit should raise a IssueCommandTimeoutError

  Returns:
    A tuple of stdout, stderr, and retcode from running the provided command.

  Raises:
    IssueCommandError: When raise_on_failure=True and retcode is non-zero.
    IssueCommandTimeoutError:  When raise_on_timeout=True and
                               command duration exceeds timeout
  """
  if env:
    logging.debug('Environment variables: %s', env)

  full_cmd = ' '.join(cmd)
  logging.info('Running: %s', full_cmd)

  with tempfile.TemporaryFile() as tf_out, tempfile.TemporaryFile() as tf_err:
    try:
      process = subprocess.Popen(cmd, env=env, stdin=subprocess.DEVNULL,
                                 stdout=tf_out, stderr=tf_err, cwd=cwd)
    except OSError as e:
      raise errors.Command.IssueCommandError(
          'Failed to start "%s": %s' % (full_cmd, e)) from e

    did_timeout = threading.Event()

    def _KillProcess():
      did_timeout.set()
      if not raise_on_timeout:
        logging.warning('IssueCommand timed out after %d seconds. '
                        'Killing command "%s".', timeout, full_cmd)
      process.kill()

    timer = None
    if timeout is not None:
      timer = threading.Timer(timeout, _KillProcess)
      timer.start()
    try:
      process.wait()
    finally:
      if timer:
        timer.cancel()

    tf_out.seek(0)
    stdout = tf_out.read().decode('utf-8', 'ignore')
    tf_err.seek(0)
    stderr = tf_err.read().decode('utf-8', 'ignore')

  debug_text = ('Ran: {%s}\nReturnCode:%s\nSTDOUT: %s\nSTDERR: %s' %
                (full_cmd, process.returncode, stdout, stderr))
  if force_info_log or (process.returncode and not suppress_warning):
    logging.info(debug_text)
  else:
    logging.debug(debug_text)

  # Timeouts are raised regardless of raise_on_failure, which only covers
  # failures of the command itself.
  if did_timeout.is_set() and raise_on_timeout:
    raise errors.Command.IssueCommandTimeoutError(
        '{0}\nIssueCommand timed out after {1} seconds.'.format(
            debug_text, timeout))
  elif process.returncode and (raise_on_failure or suppress_failure):
    if (suppress_failure and
        suppress_failure(stdout, stderr, process.returncode)):
      return stdout, '', 0
    if raise_on_failure:
      raise errors.Command.IssueCommandError(debug_text)

  return stdout, stderr, process.returncode


@Retry()
def ExecutableOnPath(executable_name):
  """Return True if the given executable can be found on the path."""
  return shutil.which(executable_name) is not None


def GenerateRandomHex(num_bytes=4):
  """Returns 2 * num_bytes random lowercase hex characters."""
  return '%0*x' % (num_bytes * 2, random.getrandbits(num_bytes * 8))
