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
"""Tests for acstorbench.cmd_util."""

import unittest

from absl.testing import absltest
from acstorbench import cmd_util
from acstorbench import errors
from tests import acstorbench_common_test_case


class IssueCommandTestCase(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testTimeoutNotReached(self):
    _, _, retcode = cmd_util.IssueCommand(['sleep', '0'])
    self.assertEqual(retcode, 0)

  def testStdoutCaptured(self):
    stdout, stderr, retcode = cmd_util.IssueCommand(['echo', 'hello'])
    self.assertEqual(stdout, 'hello\n')
    self.assertEqual(stderr, '')
    self.assertEqual(retcode, 0)

  def testTimeoutReachedThrows(self):
    with self.assertRaises(errors.Command.IssueCommandTimeoutError):
      cmd_util.IssueCommand(['sleep', '5'], timeout=0.5,
                            raise_on_failure=False)

  def testTimeoutReached(self):
    _, _, retcode = cmd_util.IssueCommand(['sleep', '5'], timeout=0.5,
                                          raise_on_failure=False,
                                          raise_on_timeout=False)
    self.assertEqual(retcode, -9)

  def testRaiseOnFailureSuppressed_NoException(self):
    def _SuppressFailure(stdout, stderr, retcode):
      del stdout, stderr
      self.assertNotEqual(retcode, 0)
      return True

    stdout, stderr, retcode = cmd_util.IssueCommand(
        ['cat', 'non_existent_file'], suppress_failure=_SuppressFailure)
    self.assertEqual(stdout, '')
    self.assertEqual(stderr, '')
    self.assertEqual(retcode, 0)

  def testRaiseOnFailureWithNoSuppression_ExceptionRaised(self):
    with self.assertRaises(errors.Command.IssueCommandError) as cm:
      cmd_util.IssueCommand(['cat', 'non_existent_file'])
    self.assertIn('non_existent_file', str(cm.exception))

  def testNoRaiseOnFailure(self):
    _, stderr, retcode = cmd_util.IssueCommand(['cat', 'non_existent_file'],
                                               raise_on_failure=False)
    self.assertNotEqual(retcode, 0)
    self.assertIn('non_existent_file', stderr)

  def testMissingExecutable(self):
    with self.assertRaises(errors.Command.IssueCommandError):
      cmd_util.IssueCommand(['acstorbench-no-such-binary'])


class RetryTestCase(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testSucceedsAfterRetries(self):
    calls = []

    @cmd_util.Retry(poll_interval=1, max_retries=3, timeout=-1)
    def _Flaky():
      calls.append(1)
      if len(calls) < 3:
        raise ValueError('not yet')
      return 'done'

    self.assertEqual(_Flaky(), 'done')
    self.assertLen(calls, 3)
    self.assertEqual(self.mock_sleep.call_count, 2)

  def testRetriesExceeded(self):

    @cmd_util.Retry(poll_interval=1, max_retries=2, timeout=-1)
    def _AlwaysFails():
      raise ValueError('never')

    with self.assertRaises(cmd_util.RetriesExceededRetryError):
      _AlwaysFails()

  def testTimeoutExceeded(self):

    @cmd_util.Retry(poll_interval=10, timeout=0)
    def _AlwaysFails():
      raise ValueError('never')

    with self.assertRaises(cmd_util.TimeoutExceededRetryError):
      _AlwaysFails()

  def testGivingUpIsAnError(self):

    @cmd_util.Retry(poll_interval=1, timeout=0)
    def _Unreachable():
      raise errors.Command.IssueCommandTimeoutError('dial tcp')

    with self.assertRaises(errors.Error):
      _Unreachable()

  def testNonRetryableExceptionPropagates(self):

    @cmd_util.Retry(poll_interval=1, max_retries=5, timeout=-1,
                    retryable_exceptions=(ValueError,))
    def _Raises():
      raise KeyError('fatal')

    with self.assertRaises(KeyError):
      _Raises()
    self.mock_sleep.assert_not_called()

  def testBackoffCappedByMaxPollInterval(self):

    @cmd_util.Retry(poll_interval=1, max_retries=4, timeout=-1, fuzz=0,
                    backoff=2.0, max_poll_interval=3)
    def _AlwaysFails():
      raise ValueError('never')

    with self.assertRaises(cmd_util.RetriesExceededRetryError):
      _AlwaysFails()
    self.assertEqual([c.args[0] for c in self.mock_sleep.call_args_list],
                     [1, 2, 3, 3])


class WaitUntilTestCase(acstorbench_common_test_case.AcstorbenchCommonTestCase):

  def testConditionMet(self):
    results = iter([False, False, True])
    self.assertTrue(cmd_util.WaitUntil(lambda: next(results),
                                       max_attempts=5))
    self.assertEqual(self.mock_sleep.call_count, 2)

  def testAttemptsExhausted(self):
    calls = []

    def _Never():
      calls.append(1)
      return False

    self.assertFalse(cmd_util.WaitUntil(_Never, poll_interval=10,
                                        max_attempts=60))
    self.assertLen(calls, 60)

  def testUnboundedRaises(self):
    with self.assertRaises(ValueError):
      cmd_util.WaitUntil(lambda: True)


class GenerateRandomHexTestCase(absltest.TestCase):

  def testLength(self):
    suffix = cmd_util.GenerateRandomHex(4)
    self.assertLen(suffix, 8)
    self.assertRegex(suffix, r'^[0-9a-f]{8}$')


if __name__ == '__main__':
  unittest.main()
