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
"""Utilities for extracting benchmark results using regular expression."""

import re

# From https://docs.python.org/3/library/re.html#simulating-scanf.
FLOAT_REGEX = r'[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?'


class NoMatchError(ValueError):
  """Raised when no matches for a regex are found within a string."""
  pass


def ExtractGroup(regex, text, group=1, flags=0):
  """Extracts a group from a regular expression matched to 'text'.

  Args:
    regex: string or regexp pattern. Regular expression.
    text: string. Text to search.
    group: int. Group to return. Use '0' for the whole match.
    flags: int. Flags to pass to re.search().
  Returns:
    The string matched by 'group'.
  Raises:
    NoMatchError: when 'regex' does not match 'text'.
    IndexError: when 'group' is not present in the match.
  """
  match = re.search(regex, text, flags=flags)
  if not match:
    raise NoMatchError('No match for pattern "{0}" in "{1}"'.format(
        regex, text))

  try:
    return match.group(group)
  except IndexError as e:
    raise IndexError('No such group {0} in "{1}".'.format(group, regex)) from e


def ExtractFloat(regex, text, group=1, flags=0):
  """Extracts a float from a regular expression matched to 'text'."""
  return float(ExtractGroup(regex, text, group=group, flags=flags))


def ExtractAllMatches(regex, text, flags=0):
  """Extracts all matches from a regular expression matched within 'text'.

  Returns a list of strings if regex does not contain any capturing groups,
  matching the behavior of re.findall.

  Args:
    regex: string. Regular expression.
    text: string. Text to search.
    flags: int. Flags to pass to re.findall().
  Returns:
    A list of tuples of strings that matched by 'regex' within 'text'.
  Raises:
    NoMatchError: when 'regex' does not match 'text'.
  """
  match = re.findall(regex, text, flags=flags)
  if not match:
    raise NoMatchError('No match for pattern "{0}" in "{1}"'.format(
        regex, text))
  return match


def ExtractMatchingLines(regex, text):
  """Returns the stripped lines of 'text' on which 'regex' matches.

  Unlike the other helpers an empty result is not an error, the caller decides
  whether a summary without any matching line is acceptable.
  """
  pattern = re.compile(regex)
  return [line.strip() for line in text.splitlines() if pattern.search(line)]
