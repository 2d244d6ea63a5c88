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
"""Translates command line spellings that absl cannot parse directly."""

import re
from typing import Dict, List

from absl import flags

# The run modes are spelled with dashes on the command line, absl flag names
# use underscores.
HYPHENATED_FLAGS_TO_TRANSLATE = {
    'pgsql-azure-disk': 'pgsql_azure_disk',
    'force-new-cluster': 'force_new_cluster',
}

# absl reserves --help for absl.app, our entry points print their own usage.
HELP_FLAGS_TO_TRANSLATE = {
    'help': 'show_help',
    'h': 'show_help',
}

NUKE_FLAGS_TO_TRANSLATE = {
    'delete': 'nuke_delete',
    'inspect': 'nuke_inspect',
}

ALL_TRANSLATIONS = [
    HYPHENATED_FLAGS_TO_TRANSLATE,
    HELP_FLAGS_TO_TRANSLATE,
]

NUKE_TRANSLATIONS = [
    NUKE_FLAGS_TO_TRANSLATE,
    HELP_FLAGS_TO_TRANSLATE,
]

# Only match the argument name, never its value. Accepted forms:
#   --arg=Value
#   --arg
#   --noarg
#   -arg
PRIOR_ALIAS_REGEX = '(^-?-(?:no)?){0}(=.*|$)'


def _FlattenTranslationsDicts(dicts: List[Dict[str, str]]) -> Dict[str, str]:
  result = {}
  for translation_dict in dicts:
    result.update(translation_dict)
  return result


# pylint: disable=dangerous-default-value
def AliasFlagsFromArgs(
    argv: List[str], alias_dict: List[Dict[str, str]] = ALL_TRANSLATIONS
) -> List[str]:
  """Rewrites aliased flags in argv to their absl flag names."""
  original_to_translation = _FlattenTranslationsDicts(alias_dict)
  new_argv = []
  for arg in argv:
    for original, translation in original_to_translation.items():
      regex = PRIOR_ALIAS_REGEX.format(re.escape(original))
      if re.match(regex, arg):
        arg = re.sub(regex, r'\g<1>{0}\g<2>'.format(translation), arg)
        break
    new_argv.append(arg)
  return new_argv


def ParseArgs(
    argv: List[str], alias_dict: List[Dict[str, str]] = ALL_TRANSLATIONS
) -> List[str]:
  """Parses argv into flags.FLAGS.

  Args:
    argv: Full command line, program name first.
    alias_dict: Translations applied before parsing.

  Returns:
    The positional arguments, without the program name.

  Raises:
    flags.Error: on an unknown flag or an invalid flag value.
  """
  return flags.FLAGS(AliasFlagsFromArgs(argv, alias_dict))[1:]
