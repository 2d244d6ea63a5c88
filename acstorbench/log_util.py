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
"""Utilities related to loggers and logging."""

from contextlib import contextmanager
import logging
import os
import sys
import threading

from absl import flags
import colorlog

DEBUG = 'debug'
INFO = 'info'
WARNING = 'warning'
ERROR = 'error'
LOG_LEVELS = {
    DEBUG: logging.DEBUG,
    INFO: logging.INFO,
    WARNING: logging.WARNING,
    ERROR: logging.ERROR,
}

LOG_FILE_NAME = 'acstorbench.log'

flags.DEFINE_enum(
    'log_level',
    INFO,
    list(LOG_LEVELS.keys()),
    'The log level to run at.',
)
flags.DEFINE_enum(
    'file_log_level',
    DEBUG,
    list(LOG_LEVELS.keys()),
    'Anything logged at this level or higher will be written to the log file.',
)


class ThreadLogContext:
  """Per-thread context for log message prefix labels."""

  def __init__(self, thread_log_context=None):
    """Constructs a ThreadLogContext by copying a previous ThreadLogContext.

    Args:
      thread_log_context: A ThreadLogContext for an existing thread whose state
        will be copied to initialize a ThreadLogContext for a new thread.
    """
    if thread_log_context:
      self._label_list = thread_log_context._label_list[:]
    else:
      self._label_list = []
    self._RecalculateLabel()

  @property
  def label(self):
    return self._label

  def _RecalculateLabel(self):
    non_empty_string_list = [s for s in self._label_list if s]
    if non_empty_string_list:
      self._label = ' '.join(non_empty_string_list) + ' '
    else:
      self._label = ''

  @contextmanager
  def ExtendLabel(self, label_extension):
    """Extends the string label used to prepend log messages.

    Args:
      label_extension: A string appended to the end of the current label.
    """
    self._label_list.append(label_extension)
    self._RecalculateLabel()
    try:
      yield
    finally:
      self._label_list.pop()
      self._RecalculateLabel()


class _ThreadData(threading.local):

  def __init__(self):
    self.thread_log_context = ThreadLogContext()


thread_local = _ThreadData()


def SetThreadLogContext(thread_log_context):
  """Set the current thread's ThreadLogContext object."""
  thread_local.thread_log_context = thread_log_context


def GetThreadLogContext():
  """Get the current thread's ThreadLogContext object."""
  return thread_local.thread_log_context


class LabelLogFilter(logging.Filter):
  """Injects the thread's ThreadLogContext label as the 'label' attribute."""

  def filter(self, record):
    record.label = GetThreadLogContext().label
    return True


def ConfigureBasicLogging():
  """Initializes basic python logging before a log file is available."""
  logging.basicConfig(format='%(levelname)-8s %(message)s', level=logging.INFO)


def ConfigureLogging(stderr_log_level, log_dir, tool_name,
                     file_log_level=logging.DEBUG):
  """Configure logging.

  Note that this will destroy existing logging configuration!

  This configures python logging to emit messages to stderr and a log file.

  Args:
    stderr_log_level: Messages at this level and above are emitted to stderr.
    log_dir: Directory the verbose log file is written to. None disables the
      file handler.
    tool_name: Name of the entry point, prepended to every log line.
    file_log_level: Messages at this level and above are written to the log
      file.
  """
  stderr_format = (
      '%(asctime)s {} %(label)s%(levelname)-8s %(message)s'
  ).format(tool_name)
  stderr_color_format = (
      '%(log_color)s%(asctime)s {} %(label)s%(levelname)-8s%(reset)s '
      '%(message)s'
  ).format(tool_name)
  file_format = (
      '%(asctime)s {} %(threadName)s %(label)s'
      '%(filename)s:%(lineno)d %(levelname)-8s %(message)s'
  ).format(tool_name)

  logger = logging.getLogger()
  logger.handlers = []
  logger.setLevel(logging.DEBUG)

  # The main thread's context is the one copied into threads started through
  # background_tasks.RunThreaded.
  SetThreadLogContext(ThreadLogContext())

  handler = logging.StreamHandler()
  handler.addFilter(LabelLogFilter())
  handler.setLevel(stderr_log_level)
  if sys.stderr.isatty():
    handler.setFormatter(
        colorlog.ColoredFormatter(stderr_color_format, reset=True))
  else:
    handler.setFormatter(logging.Formatter(stderr_format))
  logger.addHandler(handler)

  if log_dir is None:
    return
  os.makedirs(log_dir, exist_ok=True)
  log_path = os.path.join(log_dir, LOG_FILE_NAME)
  logging.info('Verbose logging to: %s', log_path)
  handler = logging.FileHandler(filename=log_path)
  handler.addFilter(LabelLogFilter())
  handler.setLevel(file_log_level)
  handler.setFormatter(logging.Formatter(file_format))
  logger.addHandler(handler)


def ConfigureLoggingFromFlags(tool_name):
  """Configures logging from --log_level, --file_log_level and --results_dir."""
  ConfigureLogging(
      stderr_log_level=LOG_LEVELS[flags.FLAGS.log_level],
      log_dir=flags.FLAGS.results_dir,
      tool_name=tool_name,
      file_log_level=LOG_LEVELS[flags.FLAGS.file_log_level])
