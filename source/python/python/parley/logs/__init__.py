from logging import Logger

from .formatter import Formatter
from .logs import (
  MODULE_LOGGERS,
  info,
  debug,
  error,
  warning,
  set_log_level,
  set_log_levels,
  get_log_levels,
  apply_log_levels,
  get_logger,
  InfoContext,
  DebugContext,
)

__all__ = [
  "MODULE_LOGGERS",
  "Formatter",
  "Logger",
  "get_logger",
  "set_log_level",
  "set_log_levels",
  "get_log_levels",
  "apply_log_levels",
  "info",
  "debug",
  "warning",
  "error",
  "InfoContext",
  "DebugContext",
]
