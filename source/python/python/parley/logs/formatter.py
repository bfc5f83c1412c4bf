import re

from colorlog import ColoredFormatter
from datetime import datetime, timezone

DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# Identifiers of remote objects, e.g. run_abc123 or asst_abc123
REMOTE_ID_PATTERN = re.compile(r"\b(?:asst|thread|run|step|msg|call)_[A-Za-z0-9]+\b")


class Formatter(ColoredFormatter):
  """
  Colored log lines with UTC timestamps.

  Identifiers of remote objects (assistants, threads, runs, steps, messages and
  tool calls) are highlighted so that one run can be followed across lines.
  """

  GREY = "\033[38;5;245m"
  CYAN = "\033[36m"
  YELLOW = "\033[33m"
  RESET = "\033[0m"

  def __init__(self, *args, highlight_ids: bool = True, **kwargs):
    kwargs.setdefault("datefmt", DATE_FORMAT)
    super().__init__(*args, **kwargs)
    self.highlight_ids = highlight_ids

  def format(self, record):
    if record.levelname == "WARNING":
      record.levelname = f"{self.YELLOW} WARN{self.RESET}"
    return super().format(record)

  def formatTime(self, record, datefmt=None) -> str:
    created = datetime.fromtimestamp(record.created, timezone.utc)
    return created.strftime(datefmt or self.datefmt or DATE_FORMAT)

  def formatMessage(self, record) -> str:
    record.name = f"{self.GREY}{record.name}{self.RESET}"
    record.asctime = f"{self.GREY}{self.formatTime(record, self.datefmt)}{self.RESET}"
    if self.highlight_ids:
      record.message = REMOTE_ID_PATTERN.sub(lambda m: f"{self.CYAN}{m.group(0)}{self.RESET}", record.message)
    return super().formatMessage(record)
