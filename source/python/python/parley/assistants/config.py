"""
Configuration for the Assistants service.

Values can be passed explicitly or resolved from the environment with
AssistantConfiguration.from_env().

Environment Variables:
- OPENAI_API_KEY: API key (direct value, highest priority)
- OPENAI_API_KEY_FILE: Path to a file containing the API key (for mounted secrets)
- AZURE_OPENAI_ENDPOINT: Azure OpenAI endpoint. When set, the Azure client is used
- OPENAI_API_VERSION: API version (required by Azure OpenAI)
- PARLEY_RUN_POLLING_INTERVAL: Seconds between polls once a run is under way (default: 0.5)
- PARLEY_RUN_POLLING_BACKOFF: Seconds between the first two polls of a run (default: 1.0)
- PARLEY_MESSAGE_SYNCHRONIZATION_DELAY: Seconds to wait before fetching a message again
  when the service does not know it yet (default: 0.5)
"""

import os
from dataclasses import dataclass, field
from typing import Optional

import httpx

from ..logs import get_logger

logger = get_logger("client")

DEFAULT_RUN_POLLING_INTERVAL = 0.5
DEFAULT_RUN_POLLING_BACKOFF = 1.0
DEFAULT_MESSAGE_SYNCHRONIZATION_DELAY = 0.5


@dataclass(frozen=True)
class PollingConfiguration:
  """
  Timing of the run status polling loop.

  A run is most likely still queued right after it was created, so the first two
  polls wait ``run_polling_backoff``; every later poll waits ``run_polling_interval``.
  """

  run_polling_interval: float = DEFAULT_RUN_POLLING_INTERVAL
  run_polling_backoff: float = DEFAULT_RUN_POLLING_BACKOFF
  message_synchronization_delay: float = DEFAULT_MESSAGE_SYNCHRONIZATION_DELAY

  def __post_init__(self):
    for name in ("run_polling_interval", "run_polling_backoff", "message_synchronization_delay"):
      if getattr(self, name) < 0:
        raise ValueError(f"{name} must not be negative")

  @classmethod
  def from_env(cls) -> "PollingConfiguration":
    return cls(
      run_polling_interval=_float_env("PARLEY_RUN_POLLING_INTERVAL", DEFAULT_RUN_POLLING_INTERVAL),
      run_polling_backoff=_float_env("PARLEY_RUN_POLLING_BACKOFF", DEFAULT_RUN_POLLING_BACKOFF),
      message_synchronization_delay=_float_env(
        "PARLEY_MESSAGE_SYNCHRONIZATION_DELAY", DEFAULT_MESSAGE_SYNCHRONIZATION_DELAY
      ),
    )


@dataclass(frozen=True)
class AssistantConfiguration:
  """
  How to reach the Assistants service.

  Attributes:
    api_key: API key for OpenAI or Azure OpenAI
    endpoint: Azure OpenAI endpoint, None for OpenAI
    version: API version, e.g. "2024-05-01-preview"
    http_client: Custom transport. Agents with a custom transport get a channel of their own
    polling: Run polling configuration
  """

  api_key: str
  endpoint: Optional[str] = None
  version: Optional[str] = None
  http_client: Optional[httpx.AsyncClient] = field(default=None, compare=False)
  polling: PollingConfiguration = field(default_factory=PollingConfiguration)

  def __post_init__(self):
    if not self.api_key:
      raise ValueError("An API key is required to reach the Assistants service")

  @classmethod
  def from_env(
    cls, http_client: Optional[httpx.AsyncClient] = None, polling: Optional[PollingConfiguration] = None
  ) -> "AssistantConfiguration":
    return cls(
      api_key=get_api_key(),
      endpoint=os.environ.get("AZURE_OPENAI_ENDPOINT") or None,
      version=os.environ.get("OPENAI_API_VERSION") or None,
      http_client=http_client,
      polling=polling or PollingConfiguration.from_env(),
    )


def get_api_key() -> str:
  """
  Resolve the API key.

  Resolution Order:
  1. OPENAI_API_KEY env var
  2. OPENAI_API_KEY_FILE env var (path to a file holding the key)
  """
  api_key = os.environ.get("OPENAI_API_KEY")
  if api_key:
    return api_key

  key_file = os.environ.get("OPENAI_API_KEY_FILE")
  if key_file:
    try:
      with open(key_file) as f:
        api_key = f.read().strip()
    except OSError as e:
      raise ValueError(f"Unable to read the API key from {key_file}: {e}") from e
    if api_key:
      return api_key
    logger.warning(f"API key file is empty: {key_file}")

  raise ValueError("No API key configured: set OPENAI_API_KEY or OPENAI_API_KEY_FILE")


def _float_env(name: str, default: float) -> float:
  value = os.environ.get(name)
  if value is None or value.strip() == "":
    return default
  try:
    return float(value)
  except ValueError:
    logger.warning(f"Ignoring invalid value for {name}: {value!r}, using {default}")
    return default
