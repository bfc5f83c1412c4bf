from .agent import AssistantAgent
from .channel import AssistantChannel
from .client import AssistantsClient
from .config import AssistantConfiguration, PollingConfiguration
from .models import AssistantDefinition, RunStatus

__all__ = [
  "AssistantAgent",
  "AssistantChannel",
  "AssistantsClient",
  "AssistantConfiguration",
  "PollingConfiguration",
  "AssistantDefinition",
  "RunStatus",
]
