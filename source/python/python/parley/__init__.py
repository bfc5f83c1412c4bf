from .agents import Agent
from .assistants import (
  AssistantAgent,
  AssistantChannel,
  AssistantConfiguration,
  AssistantDefinition,
  PollingConfiguration,
)
from .cancellation import CancellationToken
from .chat import (
  GroupChat,
  ChannelRegistry,
  SequentialSelectionStrategy,
  FunctionSelectionStrategy,
  DefaultTerminationStrategy,
  RegexTerminationStrategy,
  FunctionTerminationStrategy,
  AggregatorTerminationStrategy,
)
from .errors import (
  ParleyError,
  AgentUnavailableError,
  RunTerminatedError,
  UnknownToolError,
  DuplicateToolError,
  MalformedArgumentsError,
  ToolExecutionError,
  OperationCancelledError,
  TurnLimitExceededError,
  NoEligibleAgentError,
  ChatBusyError,
  RemoteNotFoundError,
)
from .logs import (
  info,
  warning,
  error,
  debug,
  set_log_level,
  set_log_levels,
  get_logger,
  InfoContext,
  DebugContext,
)
from .messages import ChatMessage, ConversationRole, UserMessage, SystemMessage, AssistantMessage
from .tools import Tool, ToolProvider

__all__ = [
  # from .agents
  "Agent",
  # from .assistants
  "AssistantAgent",
  "AssistantChannel",
  "AssistantConfiguration",
  "AssistantDefinition",
  "PollingConfiguration",
  # from .cancellation
  "CancellationToken",
  # from .chat
  "GroupChat",
  "ChannelRegistry",
  "SequentialSelectionStrategy",
  "FunctionSelectionStrategy",
  "DefaultTerminationStrategy",
  "RegexTerminationStrategy",
  "FunctionTerminationStrategy",
  "AggregatorTerminationStrategy",
  # from .errors
  "ParleyError",
  "AgentUnavailableError",
  "RunTerminatedError",
  "UnknownToolError",
  "DuplicateToolError",
  "MalformedArgumentsError",
  "ToolExecutionError",
  "OperationCancelledError",
  "TurnLimitExceededError",
  "NoEligibleAgentError",
  "ChatBusyError",
  "RemoteNotFoundError",
  # from .logs
  "info",
  "warning",
  "error",
  "debug",
  "set_log_level",
  "set_log_levels",
  "get_logger",
  "InfoContext",
  "DebugContext",
  # from .messages
  "ChatMessage",
  "ConversationRole",
  "UserMessage",
  "SystemMessage",
  "AssistantMessage",
  # from .tools
  "Tool",
  "ToolProvider",
]
