"""
Exception classes for parley.

Every error carries the structured context a caller needs to decide what to do
next (which agent, which run, which tool) and builds a readable message from it.

Turn-level failures (the run terminated, a tool failed, the agent is gone) abort
the current invocation. Messages that were already yielded for that turn stay
valid.
"""

from typing import Optional, Dict, Any


class ParleyError(Exception):
  """
  Base class for all parley errors.

  Attributes:
    context: Additional context about the failure
    message: Human-readable error message
  """

  def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
    self.context = context or {}
    if message is None:
      message = self._build_message()
    self.message = message
    super().__init__(message)

  def _build_message(self) -> str:
    return type(self).__name__

  def _with_context(self, text: str) -> str:
    context_parts = [f"{k}: {v}" for k, v in self.context.items() if v is not None]
    if context_parts:
      return f"{text} Context: {', '.join(context_parts)}."
    return text


class AgentUnavailableError(ParleyError):
  """
  Raised when an agent that has been deleted is invoked.

  Example:
    await agent.delete()
    async for message in chat.invoke_agent(agent):  # raises AgentUnavailableError
      ...
  """

  def __init__(self, agent_id: str, context: Optional[Dict[str, Any]] = None):
    self.agent_id = agent_id
    super().__init__(context=context)

  def _build_message(self) -> str:
    return self._with_context(f"Agent failure: agent is deleted: {self.agent_id}.")


class RunTerminatedError(ParleyError):
  """
  Raised when a remote run ends without completing (expired, failed or cancelled).

  Attributes:
    run_id: Identifier of the terminated run
    status: The terminal status reported by the service
    detail: The error detail reported by the service, if any
  """

  def __init__(self, run_id: str, status: str, detail: Optional[str] = None):
    self.run_id = run_id
    self.status = status
    self.detail = detail
    super().__init__()

  def _build_message(self) -> str:
    return f"Agent failure: run terminated: {self.status} [{self.run_id}]: {self.detail or 'Unknown'}"


class UnknownToolError(ParleyError):
  """Raised when the remote side requests a tool the agent does not have."""

  def __init__(self, name: str, available: Optional[list] = None):
    self.name = name
    self.available = available or []
    super().__init__()

  def _build_message(self) -> str:
    return f"Tool '{self.name}' not found. Available tools: {', '.join(sorted(self.available)) or 'none'}."


class DuplicateToolError(ParleyError):
  """Raised when two tools of one agent share a qualified name."""

  def __init__(self, name: str, agent_id: Optional[str] = None):
    self.name = name
    self.agent_id = agent_id
    super().__init__(context={"agent_id": agent_id})

  def _build_message(self) -> str:
    return self._with_context(f"Tool '{self.name}' is declared more than once.")


class MalformedArgumentsError(ParleyError):
  """Raised when the arguments of a tool call are not a JSON object."""

  def __init__(self, name: str, arguments: Optional[str], reason: str):
    self.name = name
    self.arguments = arguments
    self.reason = reason
    super().__init__()

  def _build_message(self) -> str:
    return f"Malformed arguments for tool '{self.name}': {self.reason}"


class ToolExecutionError(ParleyError):
  """
  Raised when a tool fails while executing.

  The original exception is chained as ``__cause__``.
  """

  def __init__(self, name: str, cause: BaseException, call_id: Optional[str] = None):
    self.name = name
    self.cause = cause
    self.call_id = call_id
    super().__init__(context={"call_id": call_id})

  def _build_message(self) -> str:
    return self._with_context(
      f"Tool execution failed: '{self.name}': {type(self.cause).__name__}: {self.cause}."
    )


class OperationCancelledError(ParleyError):
  """Raised when a cancellation token is triggered during a turn."""

  def __init__(self, operation: Optional[str] = None):
    self.operation = operation
    super().__init__()

  def _build_message(self) -> str:
    if self.operation:
      return f"Operation cancelled: {self.operation}."
    return "Operation cancelled."


class TurnLimitExceededError(ParleyError):
  """
  Raised when a group chat runs its maximum number of turns without terminating.

  Example:
    try:
      async for message in chat.invoke():
        print(message)
    except TurnLimitExceededError as e:
      print(f"No agreement after {e.maximum_iterations} turns")
  """

  def __init__(self, maximum_iterations: int):
    self.maximum_iterations = maximum_iterations
    super().__init__()

  def _build_message(self) -> str:
    return (
      f"Chat did not terminate within {self.maximum_iterations} turns. "
      "Consider increasing maximum_iterations or reviewing the termination strategy."
    )


class NoEligibleAgentError(ParleyError):
  """Raised when a selection strategy cannot pick an agent from the roster."""

  def __init__(self, reason: str = "no agents in the chat", context: Optional[Dict[str, Any]] = None):
    self.reason = reason
    super().__init__(context=context)

  def _build_message(self) -> str:
    return self._with_context(f"No eligible agent: {self.reason}.")


class ChatBusyError(ParleyError):
  """Raised when a chat is invoked while another invocation is still active."""

  def _build_message(self) -> str:
    return "Unable to proceed while another agent is active."


class RemoteNotFoundError(ParleyError):
  """Raised by the assistants client when the service answers 404."""

  def __init__(self, resource: str, identifier: str):
    self.resource = resource
    self.identifier = identifier
    super().__init__()

  def _build_message(self) -> str:
    return f"Remote {self.resource} not found: {self.identifier}"


__all__ = [
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
]
