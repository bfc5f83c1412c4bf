import json
import time

from dataclasses import dataclass
from typing import Dict, Optional

from .protocol import InvokableTool
from .tool import parse_arguments
from ..errors import ParleyError, UnknownToolError, ToolExecutionError
from ..logs import get_logger

logger = get_logger("tool")


@dataclass(frozen=True)
class ToolCallRequest:
  call_id: str
  qualified_name: str
  arguments: Optional[str] = None


@dataclass(frozen=True)
class ToolCallResult:
  call_id: str
  output: str


class ToolInvoker:
  """
  Resolve and execute the tool calls requested by the remote side.

  The invoker is bound to the capability set of the agent taking the turn:
  a mapping from qualified name to tool.
  """

  def __init__(self, capabilities: Dict[str, InvokableTool], agent_id: Optional[str] = None):
    self.capabilities = capabilities
    self.agent_id = agent_id

  def resolve(self, qualified_name: str) -> InvokableTool:
    tool = self.capabilities.get(qualified_name)
    if tool is None:
      logger.error(f"[TOOL←ERROR] Tool '{qualified_name}' not found for agent {self.agent_id}")
      raise UnknownToolError(qualified_name, list(self.capabilities.keys()))
    return tool

  async def execute(self, request: ToolCallRequest) -> ToolCallResult:
    """
    Execute one tool call.

    The JSON arguments are parsed into a mapping whose values are passed on as
    strings; the tool converts them to the types it declares.

    Raises:
      UnknownToolError: If the tool is not part of the capability set.
      MalformedArgumentsError: If the arguments are not a JSON object.
      ToolExecutionError: If the tool fails.
    """
    tool = self.resolve(request.qualified_name)
    args = {key: stringify(value) for key, value in parse_arguments(request.qualified_name, request.arguments).items()}

    logger.debug(f"[TOOL→CALL] id={request.call_id}, name={request.qualified_name}")
    start_time = time.time()
    try:
      result = await tool.call(args)
    except ToolExecutionError as e:
      raise ToolExecutionError(request.qualified_name, e.cause, call_id=request.call_id) from e.cause
    except ParleyError:
      raise
    except Exception as e:
      logger.error(f"[TOOL←ERROR] id={request.call_id}, name={request.qualified_name}: {type(e).__name__}: {e}")
      raise ToolExecutionError(request.qualified_name, e, call_id=request.call_id) from e
    elapsed_time = time.time() - start_time

    output = serialize_result(result)
    logger.debug(
      f"[TOOL←RESULT] id={request.call_id}, name={request.qualified_name}, "
      f"elapsed={elapsed_time:.3f}s, result_length={len(output)}"
    )
    return ToolCallResult(call_id=request.call_id, output=output)


def stringify(value) -> Optional[str]:
  if value is None or isinstance(value, str):
    return value
  return json.dumps(value)


def serialize_result(result) -> str:
  if result is None:
    return ""
  if isinstance(result, str):
    return result
  try:
    return json.dumps(result)
  except (TypeError, ValueError):
    return str(result)
