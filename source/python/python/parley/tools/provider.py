"""
Capability providers group related tools under a provider name.

An agent exposes every tool of its providers to the remote service under a
qualified name "{provider}-{function}", so that dispatch can recover the
provider a call belongs to.

Usage:
  async def lookup(city: str) -> str:
    ...

  weather = ToolProvider("weather", [lookup])
  agent = await AssistantAgent.create(config, definition, providers=[weather])
  # the remote service sees a function named "weather-lookup"
"""

import re
from typing import Callable, Iterable, List, Optional, Protocol, Tuple, Union

from .protocol import InvokableTool
from .tool import Tool, TOOL_NAME_PATTERN

FUNCTION_DELIMITER = "-"


class CapabilityProvider(Protocol):
  """Anything with a name that can list the tools it provides."""

  name: str

  def list_tools(self) -> List[InvokableTool]: ...


class ToolProvider(CapabilityProvider):
  def __init__(self, name: str, tools: Optional[Iterable[Union[InvokableTool, Callable]]] = None):
    if re.match(TOOL_NAME_PATTERN, name) is None:
      raise ValueError(f"Provider name '{name}' may only contain [a-zA-Z0-9_] characters")
    self.name = name
    self._tools: List[InvokableTool] = []
    for tool in tools or []:
      self.add(tool)

  def add(self, tool: Union[InvokableTool, Callable]) -> InvokableTool:
    if not isinstance(tool, Tool) and not hasattr(tool, "spec"):
      tool = Tool(tool)
    self._tools.append(tool)
    return tool

  def list_tools(self) -> List[InvokableTool]:
    return list(self._tools)

  def __repr__(self):
    return f"ToolProvider(name={self.name!r}, tools={[t.name for t in self._tools]!r})"


def qualified_name(provider_name: str, function_name: str) -> str:
  return f"{provider_name}{FUNCTION_DELIMITER}{function_name}"


def split_qualified_name(name: str) -> Tuple[Optional[str], str]:
  """Split "{provider}-{function}" into its parts. A name without delimiter has no provider."""
  if FUNCTION_DELIMITER in name:
    provider_name, function_name = name.split(FUNCTION_DELIMITER, 1)
    return provider_name, function_name
  return None, name


async def qualified_spec(name: str, tool: InvokableTool) -> dict:
  """Return the spec of ``tool`` renamed to the qualified ``name``."""
  spec = await tool.spec()
  function = dict(spec["function"])
  function["name"] = name
  return {**spec, "function": function}
