"""
Agents are the participants of a conversation.

An agent is a value object: its identity (id, name, instructions, description)
and its capability set are fixed when it is created. Channels reference agents
but never change them.

Each agent kind decides which channel it talks through:
  - channel_keys() yields the strings that describe the remote configuration
    the agent needs. Two agents share a channel only if their keys are identical.
  - create_channel() creates a new channel (and the remote state behind it).
"""

from typing import Dict, Iterable, Iterator, Optional

from ..errors import DuplicateToolError
from ..logs import get_logger
from ..tools.protocol import InvokableTool
from ..tools.provider import CapabilityProvider, qualified_name

logger = get_logger("agent")


class Agent:
  def __init__(
    self,
    id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    instructions: Optional[str] = None,
    tools: Optional[Iterable[dict]] = None,
    providers: Optional[Iterable[CapabilityProvider]] = None,
  ):
    if not id:
      raise ValueError("An agent requires an id")
    self._id = id
    self._name = name
    self._description = description
    self._instructions = instructions
    self._tools = tuple(tools or ())
    self._providers = tuple(providers or ())
    self._capabilities = build_capabilities(self._providers, agent_id=id)

  @property
  def id(self) -> str:
    return self._id

  @property
  def name(self) -> Optional[str]:
    return self._name

  @property
  def display_name(self) -> str:
    return self._name or self._id

  @property
  def description(self) -> Optional[str]:
    return self._description

  @property
  def instructions(self) -> Optional[str]:
    return self._instructions

  @property
  def tools(self) -> tuple:
    """Tools declared on the remote side, e.g. {"type": "code_interpreter"}."""
    return self._tools

  @property
  def providers(self) -> tuple:
    return self._providers

  @property
  def capabilities(self) -> Dict[str, InvokableTool]:
    return dict(self._capabilities)

  @property
  def is_deleted(self) -> bool:
    return False

  def channel_keys(self) -> Iterator[str]:
    raise NotImplementedError(f"{type(self).__name__} does not define its channel keys")

  async def create_channel(self):
    raise NotImplementedError(f"{type(self).__name__} cannot create a channel")

  def __eq__(self, other):
    if not isinstance(other, Agent):
      return NotImplemented
    return self._id == other._id

  def __hash__(self):
    return hash(self._id)

  def __repr__(self):
    return f"{type(self).__name__}(id={self._id!r}, name={self._name!r})"


def build_capabilities(providers: Iterable[CapabilityProvider], agent_id: Optional[str] = None) -> Dict[str, InvokableTool]:
  capabilities: Dict[str, InvokableTool] = {}
  for provider in providers:
    for tool in provider.list_tools():
      name = qualified_name(provider.name, tool.name)
      if name in capabilities:
        raise DuplicateToolError(name, agent_id)
      capabilities[name] = tool
  logger.debug(f"Agent {agent_id} capabilities: {sorted(capabilities.keys())}")
  return capabilities
