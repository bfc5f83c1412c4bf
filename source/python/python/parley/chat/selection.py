"""
Selection strategies decide which agent takes the next turn of a group chat.

  chat = GroupChat(agents=[writer, reviewer], selection=SequentialSelectionStrategy())

A rule-based or model-driven picker plugs in as a callable:

  async def pick(agents, history):
    return "reviewer" if history and history[-1].author_name == "writer" else "writer"

  chat = GroupChat(agents=[writer, reviewer], selection=FunctionSelectionStrategy(pick))
"""

import inspect
from typing import Awaitable, Callable, Optional, Sequence, Union

from ..agents.agent import Agent
from ..errors import NoEligibleAgentError
from ..logs import get_logger
from ..messages import ChatMessage

logger = get_logger("strategy")


class SelectionStrategy:
  async def next(self, agents: Sequence[Agent], history: Sequence[ChatMessage]) -> Agent:
    if not agents:
      raise NoEligibleAgentError()
    agent = await self.select(agents, history)
    if agent not in agents:
      raise NoEligibleAgentError(
        "the selected agent is not part of the chat", context={"agent": getattr(agent, "id", agent)}
      )
    logger.debug(f"{type(self).__name__} selected agent {agent.id}")
    return agent

  async def select(self, agents: Sequence[Agent], history: Sequence[ChatMessage]) -> Agent:
    raise NotImplementedError

  def reset(self):
    pass


class SequentialSelectionStrategy(SelectionStrategy):
  """Round-robin over the agents, in roster order."""

  def __init__(self):
    self._index = 0

  async def select(self, agents: Sequence[Agent], history: Sequence[ChatMessage]) -> Agent:
    # The roster may have shrunk since the last turn
    if self._index >= len(agents):
      self._index = 0
    agent = agents[self._index]
    self._index = (self._index + 1) % len(agents)
    return agent

  def reset(self):
    self._index = 0


Selector = Callable[
  [Sequence[Agent], Sequence[ChatMessage]], Union[Agent, str, None, Awaitable[Union[Agent, str, None]]]
]


class FunctionSelectionStrategy(SelectionStrategy):
  """
  Delegate the choice to a callable.

  The callable gets the roster and the history and returns an agent, or the id
  or name of one. It may be a plain function or a coroutine function.
  """

  def __init__(self, selector: Selector):
    self.selector = selector

  async def select(self, agents: Sequence[Agent], history: Sequence[ChatMessage]) -> Optional[Agent]:
    result = self.selector(agents, history)
    if inspect.isawaitable(result):
      result = await result

    if isinstance(result, str):
      for agent in agents:
        if result in (agent.id, agent.name):
          return agent
      raise NoEligibleAgentError(f"no agent named '{result}' in the chat")
    if result is None:
      raise NoEligibleAgentError("the selector did not pick an agent")
    return result
