import inspect
import re
from typing import Awaitable, Callable, Iterable, Optional, Pattern, Sequence, Union

from ..agents.agent import Agent
from ..logs import get_logger
from ..messages import ChatMessage

logger = get_logger("strategy")

DEFAULT_MAXIMUM_ITERATIONS = 99


class TerminationStrategy:
  """
  Decides after each turn whether a group chat is done.

  Attributes:
    agents: Only the turns of these agents are evaluated. All agents when empty
    maximum_iterations: Number of turns after which the chat stops without terminating
    automatic_reset: Clear the completion of the chat once it terminated, so it can be invoked again
  """

  def __init__(
    self,
    agents: Optional[Iterable[Agent]] = None,
    maximum_iterations: int = DEFAULT_MAXIMUM_ITERATIONS,
    automatic_reset: bool = False,
  ):
    if maximum_iterations < 1:
      raise ValueError("maximum_iterations must be at least 1")
    self.agents = list(agents or [])
    self.maximum_iterations = maximum_iterations
    self.automatic_reset = automatic_reset

  async def should_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    if self.agents and agent not in self.agents:
      return False
    terminate = await self.should_agent_terminate(agent, history)
    logger.debug(f"{type(self).__name__} evaluated turn of {agent.id}: terminate={terminate}")
    return terminate

  async def should_agent_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    raise NotImplementedError


class DefaultTerminationStrategy(TerminationStrategy):
  """Never terminates: the chat runs until ``maximum_iterations``."""

  async def should_agent_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    return False


class RegexTerminationStrategy(TerminationStrategy):
  """Terminates when the content of the last message matches any of the patterns."""

  def __init__(self, patterns: Iterable[Union[str, Pattern]], **kwargs):
    super().__init__(**kwargs)
    self.patterns = [re.compile(pattern) if isinstance(pattern, str) else pattern for pattern in patterns]

  async def should_agent_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    if not history:
      return False
    content = history[-1].content
    if content is None:
      return False
    return any(pattern.search(content) for pattern in self.patterns)


class FunctionTerminationStrategy(TerminationStrategy):
  """Terminates when a (sync or async) callable of the agent and the history returns True."""

  def __init__(
    self,
    predicate: Callable[[Agent, Sequence[ChatMessage]], Union[bool, Awaitable[bool]]],
    **kwargs,
  ):
    super().__init__(**kwargs)
    self.predicate = predicate

  async def should_agent_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    result = self.predicate(agent, history)
    if inspect.isawaitable(result):
      result = await result
    return bool(result)


class AggregatorTerminationStrategy(TerminationStrategy):
  """
  Combines strategies: with ``condition="any"`` one of them has to terminate,
  with ``condition="all"`` every one of them.
  """

  def __init__(self, strategies: Iterable[TerminationStrategy], condition: str = "all", **kwargs):
    super().__init__(**kwargs)
    if condition not in ("any", "all"):
      raise ValueError(f"Unknown aggregation condition: {condition}")
    self.strategies = list(strategies)
    self.condition = condition

  async def should_agent_terminate(self, agent: Agent, history: Sequence[ChatMessage]) -> bool:
    results = [await strategy.should_terminate(agent, history) for strategy in self.strategies]
    if self.condition == "any":
      return any(results)
    return bool(results) and all(results)
