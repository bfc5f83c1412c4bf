"""
Multi-agent conversation loop.

A GroupChat owns the shared history of a conversation between agents. Every
round a selection strategy picks the agent that takes the next turn, the turn
runs on the agent's channel, the produced messages are appended to the history
and the termination strategy decides whether the conversation is done:

  chat = GroupChat(
    agents=[writer, reviewer],
    termination=RegexTerminationStrategy([r"(?i)approved"], agents=[reviewer], maximum_iterations=8),
  )
  async for message in chat.invoke("Write a slogan for a bakery."):
    print(message)

Channels are created the first time one of their agents takes a turn. Before an
agent runs, its channel receives every message of the shared history it has not
seen yet, so each agent works with the whole conversation.

A chat is busy only while an invocation is doing work. While the caller holds a
yielded message the chat is free again, so a caller that stops iterating early
can invoke the chat again right away. The newer invocation supersedes the one
that was left behind, which raises ChatBusyError if it is ever resumed.
"""

from contextlib import contextmanager
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Union

from .registry import ChannelRegistry
from .selection import SelectionStrategy, SequentialSelectionStrategy
from .termination import DefaultTerminationStrategy, TerminationStrategy
from ..agents.agent import Agent
from ..agents.channel import Channel
from ..cancellation import CancellationToken
from ..errors import ChatBusyError, TurnLimitExceededError
from ..logs import get_logger, InfoContext
from ..messages import ChatMessage, UserMessage


class GroupChat(InfoContext):
  def __init__(
    self,
    agents: Optional[Iterable[Agent]] = None,
    selection: Optional[SelectionStrategy] = None,
    termination: Optional[TerminationStrategy] = None,
    registry: Optional[ChannelRegistry] = None,
  ):
    self.logger = get_logger("chat")
    self.agents: List[Agent] = []
    for agent in agents or []:
      self.add_agent(agent)
    self.selection = selection or SequentialSelectionStrategy()
    self.termination = termination or DefaultTerminationStrategy()
    self.registry = registry or ChannelRegistry()
    self.history: List[ChatMessage] = []
    self.is_complete = False
    # Owner of the work in progress, if any
    self._active: Optional[object] = None
    # Owner of the most recent invocation
    self._latest: Optional[object] = None

  def add_agent(self, agent: Agent):
    if agent not in self.agents:
      self.agents.append(agent)

  def reset(self):
    """Clear the completion of the chat so that it can be invoked again."""
    self.is_complete = False
    self.selection.reset()

  async def add_message(self, message: ChatMessage, token: Optional[CancellationToken] = None):
    await self.add_messages([message], token)

  async def add_messages(self, messages: Sequence[ChatMessage], token: Optional[CancellationToken] = None):
    """Append messages to the shared history and share them with every existing channel."""
    with self._activate():
      self.history.extend(messages)
      await self._broadcast(token)

  async def invoke(
    self,
    initial_input: Union[str, ChatMessage, None] = None,
    token: Optional[CancellationToken] = None,
  ) -> AsyncIterator[ChatMessage]:
    """
    Run turns until the termination strategy is satisfied and yield every produced message.

    Raises:
      ChatBusyError: The chat is already being invoked, or a newer invocation
        started while this one was suspended.
      NoEligibleAgentError: No agent can be selected. The history is left unchanged.
      TurnLimitExceededError: ``maximum_iterations`` turns ran without terminating.
    """
    if self.is_complete:
      if not self.termination.automatic_reset:
        self.logger.info("Chat is complete, nothing to do")
        return
      self.reset()

    if initial_input is not None:
      message = UserMessage(initial_input) if isinstance(initial_input, str) else initial_input
      await self.add_message(message, token)

    with self._activate() as owner:
      self._latest = owner
      maximum_iterations = self.termination.maximum_iterations
      for iteration in range(maximum_iterations):
        agent = await self.selection.next(self.agents, self.history)
        self.logger.debug(f"Turn {iteration + 1}/{maximum_iterations}: {agent.display_name}")

        async for message in self._hand_out(owner, self._take_turn(agent, token)):
          yield message

        if await self.termination.should_terminate(agent, self.history):
          self.is_complete = True
          self.logger.info(f"Chat terminated after {iteration + 1} turns")
          return

      raise TurnLimitExceededError(maximum_iterations)

  async def invoke_agent(self, agent: Agent, token: Optional[CancellationToken] = None) -> AsyncIterator[ChatMessage]:
    """Take a single turn for ``agent``, without selection or termination."""
    with self._activate() as owner:
      self._latest = owner
      self.add_agent(agent)
      async for message in self._hand_out(owner, self._take_turn(agent, token)):
        yield message

  async def get_history(
    self, agent: Optional[Agent] = None, token: Optional[CancellationToken] = None
  ) -> AsyncIterator[ChatMessage]:
    """Yield the shared history, or the history of the channel of ``agent``, newest first."""
    if agent is None:
      for message in reversed(self.history):
        yield message
      return

    channel = await self.registry.get_or_create(agent)
    async for message in channel.get_history(token):
      yield message

  async def _take_turn(self, agent: Agent, token: Optional[CancellationToken]) -> AsyncIterator[ChatMessage]:
    channel = await self.registry.get_or_create(agent)
    await self._synchronize(channel, token)

    with self.info(f"Invoking agent {agent.display_name}", f"Agent {agent.display_name} finished its turn"):
      async for message in channel.invoke(agent, token):
        self.history.append(message)
        # The channel produced this message, so it has already seen it
        self.registry.mark_seen(channel, len(self.history))
        yield message

    await self._broadcast(token)

  async def _broadcast(self, token: Optional[CancellationToken]):
    for channel in self.registry.channels:
      await self._synchronize(channel, token)

  async def _synchronize(self, channel: Channel, token: Optional[CancellationToken]):
    seen = self.registry.seen(channel)
    unseen = self.history[seen:]
    if unseen:
      await channel.receive(unseen, token)
      self.registry.mark_seen(channel, len(self.history))

  async def _hand_out(self, owner: object, messages: AsyncIterator[ChatMessage]) -> AsyncIterator[ChatMessage]:
    """Yield ``messages`` with the chat released while the caller holds each one."""
    async for message in messages:
      self._release(owner)
      yield message
      if self._latest is not owner:
        raise ChatBusyError()
      self._acquire(owner)

  def _acquire(self, owner: object):
    if self._active is not None and self._active is not owner:
      raise ChatBusyError()
    self._active = owner

  def _release(self, owner: object):
    if self._active is owner:
      self._active = None

  @contextmanager
  def _activate(self):
    owner = object()
    self._acquire(owner)
    try:
      yield owner
    finally:
      self._release(owner)
