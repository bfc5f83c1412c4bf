from typing import AsyncIterator, Optional, Protocol, Sequence

from ..cancellation import CancellationToken
from ..messages import ChatMessage


class Channel(Protocol):
  """
  The local adapter between agents and the conversation state they run on.

  A channel must not be invoked again while an invocation is in flight.
  """

  async def receive(self, history: Sequence[ChatMessage], token: Optional[CancellationToken] = None) -> None:
    """Make ``history`` visible to the agents of this channel, preserving order."""
    ...

  def invoke(self, agent, token: Optional[CancellationToken] = None) -> AsyncIterator[ChatMessage]:
    """Take one turn for ``agent`` and yield the messages it produces."""
    ...

  def get_history(self, token: Optional[CancellationToken] = None) -> AsyncIterator[ChatMessage]:
    """Yield the messages of this channel, newest first."""
    ...
