import asyncio
import hashlib
from typing import Dict, Iterable, List, Optional

from ..agents.agent import Agent
from ..agents.channel import Channel
from ..logs import get_logger

logger = get_logger("registry")

KEY_SEPARATOR = ":"


def keys_for(agent: Agent) -> List[str]:
  return list(agent.channel_keys())


def key_hash(keys: Iterable[str]) -> str:
  return hashlib.sha256(KEY_SEPARATOR.join(keys).encode("utf-8")).hexdigest()


class ChannelRegistry:
  """
  Maps channel keys to channels.

  Agents whose channel keys hash the same share one channel. A channel is
  created exactly once per key, even when several turns ask for it
  concurrently, and lives as long as the registry.

  The registry also remembers, per channel, how many messages of the shared
  history the channel has already received.
  """

  def __init__(self):
    self._channels: Dict[str, Channel] = {}
    self._seen: Dict[str, int] = {}
    self._lock = asyncio.Lock()

  @property
  def channels(self) -> List[Channel]:
    """The channels created so far, in creation order."""
    return list(self._channels.values())

  def key_for(self, agent: Agent) -> str:
    # Not cached by id: agents sharing an id may be bound to different services
    return key_hash(keys_for(agent))

  def channel_for(self, agent: Agent) -> Optional[Channel]:
    return self._channels.get(self.key_for(agent))

  async def get_or_create(self, agent: Agent) -> Channel:
    key = self.key_for(agent)
    channel = self._channels.get(key)
    if channel is not None:
      return channel

    async with self._lock:
      channel = self._channels.get(key)
      if channel is None:
        logger.debug(f"Creating channel for agent {agent.id} [{key[:12]}]")
        channel = await agent.create_channel()
        self._channels[key] = channel
        self._seen[key] = 0
        logger.info(f"Created channel {type(channel).__name__} [{key[:12]}]")
    return channel

  def seen(self, channel: Channel) -> int:
    return self._seen.get(self._key_of(channel), 0)

  def mark_seen(self, channel: Channel, count: int):
    key = self._key_of(channel)
    self._seen[key] = max(self._seen.get(key, 0), count)

  def _key_of(self, channel: Channel) -> str:
    for key, candidate in self._channels.items():
      if candidate is channel:
        return key
    raise KeyError(f"Channel is not registered: {channel!r}")

  def __len__(self):
    return len(self._channels)
