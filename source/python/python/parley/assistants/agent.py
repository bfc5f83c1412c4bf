"""
Agents backed by an assistant of the Assistants service.

Lifecycle:
  agent = await AssistantAgent.create(config, AssistantDefinition(model="gpt-4o", name="Reviewer"))
  agent = await AssistantAgent.retrieve(config, "asst_123", providers=[weather])
  async for definition in AssistantAgent.list_definitions(config):
    ...
  await agent.delete()

A deleted agent keeps its identity but can no longer take a turn.
"""

from typing import AsyncIterator, Iterable, Iterator, Optional

from .channel import AssistantChannel
from .client import AssistantsClient, PAGE_LIMIT
from .config import AssistantConfiguration
from .models import AssistantDefinition, AssistantRecord
from ..agents.agent import Agent
from ..logs import get_logger
from ..tools.provider import CapabilityProvider

logger = get_logger("agent")

CHANNEL_TAG = f"{AssistantChannel.__module__}.{AssistantChannel.__name__}"


class AssistantAgent(Agent):
  def __init__(
    self,
    record: AssistantRecord,
    config: AssistantConfiguration,
    client: Optional[AssistantsClient] = None,
    providers: Optional[Iterable[CapabilityProvider]] = None,
  ):
    super().__init__(
      id=record.id,
      name=record.name,
      description=record.description,
      instructions=record.instructions,
      tools=record.tools,
      providers=providers,
    )
    self.record = record
    self.config = config
    self.client = client or AssistantsClient.from_config(config)
    self._is_deleted = False

  @classmethod
  async def create(
    cls,
    config: AssistantConfiguration,
    definition: AssistantDefinition,
    providers: Optional[Iterable[CapabilityProvider]] = None,
    client: Optional[AssistantsClient] = None,
  ) -> "AssistantAgent":
    client = client or AssistantsClient.from_config(config)
    record = await client.create_assistant(definition)
    logger.info(f"Created assistant {record.id} ({record.name or 'unnamed'}) on {record.model}")
    return cls(record, config, client=client, providers=providers)

  @classmethod
  async def retrieve(
    cls,
    config: AssistantConfiguration,
    id: str,
    providers: Optional[Iterable[CapabilityProvider]] = None,
    client: Optional[AssistantsClient] = None,
  ) -> "AssistantAgent":
    client = client or AssistantsClient.from_config(config)
    record = await client.retrieve_assistant(id)
    logger.debug(f"Retrieved assistant {record.id} ({record.name or 'unnamed'})")
    return cls(record, config, client=client, providers=providers)

  @staticmethod
  async def list_definitions(
    config: AssistantConfiguration,
    max_results: int = PAGE_LIMIT,
    last_id: Optional[str] = None,
    client: Optional[AssistantsClient] = None,
  ) -> AsyncIterator[AssistantDefinition]:
    """
    Yield the definitions of the assistants of the account, newest first.

    Args:
      max_results: Page size used when listing
      last_id: Only list assistants after this one
    """
    client = client or AssistantsClient.from_config(config)
    after = last_id
    while True:
      records, has_more = await client.list_assistants(limit=max_results, after=after)
      for record in records:
        yield record.to_definition()
      if not has_more or not records:
        return
      after = records[-1].id

  @property
  def is_deleted(self) -> bool:
    return self._is_deleted

  @property
  def definition(self) -> AssistantDefinition:
    return self.record.to_definition()

  async def delete(self) -> bool:
    """Delete the assistant on the service. The agent cannot take turns afterwards."""
    if not self._is_deleted:
      self._is_deleted = await self.client.delete_assistant(self.id)
      logger.info(f"Deleted assistant {self.id}: {self._is_deleted}")
    return self._is_deleted

  def channel_keys(self) -> Iterator[str]:
    # Agents configured for the same service share one thread
    yield CHANNEL_TAG
    yield self.config.endpoint or "openai"
    if self.config.version:
      yield self.config.version

    http_client = self.config.http_client
    if http_client is not None:
      base_url = str(http_client.base_url)
      if base_url:
        yield base_url
      for _, value in http_client.headers.items():
        yield value

  async def create_channel(self) -> AssistantChannel:
    thread_id = await self.client.create_thread()
    logger.info(f"Created thread {thread_id} for assistant {self.id}")
    return AssistantChannel(self.client, thread_id, polling=self.config.polling)
