import httpx
import pytest

from parley.assistants.agent import AssistantAgent, CHANNEL_TAG
from parley.assistants.channel import AssistantChannel
from parley.assistants.models import AssistantDefinition
from parley.tools import ToolProvider
from tests.assistants.mock_utils import FAST_POLLING, FakeAssistantsClient, make_config


def lookup(city: str) -> str:
  """Look up a city."""
  return city


class TestLifecycle:
  @pytest.mark.asyncio
  async def test_create(self):
    client = FakeAssistantsClient()
    definition = AssistantDefinition(
      model="gpt-4o", name="Reviewer", instructions="Review the draft.", enable_file_search=True
    )

    agent = await AssistantAgent.create(make_config(), definition, providers=[ToolProvider("geo", [lookup])], client=client)

    assert agent.id == "asst_1"
    assert agent.name == "Reviewer"
    assert agent.instructions == "Review the draft."
    assert agent.tools == ({"type": "file_search"},)
    assert list(agent.capabilities) == ["geo-lookup"]
    assert agent.definition.enable_file_search

  @pytest.mark.asyncio
  async def test_retrieve(self):
    client = FakeAssistantsClient()
    created = await AssistantAgent.create(make_config(), AssistantDefinition(model="gpt-4o", name="Writer"), client=client)

    retrieved = await AssistantAgent.retrieve(make_config(), created.id, client=client)

    assert retrieved == created
    assert retrieved.name == "Writer"

  @pytest.mark.asyncio
  async def test_list_definitions_pages_through_every_assistant(self):
    client = FakeAssistantsClient()
    for name in ["a", "b", "c"]:
      await AssistantAgent.create(make_config(), AssistantDefinition(model="gpt-4o", name=name), client=client)

    definitions = [
      definition async for definition in AssistantAgent.list_definitions(make_config(), max_results=2, client=client)
    ]

    assert [definition.name for definition in definitions] == ["a", "b", "c"]
    assert [call[2] for call in client.calls if call[0] == "list_assistants"] == [None, "asst_2"]

  @pytest.mark.asyncio
  async def test_delete(self):
    client = FakeAssistantsClient()
    agent = await AssistantAgent.create(make_config(), AssistantDefinition(model="gpt-4o"), client=client)

    assert await agent.delete()
    assert agent.is_deleted
    assert await agent.delete()
    assert client.count("delete_assistant") == 1


class TestChannels:
  @pytest.mark.asyncio
  async def test_create_channel_starts_a_thread(self):
    client = FakeAssistantsClient()
    agent = await AssistantAgent.create(make_config(), AssistantDefinition(model="gpt-4o"), client=client)

    channel = await agent.create_channel()

    assert isinstance(channel, AssistantChannel)
    assert channel.thread_id == "thread_1"
    assert channel.polling == FAST_POLLING

  @pytest.mark.asyncio
  async def test_custom_transport_is_part_of_the_keys(self):
    transport = httpx.AsyncClient(base_url="https://proxy.example.com", headers={"x-tenant": "blue"})
    agent = await AssistantAgent.create(
      make_config(http_client=transport), AssistantDefinition(model="gpt-4o"), client=FakeAssistantsClient()
    )

    keys = list(agent.channel_keys())

    assert keys[:3] == [CHANNEL_TAG, "openai", str(transport.base_url)]
    assert "blue" in keys
