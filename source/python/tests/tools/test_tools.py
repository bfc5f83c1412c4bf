"""
Tests for function tools, capability providers and the tool invoker.
"""

import json
from typing import List, Optional

import pytest

from parley.agents import Agent
from parley.errors import DuplicateToolError, MalformedArgumentsError, ToolExecutionError, UnknownToolError
from parley.tools import Tool, ToolCallRequest, ToolCallResult, ToolInvoker, ToolProvider, split_qualified_name
from parley.tools.tool import MAX_JSON_SIZE


def get_weather(city: str, days: int = 1) -> str:
  """
  Get the weather forecast.

  Args:
    city (str): Name of the city.
    days: Number of days.
  """
  return f"{city}: sunny for {days} days"


async def search(terms: List[str], limit: Optional[int] = None) -> dict:
  """Search the archive."""
  return {"terms": terms, "limit": limit}


def nothing() -> None:
  return None


class TestToolSpec:
  @pytest.mark.asyncio
  async def test_spec_from_signature_and_docstring(self):
    spec = await Tool(get_weather).spec()

    function = spec["function"]
    assert spec["type"] == "function"
    assert function["name"] == "get_weather"
    assert function["parameters"]["required"] == ["city"]
    assert function["parameters"]["properties"]["city"] == {"type": "string", "description": "Name of the city."}
    assert function["parameters"]["properties"]["days"] == {"type": "integer", "description": "Number of days."}

  def test_name_with_delimiter_is_rejected(self):
    with pytest.raises(ValueError):
      Tool(get_weather, name="get-weather")

  def test_provider_name_is_validated(self):
    with pytest.raises(ValueError):
      ToolProvider("weather-service")


class TestToolCall:
  @pytest.mark.asyncio
  async def test_string_arguments_are_coerced(self):
    assert await Tool(get_weather).call({"city": "Lisbon", "days": "3"}) == "Lisbon: sunny for 3 days"

  @pytest.mark.asyncio
  async def test_list_arguments_are_parsed(self):
    result = await Tool(search).call({"terms": '["a", "b"]', "limit": "2"})

    assert result == {"terms": ["a", "b"], "limit": 2}

  @pytest.mark.asyncio
  async def test_unexpected_and_missing_arguments(self):
    tool = Tool(get_weather)

    with pytest.raises(MalformedArgumentsError, match="Unexpected arguments: country"):
      await tool.call({"city": "Lisbon", "country": "PT"})
    with pytest.raises(MalformedArgumentsError, match="Missing required arguments: city"):
      await tool.call({"days": "2"})

  @pytest.mark.asyncio
  async def test_invalid_type(self):
    with pytest.raises(MalformedArgumentsError, match="invalid type"):
      await Tool(get_weather).call({"city": "Lisbon", "days": "many"})

  @pytest.mark.asyncio
  async def test_failure_is_raised_with_its_cause(self):
    def explode(reason: str):
      raise RuntimeError(reason)

    with pytest.raises(ToolExecutionError) as e:
      await Tool(explode).call({"reason": "boom"})

    assert isinstance(e.value.cause, RuntimeError)
    assert e.value.__cause__ is e.value.cause

  @pytest.mark.asyncio
  async def test_invoke_takes_json(self):
    assert await Tool(get_weather).invoke('{"city": "Porto"}') == "Porto: sunny for 1 days"


class TestToolInvoker:
  def make_invoker(self):
    return ToolInvoker(Agent("asst_1", providers=[ToolProvider("weather", [get_weather, search, nothing])]).capabilities)

  @pytest.mark.asyncio
  async def test_execute(self):
    result = await self.make_invoker().execute(
      ToolCallRequest(call_id="call_1", qualified_name="weather-get_weather", arguments='{"city": "Oslo", "days": 2}')
    )

    assert result == ToolCallResult(call_id="call_1", output="Oslo: sunny for 2 days")

  @pytest.mark.asyncio
  async def test_structured_results_are_serialized(self):
    invoker = self.make_invoker()

    searched = await invoker.execute(
      ToolCallRequest(call_id="call_1", qualified_name="weather-search", arguments='{"terms": ["rain"]}')
    )
    empty = await invoker.execute(ToolCallRequest(call_id="call_2", qualified_name="weather-nothing"))

    assert json.loads(searched.output) == {"terms": ["rain"], "limit": None}
    assert empty.output == ""

  def test_unknown_tool(self):
    with pytest.raises(UnknownToolError) as e:
      self.make_invoker().resolve("weather-forecast")

    assert "weather-get_weather" in e.value.available

  @pytest.mark.asyncio
  @pytest.mark.parametrize("arguments", ["{not json", "[1, 2]", '"Oslo"'])
  async def test_malformed_arguments(self, arguments):
    with pytest.raises(MalformedArgumentsError):
      await self.make_invoker().execute(
        ToolCallRequest(call_id="call_1", qualified_name="weather-get_weather", arguments=arguments)
      )

  @pytest.mark.asyncio
  async def test_oversized_arguments(self):
    arguments = json.dumps({"city": "x" * MAX_JSON_SIZE})

    with pytest.raises(MalformedArgumentsError, match="too large"):
      await self.make_invoker().execute(
        ToolCallRequest(call_id="call_1", qualified_name="weather-get_weather", arguments=arguments)
      )

  @pytest.mark.asyncio
  async def test_failure_carries_the_call_id(self):
    def explode():
      raise RuntimeError("boom")

    invoker = ToolInvoker(Agent("asst_1", providers=[ToolProvider("ops", [explode])]).capabilities)

    with pytest.raises(ToolExecutionError) as e:
      await invoker.execute(ToolCallRequest(call_id="call_7", qualified_name="ops-explode"))

    assert e.value.call_id == "call_7"
    assert e.value.name == "ops-explode"

  @pytest.mark.asyncio
  async def test_failure_of_a_custom_tool_is_wrapped(self):
    class BrokenTool:
      name = "broken"

      async def spec(self) -> dict:
        return {"type": "function", "function": {"name": self.name}}

      async def invoke(self, json_argument: Optional[str]) -> str:
        return await self.call({})

      async def call(self, args: dict):
        raise RuntimeError("disk on fire")

    invoker = ToolInvoker({"ops-broken": BrokenTool()})

    with pytest.raises(ToolExecutionError) as e:
      await invoker.execute(ToolCallRequest(call_id="call_9", qualified_name="ops-broken", arguments="{}"))

    assert e.value.call_id == "call_9"
    assert e.value.name == "ops-broken"
    assert isinstance(e.value.__cause__, RuntimeError)


class TestCapabilities:
  def test_qualified_names(self):
    agent = Agent("asst_1", providers=[ToolProvider("weather", [get_weather]), ToolProvider("archive", [search])])

    assert sorted(agent.capabilities) == ["archive-search", "weather-get_weather"]
    assert split_qualified_name("archive-search") == ("archive", "search")
    assert split_qualified_name("search") == (None, "search")

  def test_duplicate_qualified_name(self):
    with pytest.raises(DuplicateToolError):
      Agent("asst_1", providers=[ToolProvider("weather", [get_weather]), ToolProvider("weather", [get_weather])])

  def test_agents_are_equal_by_id(self):
    assert Agent("asst_1", name="a") == Agent("asst_1", name="b")
    assert len({Agent("asst_1"), Agent("asst_1"), Agent("asst_2")}) == 2
