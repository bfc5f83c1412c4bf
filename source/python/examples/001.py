"""
Example 001: A single assistant with function tools

The assistant answers a question about the weather. The service asks for the
"weather-forecast" function, the channel executes it locally and submits the
result, and the run completes with the final answer.

  OPENAI_API_KEY=... PARLEY_LOG_LEVELS=INFO,channel=debug python examples/001.py
"""

import asyncio

from parley import (
  AssistantAgent,
  AssistantConfiguration,
  AssistantDefinition,
  GroupChat,
  ToolProvider,
  UserMessage,
  info,
)


async def forecast(city: str, days: int = 1) -> dict:
  """
  Get the weather forecast for a city.

  Args:
    city: Name of the city.
    days: Number of days to forecast.
  """
  return {"city": city, "days": days, "forecast": ["sunny"] * days}


async def main():
  config = AssistantConfiguration.from_env()
  agent = await AssistantAgent.create(
    config,
    AssistantDefinition(model="gpt-4o-mini", name="Forecaster", instructions="Answer with the forecast only."),
    providers=[ToolProvider("weather", [forecast])],
  )

  try:
    chat = GroupChat()
    await chat.add_message(UserMessage("What is the weather in Lisbon for the next 3 days?"))
    async for message in chat.invoke_agent(agent):
      info(f"{message}")
  finally:
    await agent.delete()


asyncio.run(main())
