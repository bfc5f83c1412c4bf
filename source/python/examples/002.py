"""
Example 002: Writer and reviewer

Two assistants share one thread. They take turns until the reviewer approves
the slogan or eight turns have passed.
"""

import asyncio

from parley import (
  AssistantAgent,
  AssistantConfiguration,
  AssistantDefinition,
  GroupChat,
  RegexTerminationStrategy,
  TurnLimitExceededError,
  info,
  warning,
)


async def main():
  config = AssistantConfiguration.from_env()
  writer = await AssistantAgent.create(
    config,
    AssistantDefinition(
      model="gpt-4o-mini", name="Writer", instructions="Write one short slogan. Improve it when given feedback."
    ),
  )
  reviewer = await AssistantAgent.create(
    config,
    AssistantDefinition(
      model="gpt-4o-mini",
      name="Reviewer",
      instructions="Review the latest slogan. Say 'approved' when it is good, give feedback otherwise.",
    ),
  )

  chat = GroupChat(
    agents=[writer, reviewer],
    termination=RegexTerminationStrategy([r"(?i)\bapproved\b"], agents=[reviewer], maximum_iterations=8),
  )

  try:
    async for message in chat.invoke("Write a slogan for a neighbourhood bakery."):
      info(f"{message}")
  except TurnLimitExceededError as e:
    warning(f"{e}")
  finally:
    await writer.delete()
    await reviewer.delete()


asyncio.run(main())
