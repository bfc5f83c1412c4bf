"""
Run-based conversation channel.

An AssistantChannel owns one remote thread. Each turn of an agent on that thread
is a remote *run* which the channel drives to completion:

  create run ──▶ poll ──▶ [requires_action] ──▶ execute tool calls ──▶ submit ──┐
                  ▲                                                           │
                  └───────────────────────────────────────────────────────────┘
                  │
                  ├──▶ [expired | failed | cancelled | incomplete] ──▶ RunTerminatedError
                  └──▶ [completed] ──▶ done

Messages created by the run are drained at every checkpoint (requires_action and
completed), so the caller receives output while the run is still going. Each
message id is yielded at most once per channel.

The service only answers requests (no push), so polling is the only way to see
progress. The first two polls wait ``run_polling_backoff``, the following ones
``run_polling_interval``. A failed status fetch is a read failure, not a run
failure: it is logged and retried on the next interval.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from .client import AssistantsClient
from .config import PollingConfiguration
from .models import (
  MessageCreationDetails,
  MessageImageFile,
  MessageText,
  Run,
  RunStatus,
  RunStep,
  RunStepStatus,
  ThreadMessage,
  ToolCallsDetails,
)
from .. import cancellation
from ..cancellation import CancellationToken, guard
from ..errors import AgentUnavailableError, OperationCancelledError, RemoteNotFoundError, RunTerminatedError
from ..logs import get_logger, InfoContext
from ..messages import AnnotationContent, ChatMessage, ConversationRole, FileReferenceContent, TextContent
from ..tools.invoker import ToolCallRequest, ToolCallResult, ToolInvoker
from ..tools.provider import qualified_spec

# The service may report a message id before the message can be fetched
MAX_MESSAGE_FETCH_ATTEMPTS = 4

# Number of polls that wait the backoff delay before switching to the polling interval
BACKOFF_POLL_COUNT = 2

Sleep = Callable[[float, Optional[CancellationToken]], Awaitable[None]]


class AssistantChannel(InfoContext):
  def __init__(
    self,
    client: AssistantsClient,
    thread_id: str,
    polling: Optional[PollingConfiguration] = None,
    sleep: Optional[Sleep] = None,
  ):
    self.logger = get_logger("channel")
    self.client = client
    self.thread_id = thread_id
    self.polling = polling or PollingConfiguration()
    self._sleep = sleep or cancellation.sleep
    self._agent_tools: Dict[str, List[dict]] = {}
    self._agent_names: Dict[str, str] = {}
    self._processed_message_ids: Set[str] = set()
    # Tool calls still running after their batch failed
    self._stragglers: Set[asyncio.Task] = set()

  async def receive(self, history: Sequence[ChatMessage], token: Optional[CancellationToken] = None) -> None:
    """Append every message with content to the remote thread, in order."""
    with self.info(
      f"[receive] Appending {len(history)} messages to thread: {self.thread_id}",
      f"[receive] Appended messages to thread: {self.thread_id}",
    ):
      for message in history:
        content = message.content
        if content is None or content.strip() == "":
          continue
        role = "assistant" if message.role == ConversationRole.ASSISTANT else "user"
        await guard(self.client.create_message(self.thread_id, role, content), token, "append message")

  async def invoke(self, agent, token: Optional[CancellationToken] = None) -> AsyncIterator[ChatMessage]:
    """
    Take one turn for ``agent`` as a remote run and yield the messages it creates.

    Raises:
      AgentUnavailableError: The agent has been deleted.
      RunTerminatedError: The run expired, failed, was cancelled or is incomplete.
      UnknownToolError, MalformedArgumentsError, ToolExecutionError: A requested tool call failed.
      OperationCancelledError: ``token`` was cancelled.
    """
    if agent.is_deleted:
      raise AgentUnavailableError(agent.id, context={"thread_id": self.thread_id})

    tools = await self._resolve_tools(agent)
    if agent.name and agent.id not in self._agent_names:
      self._agent_names[agent.id] = agent.name

    self.logger.debug(f"[invoke] Creating run for agent/thread: {agent.id}/{self.thread_id}")
    run = await guard(
      self.client.create_run(self.thread_id, agent.id, instructions=agent.instructions, tools=tools),
      token,
      "create run",
    )
    self.logger.info(f"[invoke] Created run: {run.id}")

    invoker = ToolInvoker(agent.capabilities, agent.id)
    while True:
      run = await self._poll_run(run, token)

      if run.status.is_terminal_failure:
        self.logger.error(f"[invoke] Run terminated: {run.status.value} [{run.id}]: {run.last_error}")
        raise RunTerminatedError(run.id, run.status.value, run.last_error)

      steps = await guard(self.client.list_run_steps(self.thread_id, run.id), token, "list run steps")

      if run.status == RunStatus.REQUIRES_ACTION:
        self.logger.debug(f"[invoke] Processing run steps: {run.id}")
        outputs = await self._execute_tool_calls(invoker, steps, token)
        if outputs:
          run = await guard(
            self.client.submit_tool_outputs(self.thread_id, run.id, outputs), token, "submit tool outputs"
          )
        self.logger.info(f"[invoke] Processed #{len(outputs)} tool calls: {run.id}")

      self.logger.debug(f"[invoke] Processing run messages: {run.id}")
      message_count = 0
      async for message in self._drain_messages(agent, steps, token):
        message_count += 1
        yield message
      self.logger.info(f"[invoke] Processed #{message_count} run messages: {run.id}")

      if run.status == RunStatus.COMPLETED:
        break

    self.logger.info(f"[invoke] Completed run: {run.id}")

  async def get_history(self, token: Optional[CancellationToken] = None) -> AsyncIterator[ChatMessage]:
    """Yield every message of the thread, newest first."""
    after = None
    while True:
      page = await guard(
        self.client.list_messages(self.thread_id, order="desc", after=after), token, "list messages"
      )
      for message in page.data:
        author_name = await self._author_name(message, token)
        for chat_message in to_chat_messages(message, author_name):
          yield chat_message
        after = message.id
      if not page.has_more or not page.data:
        return

  async def _resolve_tools(self, agent) -> List[dict]:
    tools = self._agent_tools.get(agent.id)
    if tools is None:
      tools = list(agent.tools)
      for name, tool in agent.capabilities.items():
        tools.append(await qualified_spec(name, tool))
      self._agent_tools[agent.id] = tools
    return tools

  async def _author_name(self, message: ThreadMessage, token: Optional[CancellationToken]) -> Optional[str]:
    if not message.assistant_id:
      return None
    name = self._agent_names.get(message.assistant_id)
    if name is None:
      assistant = await guard(self.client.retrieve_assistant(message.assistant_id), token, "retrieve assistant")
      if assistant.name and assistant.name.strip():
        self._agent_names[assistant.id] = assistant.name
        name = assistant.name
    return name or message.assistant_id

  async def _poll_run(self, run: Run, token: Optional[CancellationToken]) -> Run:
    """Poll the run until it leaves the pending states."""
    self.logger.info(f"[poll] Polling run status: {run.id}")

    count = 0
    while True:
      # Reduce polling frequency after a couple attempts
      await self._sleep(
        self.polling.run_polling_interval if count >= BACKOFF_POLL_COUNT else self.polling.run_polling_backoff,
        token,
      )
      count += 1

      try:
        run = await guard(self.client.retrieve_run(self.thread_id, run.id), token, "poll run")
      except OperationCancelledError:
        raise
      except Exception as e:
        self.logger.warning(f"[poll] Failed to fetch run status, retrying: {run.id}: {type(e).__name__}: {e}")

      if not run.status.is_pending:
        break

    self.logger.info(f"[poll] Run status is {run.status.value}: {run.id}")
    return run

  async def _execute_tool_calls(
    self, invoker: ToolInvoker, steps: Sequence[RunStep], token: Optional[CancellationToken]
  ) -> List[ToolCallResult]:
    """
    Execute every pending function call of ``steps`` concurrently.

    Either every call succeeds and all results are returned, or the first
    failure is raised and nothing is returned. Calls still running when a
    sibling fails are left to finish in the background.
    """
    requests = []
    for step in steps:
      if step.status != RunStepStatus.IN_PROGRESS:
        continue
      match step.details:
        case ToolCallsDetails(tool_calls=tool_calls):
          for call in tool_calls:
            requests.append(ToolCallRequest(call_id=call.id, qualified_name=call.name, arguments=call.arguments))
        case _:
          continue

    if not requests:
      return []

    if token is not None:
      token.raise_if_cancelled("tool calls")
    tasks = [asyncio.ensure_future(invoker.execute(request)) for request in requests]
    return await guard(self._fan_in(tasks), token, "tool calls")

  async def _fan_in(self, tasks: List[asyncio.Task]) -> List[ToolCallResult]:
    try:
      await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
      self._release(tasks)
      raise

    failed = [task for task in tasks if task.done() and not task.cancelled() and task.exception() is not None]
    if failed:
      self._release(tasks)
      raise failed[0].exception()

    return [task.result() for task in tasks]

  def _release(self, tasks: List[asyncio.Task]):
    for task in tasks:
      if not task.done():
        self._stragglers.add(task)
        task.add_done_callback(self._straggler_done)

  def _straggler_done(self, task: asyncio.Task):
    self._stragglers.discard(task)
    if not task.cancelled() and task.exception() is not None:
      self.logger.debug(f"[tools] Tool call finished after its batch failed: {task.exception()}")

  async def _drain_messages(
    self, agent, steps: Sequence[RunStep], token: Optional[CancellationToken]
  ) -> AsyncIterator[ChatMessage]:
    # Steps that have not completed yet sort last
    ordered = sorted(steps, key=lambda step: (step.completed_at is None, step.completed_at or 0))
    for step in ordered:
      match step.details:
        case MessageCreationDetails(message_id=message_id):
          if message_id in self._processed_message_ids:
            continue
          message = await self.fetch_message(message_id, token)
          if message is not None:
            for chat_message in to_chat_messages(message, agent.display_name):
              yield chat_message
          self._processed_message_ids.add(message_id)
        case _:
          continue

  async def fetch_message(self, message_id: str, token: Optional[CancellationToken] = None) -> Optional[ThreadMessage]:
    """
    Fetch a message, retrying while the service does not know it yet.

    Returns None when the message is still missing after MAX_MESSAGE_FETCH_ATTEMPTS.
    Errors other than not-found are raised immediately.
    """
    attempts = 0
    while True:
      try:
        return await guard(self.client.retrieve_message(self.thread_id, message_id), token, "retrieve message")
      except RemoteNotFoundError:
        attempts += 1
        if attempts >= MAX_MESSAGE_FETCH_ATTEMPTS:
          self.logger.warning(
            f"[fetch] Message {message_id} still not found after {attempts} attempts, skipping it "
            f"(thread {self.thread_id})"
          )
          return None
        await self._sleep(self.polling.message_synchronization_delay, token)


def to_chat_messages(message: ThreadMessage, author_name: Optional[str]) -> List[ChatMessage]:
  """Convert every content item of a remote message into a chat message."""
  role = ConversationRole(message.role)
  messages = []
  for item in message.content:
    match item:
      case MessageText(value=value, annotations=annotations):
        text = value.strip()
        if not text:
          continue
        items = [TextContent(text)]
        items.extend(
          AnnotationContent(
            quote=annotation.text,
            start_index=annotation.start_index,
            end_index=annotation.end_index,
            file_id=annotation.file_id,
          )
          for annotation in annotations
        )
        messages.append(ChatMessage(role, items, author_name=author_name))
      case MessageImageFile(file_id=file_id):
        messages.append(ChatMessage(role, [FileReferenceContent(file_id)], author_name=author_name))
  return messages
