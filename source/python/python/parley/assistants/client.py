"""
Client for the Assistants service using the OpenAI SDK.

AssistantsClient wraps the beta Assistants API of ``openai.AsyncOpenAI`` (or
``openai.AsyncAzureOpenAI`` when an Azure endpoint is configured) and turns SDK
responses into the records of ``parley.assistants.models``.

Errors:
- A 404 from the service is raised as RemoteNotFoundError.
- Every other SDK error (``openai.APIError`` and subclasses) propagates unchanged.

Transport:
When the configuration carries a custom ``httpx.AsyncClient`` the SDK uses it as
is and its own retry policy is disabled: the caller owns the transport.
"""

from contextlib import contextmanager
from typing import Iterable, List, Optional, Tuple

import openai
from openai import AsyncOpenAI, AsyncAzureOpenAI

from .config import AssistantConfiguration
from .models import (
  AnnotationKind,
  AssistantDefinition,
  AssistantRecord,
  FunctionToolCall,
  MessageCreationDetails,
  MessageImageFile,
  MessagePage,
  MessageText,
  Run,
  RunStatus,
  RunStep,
  RunStepStatus,
  TextAnnotation,
  ThreadMessage,
  ToolCallsDetails,
)
from ..errors import RemoteNotFoundError
from ..logs import get_logger, DebugContext
from ..tools.invoker import ToolCallResult

# Maximum page size accepted by the list endpoints
PAGE_LIMIT = 100


def create_sdk_client(config: AssistantConfiguration) -> AsyncOpenAI:
  kwargs = {"api_key": config.api_key}
  if config.http_client is not None:
    kwargs["http_client"] = config.http_client
    kwargs["max_retries"] = 0

  if config.endpoint:
    return AsyncAzureOpenAI(azure_endpoint=config.endpoint, api_version=config.version, **kwargs)
  return AsyncOpenAI(**kwargs)


@contextmanager
def translate_errors(resource: str, identifier: str):
  try:
    yield
  except openai.NotFoundError as e:
    raise RemoteNotFoundError(resource, identifier) from e


class AssistantsClient(DebugContext):
  def __init__(self, sdk: AsyncOpenAI):
    self.logger = get_logger("client")
    self.sdk = sdk

  @classmethod
  def from_config(cls, config: AssistantConfiguration) -> "AssistantsClient":
    return cls(create_sdk_client(config))

  # -- assistants --------------------------------------------------------------

  async def create_assistant(self, definition: AssistantDefinition) -> AssistantRecord:
    with self.debug("Creating assistant", "Created assistant"):
      assistant = await self.sdk.beta.assistants.create(
        model=definition.model,
        name=definition.name,
        description=definition.description,
        instructions=definition.instructions,
        tools=definition.tools(),
        metadata=dict(definition.metadata) if definition.metadata else None,
      )
    return to_assistant(assistant)

  async def retrieve_assistant(self, assistant_id: str) -> AssistantRecord:
    with translate_errors("assistant", assistant_id):
      assistant = await self.sdk.beta.assistants.retrieve(assistant_id)
    return to_assistant(assistant)

  async def delete_assistant(self, assistant_id: str) -> bool:
    with translate_errors("assistant", assistant_id):
      deleted = await self.sdk.beta.assistants.delete(assistant_id)
    return bool(deleted.deleted)

  async def list_assistants(
    self, limit: int = PAGE_LIMIT, after: Optional[str] = None
  ) -> Tuple[List[AssistantRecord], bool]:
    page = await self.sdk.beta.assistants.list(**_page_kwargs(limit, "desc", after))
    return [to_assistant(assistant) for assistant in page.data], page.has_next_page()

  # -- threads and messages ----------------------------------------------------

  async def create_thread(self) -> str:
    thread = await self.sdk.beta.threads.create()
    return thread.id

  async def create_message(self, thread_id: str, role: str, content: str) -> str:
    with translate_errors("thread", thread_id):
      message = await self.sdk.beta.threads.messages.create(thread_id, role=role, content=content)
    return message.id

  async def retrieve_message(self, thread_id: str, message_id: str) -> ThreadMessage:
    with translate_errors("message", message_id):
      message = await self.sdk.beta.threads.messages.retrieve(message_id, thread_id=thread_id)
    return to_message(message)

  async def list_messages(
    self, thread_id: str, limit: int = PAGE_LIMIT, order: str = "desc", after: Optional[str] = None
  ) -> MessagePage:
    with translate_errors("thread", thread_id):
      page = await self.sdk.beta.threads.messages.list(thread_id, **_page_kwargs(limit, order, after))
    return MessagePage(data=tuple(to_message(message) for message in page.data), has_more=page.has_next_page())

  # -- runs --------------------------------------------------------------------

  async def create_run(
    self,
    thread_id: str,
    assistant_id: str,
    instructions: Optional[str] = None,
    tools: Optional[Iterable[dict]] = None,
  ) -> Run:
    kwargs = {"assistant_id": assistant_id}
    if instructions is not None:
      kwargs["instructions"] = instructions
    if tools is not None:
      kwargs["tools"] = list(tools)
    with translate_errors("thread", thread_id):
      run = await self.sdk.beta.threads.runs.create(thread_id, **kwargs)
    return to_run(run)

  async def retrieve_run(self, thread_id: str, run_id: str) -> Run:
    with translate_errors("run", run_id):
      run = await self.sdk.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
    return to_run(run)

  async def list_run_steps(self, thread_id: str, run_id: str) -> List[RunStep]:
    steps = []
    after = None
    while True:
      with translate_errors("run", run_id):
        page = await self.sdk.beta.threads.runs.steps.list(
          run_id, thread_id=thread_id, **_page_kwargs(PAGE_LIMIT, "asc", after)
        )
      for step in page.data:
        converted = to_step(step)
        if converted is not None:
          steps.append(converted)
      if not page.data or not page.has_next_page():
        return steps
      after = page.data[-1].id

  async def submit_tool_outputs(self, thread_id: str, run_id: str, outputs: Iterable[ToolCallResult]) -> Run:
    tool_outputs = [{"tool_call_id": output.call_id, "output": output.output} for output in outputs]
    with translate_errors("run", run_id):
      run = await self.sdk.beta.threads.runs.submit_tool_outputs(
        run_id, thread_id=thread_id, tool_outputs=tool_outputs
      )
    return to_run(run)


def _page_kwargs(limit: int, order: str, after: Optional[str]) -> dict:
  kwargs = {"limit": min(limit, PAGE_LIMIT), "order": order}
  if after is not None:
    kwargs["after"] = after
  return kwargs


def to_assistant(assistant) -> AssistantRecord:
  return AssistantRecord(
    id=assistant.id,
    model=assistant.model,
    name=assistant.name,
    description=assistant.description,
    instructions=assistant.instructions,
    tools=tuple(tool.model_dump(exclude_none=True) for tool in assistant.tools or []),
    metadata=dict(assistant.metadata or {}),
  )


def to_run(run) -> Run:
  required_tool_calls = ()
  if run.required_action is not None and run.required_action.submit_tool_outputs is not None:
    required_tool_calls = tuple(
      FunctionToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "")
      for call in run.required_action.submit_tool_outputs.tool_calls
    )
  return Run(
    id=run.id,
    thread_id=run.thread_id,
    status=RunStatus(run.status),
    assistant_id=run.assistant_id,
    required_tool_calls=required_tool_calls,
    last_error=run.last_error.message if run.last_error is not None else None,
  )


def to_step(step) -> Optional[RunStep]:
  details = step.step_details
  match details.type:
    case "message_creation":
      converted = MessageCreationDetails(message_id=details.message_creation.message_id)
    case "tool_calls":
      converted = ToolCallsDetails(
        tool_calls=tuple(
          FunctionToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "")
          for call in details.tool_calls
          if call.type == "function"
        )
      )
    case _:
      return None
  return RunStep(
    id=step.id,
    run_id=step.run_id,
    status=RunStepStatus(step.status),
    details=converted,
    completed_at=step.completed_at,
  )


def to_message(message) -> ThreadMessage:
  content = []
  for item in message.content:
    match item.type:
      case "text":
        content.append(
          MessageText(
            value=item.text.value,
            annotations=tuple(to_annotation(annotation) for annotation in item.text.annotations or []),
          )
        )
      case "image_file":
        content.append(MessageImageFile(file_id=item.image_file.file_id))
  return ThreadMessage(
    id=message.id,
    role=message.role,
    content=tuple(content),
    assistant_id=message.assistant_id,
  )


def to_annotation(annotation) -> TextAnnotation:
  match annotation.type:
    case "file_citation":
      kind = AnnotationKind.FILE_CITATION
      file_id = annotation.file_citation.file_id
    case _:
      kind = AnnotationKind.FILE_PATH
      file_id = annotation.file_path.file_id
  return TextAnnotation(
    kind=kind,
    text=annotation.text,
    start_index=annotation.start_index,
    end_index=annotation.end_index,
    file_id=file_id,
  )
