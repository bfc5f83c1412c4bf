"""
Tests for AssistantsClient: SDK calls and conversion of SDK responses.

The SDK client is replaced with MagicMock / AsyncMock objects shaped like the
responses of the beta Assistants API.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from parley.assistants.client import AssistantsClient, create_sdk_client, to_message, to_run, to_step
from parley.assistants.models import (
  AnnotationKind,
  AssistantDefinition,
  MessageCreationDetails,
  MessageImageFile,
  MessageText,
  RunStatus,
  RunStepStatus,
  ToolCallsDetails,
)
from parley.errors import RemoteNotFoundError
from parley.tools import ToolCallResult
from tests.assistants.mock_utils import make_config


def sdk_run(status="completed", required_calls=None, last_error=None):
  run = MagicMock()
  run.id = "run_1"
  run.thread_id = "thread_1"
  run.status = status
  run.assistant_id = "asst_1"
  run.last_error = None if last_error is None else MagicMock(message=last_error)
  if required_calls is None:
    run.required_action = None
  else:
    run.required_action.submit_tool_outputs.tool_calls = required_calls
  return run


def sdk_function_call(id, name, arguments):
  call = MagicMock()
  call.id = id
  call.type = "function"
  call.function.name = name
  call.function.arguments = arguments
  return call


def sdk_page(data, has_more=False):
  page = MagicMock()
  page.data = data
  page.has_next_page.return_value = has_more
  return page


def not_found_error():
  request = httpx.Request("GET", "https://api.openai.com/v1/threads/thread_1/messages/msg_1")
  response = httpx.Response(404, request=request)
  return openai.NotFoundError("No message found", response=response, body=None)


class TestConversion:
  def test_run_with_required_action(self):
    run = to_run(
      sdk_run("requires_action", required_calls=[sdk_function_call("call_1", "math-add", '{"a": 1}')])
    )

    assert run.status == RunStatus.REQUIRES_ACTION
    assert run.required_tool_calls[0].name == "math-add"
    assert run.last_error is None

  def test_failed_run_keeps_the_error(self):
    run = to_run(sdk_run("failed", last_error="Rate limit reached"))

    assert run.status.is_terminal_failure
    assert run.last_error == "Rate limit reached"

  def test_steps(self):
    message_step = MagicMock(id="step_1", run_id="run_1", status="completed", completed_at=12)
    message_step.step_details.type = "message_creation"
    message_step.step_details.message_creation.message_id = "msg_1"

    tool_step = MagicMock(id="step_2", run_id="run_1", status="in_progress", completed_at=None)
    tool_step.step_details.type = "tool_calls"
    code_call = MagicMock(type="code_interpreter")
    tool_step.step_details.tool_calls = [sdk_function_call("call_1", "math-add", "{}"), code_call]

    assert to_step(message_step).details == MessageCreationDetails("msg_1")
    converted = to_step(tool_step)
    assert converted.status == RunStepStatus.IN_PROGRESS
    assert isinstance(converted.details, ToolCallsDetails)
    assert [call.id for call in converted.details.tool_calls] == ["call_1"]

  def test_message_content(self):
    annotation = MagicMock(type="file_citation", text="[1]", start_index=4, end_index=7)
    annotation.file_citation.file_id = "file_1"
    text = MagicMock(type="text")
    text.text.value = "See [1]"
    text.text.annotations = [annotation]
    image = MagicMock(type="image_file")
    image.image_file.file_id = "file_2"
    message = MagicMock(id="msg_1", role="assistant", assistant_id="asst_1", content=[text, image])

    converted = to_message(message)

    assert converted.content[0] == MessageText(value="See [1]", annotations=converted.content[0].annotations)
    assert converted.content[0].annotations[0].kind == AnnotationKind.FILE_CITATION
    assert converted.content[0].annotations[0].file_id == "file_1"
    assert converted.content[1] == MessageImageFile(file_id="file_2")


class TestAssistantsClient:
  @pytest.mark.asyncio
  async def test_not_found_is_translated(self):
    sdk = MagicMock()
    sdk.beta.threads.messages.retrieve = AsyncMock(side_effect=not_found_error())

    with pytest.raises(RemoteNotFoundError) as e:
      await AssistantsClient(sdk).retrieve_message("thread_1", "msg_1")

    assert e.value.identifier == "msg_1"

  @pytest.mark.asyncio
  async def test_other_errors_propagate(self):
    sdk = MagicMock()
    sdk.beta.threads.runs.retrieve = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(RuntimeError):
      await AssistantsClient(sdk).retrieve_run("thread_1", "run_1")

  @pytest.mark.asyncio
  async def test_run_steps_are_paged_in_ascending_order(self):
    first = MagicMock(id="step_1", run_id="run_1", status="completed", completed_at=1)
    first.step_details.type = "message_creation"
    first.step_details.message_creation.message_id = "msg_1"
    second = MagicMock(id="step_2", run_id="run_1", status="completed", completed_at=2)
    second.step_details.type = "message_creation"
    second.step_details.message_creation.message_id = "msg_2"
    sdk = MagicMock()
    sdk.beta.threads.runs.steps.list = AsyncMock(side_effect=[sdk_page([first], has_more=True), sdk_page([second])])

    steps = await AssistantsClient(sdk).list_run_steps("thread_1", "run_1")

    assert [step.id for step in steps] == ["step_1", "step_2"]
    calls = sdk.beta.threads.runs.steps.list.call_args_list
    assert calls[0].kwargs["order"] == "asc"
    assert calls[1].kwargs["after"] == "step_1"

  @pytest.mark.asyncio
  async def test_submit_tool_outputs(self):
    sdk = MagicMock()
    sdk.beta.threads.runs.submit_tool_outputs = AsyncMock(return_value=sdk_run("queued"))

    run = await AssistantsClient(sdk).submit_tool_outputs(
      "thread_1", "run_1", [ToolCallResult("call_1", "5"), ToolCallResult("call_2", "20")]
    )

    assert run.status == RunStatus.QUEUED
    sdk.beta.threads.runs.submit_tool_outputs.assert_awaited_once_with(
      "run_1",
      thread_id="thread_1",
      tool_outputs=[{"tool_call_id": "call_1", "output": "5"}, {"tool_call_id": "call_2", "output": "20"}],
    )

  @pytest.mark.asyncio
  async def test_create_assistant_declares_tools(self):
    assistant = MagicMock(id="asst_1", model="gpt-4o", description=None, instructions="Be brief.", metadata={})
    assistant.name = "Reviewer"
    assistant.tools = []
    sdk = MagicMock()
    sdk.beta.assistants.create = AsyncMock(return_value=assistant)

    record = await AssistantsClient(sdk).create_assistant(
      AssistantDefinition(model="gpt-4o", name="Reviewer", instructions="Be brief.", enable_code_interpreter=True)
    )

    assert record.id == "asst_1"
    assert record.name == "Reviewer"
    assert sdk.beta.assistants.create.call_args.kwargs["tools"] == [{"type": "code_interpreter"}]


class TestSdkClient:
  def test_openai(self):
    assert type(create_sdk_client(make_config())) is openai.AsyncOpenAI

  def test_azure(self):
    config = make_config(endpoint="https://example.openai.azure.com", version="2024-05-01-preview")

    assert isinstance(create_sdk_client(config), openai.AsyncAzureOpenAI)

  def test_custom_transport_disables_retries(self):
    client = create_sdk_client(make_config(http_client=httpx.AsyncClient()))

    assert client.max_retries == 0
