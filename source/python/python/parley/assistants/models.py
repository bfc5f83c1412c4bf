"""
Records returned by the Assistants service.

The service speaks in a fixed set of kinds (run statuses, step details, content
items, annotations). Each kind set is a closed union here and is handled with an
explicit match where it is consumed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class RunStatus(Enum):
  QUEUED = "queued"
  IN_PROGRESS = "in_progress"
  REQUIRES_ACTION = "requires_action"
  CANCELLING = "cancelling"
  CANCELLED = "cancelled"
  FAILED = "failed"
  COMPLETED = "completed"
  EXPIRED = "expired"
  INCOMPLETE = "incomplete"

  @property
  def is_pending(self) -> bool:
    return self in POLLING_STATUSES

  @property
  def is_terminal_failure(self) -> bool:
    return self in TERMINAL_FAILURE_STATUSES


# A run in one of these states is still being worked on by the service
POLLING_STATUSES = frozenset({RunStatus.QUEUED, RunStatus.IN_PROGRESS, RunStatus.CANCELLING})

# A run in one of these states will never complete
TERMINAL_FAILURE_STATUSES = frozenset(
  {RunStatus.EXPIRED, RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.INCOMPLETE}
)


class RunStepStatus(Enum):
  IN_PROGRESS = "in_progress"
  CANCELLED = "cancelled"
  FAILED = "failed"
  COMPLETED = "completed"
  EXPIRED = "expired"


@dataclass(frozen=True)
class FunctionToolCall:
  id: str
  name: str
  arguments: str = ""


@dataclass(frozen=True)
class Run:
  id: str
  thread_id: str
  status: RunStatus
  assistant_id: Optional[str] = None
  required_tool_calls: tuple[FunctionToolCall, ...] = ()
  last_error: Optional[str] = None


@dataclass(frozen=True)
class MessageCreationDetails:
  message_id: str


@dataclass(frozen=True)
class ToolCallsDetails:
  tool_calls: tuple[FunctionToolCall, ...] = ()


StepDetails = Union[MessageCreationDetails, ToolCallsDetails]


@dataclass(frozen=True)
class RunStep:
  id: str
  run_id: str
  status: RunStepStatus
  details: StepDetails
  completed_at: Optional[int] = None


class AnnotationKind(Enum):
  FILE_CITATION = "file_citation"
  FILE_PATH = "file_path"


@dataclass(frozen=True)
class TextAnnotation:
  kind: AnnotationKind
  text: Optional[str] = None
  start_index: Optional[int] = None
  end_index: Optional[int] = None
  file_id: Optional[str] = None


@dataclass(frozen=True)
class MessageText:
  value: str
  annotations: tuple[TextAnnotation, ...] = ()


@dataclass(frozen=True)
class MessageImageFile:
  file_id: str


MessageContentItem = Union[MessageText, MessageImageFile]


@dataclass(frozen=True)
class ThreadMessage:
  id: str
  role: str
  content: tuple[MessageContentItem, ...] = ()
  assistant_id: Optional[str] = None


@dataclass(frozen=True)
class MessagePage:
  data: tuple[ThreadMessage, ...] = ()
  has_more: bool = False


@dataclass(frozen=True)
class AssistantDefinition:
  """
  Definition of an assistant to create on the service, or read back from it.

  Attributes:
    model: The model the assistant runs on
    enable_code_interpreter: Declare the code_interpreter tool
    enable_file_search: Declare the file_search tool
    metadata: Up to 16 key/value pairs stored with the assistant
  """

  model: str
  id: Optional[str] = None
  name: Optional[str] = None
  description: Optional[str] = None
  instructions: Optional[str] = None
  enable_code_interpreter: bool = False
  enable_file_search: bool = False
  metadata: dict = field(default_factory=dict, compare=False)

  def tools(self) -> list[dict]:
    tools = []
    if self.enable_code_interpreter:
      tools.append({"type": "code_interpreter"})
    if self.enable_file_search:
      tools.append({"type": "file_search"})
    return tools


@dataclass(frozen=True)
class AssistantRecord:
  id: str
  model: str
  name: Optional[str] = None
  description: Optional[str] = None
  instructions: Optional[str] = None
  tools: tuple[dict, ...] = field(default=(), compare=False)
  metadata: dict = field(default_factory=dict, compare=False)

  def to_definition(self) -> AssistantDefinition:
    tool_types = {tool.get("type") for tool in self.tools}
    return AssistantDefinition(
      model=self.model,
      id=self.id,
      name=self.name,
      description=self.description,
      instructions=self.instructions,
      enable_code_interpreter="code_interpreter" in tool_types,
      enable_file_search="file_search" in tool_types,
      metadata=dict(self.metadata),
    )
