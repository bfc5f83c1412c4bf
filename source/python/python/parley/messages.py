from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ConversationRole(Enum):
  USER = "user"
  SYSTEM = "system"
  ASSISTANT = "assistant"
  TOOL = "tool"


class ContentType(Enum):
  TEXT = "text"
  FILE_REFERENCE = "file_reference"
  ANNOTATION = "annotation"


@dataclass(frozen=True)
class TextContent:
  text: str = ""
  type: ContentType = ContentType.TEXT


@dataclass(frozen=True)
class FileReferenceContent:
  file_id: str
  type: ContentType = ContentType.FILE_REFERENCE


@dataclass(frozen=True)
class AnnotationContent:
  """A citation or file path attached to the text of a message."""

  quote: Optional[str] = None
  start_index: Optional[int] = None
  end_index: Optional[int] = None
  file_id: Optional[str] = None
  type: ContentType = ContentType.ANNOTATION


ContentItem = Union[TextContent, FileReferenceContent, AnnotationContent]


@dataclass(frozen=True)
class ChatMessage:
  """
  One message of a conversation.

  A message holds an ordered tuple of content items. The first text item is
  the message ``content``; annotations describe spans of that text and file
  references point at files produced by the remote service.

  Messages are immutable: once a message is part of a chat history it is
  never changed.
  """

  role: ConversationRole
  items: tuple[ContentItem, ...] = field(default_factory=tuple)
  author_name: Optional[str] = None

  def __init__(
    self,
    role: ConversationRole | str,
    content: str | ContentItem | list[ContentItem] | tuple[ContentItem, ...] = (),
    author_name: Optional[str] = None,
  ):
    if isinstance(role, str):
      role = ConversationRole(role)
    if isinstance(content, str):
      items = (TextContent(content),)
    elif isinstance(content, (TextContent, FileReferenceContent, AnnotationContent)):
      items = (content,)
    else:
      items = tuple(content)
    object.__setattr__(self, "role", role)
    object.__setattr__(self, "items", items)
    object.__setattr__(self, "author_name", author_name)

  @property
  def content(self) -> Optional[str]:
    for item in self.items:
      match item:
        case TextContent(text=text):
          return text
    return None

  @property
  def annotations(self) -> list[AnnotationContent]:
    return [item for item in self.items if isinstance(item, AnnotationContent)]

  @property
  def file_references(self) -> list[FileReferenceContent]:
    return [item for item in self.items if isinstance(item, FileReferenceContent)]

  def __str__(self) -> str:
    author = self.author_name or "*"
    return f"{self.role.value} - {author}: {self.content or ''}"


def UserMessage(content: str | list[ContentItem], author_name: Optional[str] = None) -> ChatMessage:
  return ChatMessage(ConversationRole.USER, content, author_name)


def SystemMessage(content: str | list[ContentItem], author_name: Optional[str] = None) -> ChatMessage:
  return ChatMessage(ConversationRole.SYSTEM, content, author_name)


def AssistantMessage(content: str | list[ContentItem], author_name: Optional[str] = None) -> ChatMessage:
  return ChatMessage(ConversationRole.ASSISTANT, content, author_name)


__all__ = [
  "ConversationRole",
  "ContentType",
  "TextContent",
  "FileReferenceContent",
  "AnnotationContent",
  "ContentItem",
  "ChatMessage",
  "UserMessage",
  "SystemMessage",
  "AssistantMessage",
]
