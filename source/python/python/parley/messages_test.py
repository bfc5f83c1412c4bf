import pytest

from .messages import (
  AnnotationContent,
  AssistantMessage,
  ChatMessage,
  ConversationRole,
  FileReferenceContent,
  TextContent,
  UserMessage,
)


class TestChatMessage:
  def test_content_is_the_first_text_item(self):
    message = ChatMessage(
      "assistant",
      [FileReferenceContent("file_1"), TextContent("Here you go"), AnnotationContent(quote="go", file_id="file_1")],
      author_name="Writer",
    )

    assert message.role == ConversationRole.ASSISTANT
    assert message.content == "Here you go"
    assert message.file_references == [FileReferenceContent("file_1")]
    assert [annotation.quote for annotation in message.annotations] == ["go"]
    assert str(message) == "assistant - Writer: Here you go"

  def test_messages_are_immutable(self):
    message = UserMessage("hello")

    with pytest.raises(AttributeError):
      message.author_name = "someone"

  def test_equality(self):
    assert AssistantMessage("hi", "Writer") == ChatMessage(ConversationRole.ASSISTANT, "hi", "Writer")
    assert UserMessage("hi") != AssistantMessage("hi")
