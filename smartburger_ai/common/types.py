"""Provides common types definitions."""

import dataclasses
from typing import Any, Literal

from openai.types import chat
from openai.types.chat import chat_completion_message_function_tool_call
from openai.types.shared_params import function_definition

SystemMessage = chat.ChatCompletionSystemMessageParam
AssistantMessage = chat.ChatCompletionMessage
AssistantMessageParam = chat.ChatCompletionAssistantMessageParam
UserMessage = chat.ChatCompletionUserMessageParam
ToolMessage = chat.ChatCompletionToolMessageParam
ToolCall = (
    chat_completion_message_function_tool_call.ChatCompletionMessageFunctionToolCall
)

Message = SystemMessage | AssistantMessage | UserMessage | ToolMessage

ModelResponse = chat.ChatCompletion
Tool = chat.ChatCompletionToolParam
Function = function_definition.FunctionDefinition

Role = Literal["user", "assistant"]


@dataclasses.dataclass(frozen=True)
class ChatTurn:
    """One turn of a conversation as the HTTP surface sees it."""

    role: Role
    content: str

    def to_message(self) -> Message:
        if self.role == "assistant":
            return AssistantMessageParam(role="assistant", content=self.content)
        return UserMessage(role="user", content=self.content)


@dataclasses.dataclass
class ToolResult:
    """Outcome of one tool execution.

    The description is what the model is told and what the UI shows.
    """

    type: str
    description: str
    success: bool

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def message_to_dict(message: Message) -> dict[str, Any]:
    """Converts the given message to a dictionary."""
    if hasattr(message, "model_dump"):
        return message.model_dump(exclude_none=True)
    return dict(message)


def message_role(message: Message) -> str:
    if isinstance(message, dict):
        return message.get("role", "assistant")
    return getattr(message, "role", "assistant")


def message_content(message: Message) -> Any:
    if isinstance(message, dict):
        return message.get("content")
    return getattr(message, "content", None)
