"""Chat request/response models shared with the chat consumer.

These are provider-neutral; the OpenAI adapter translates
them to its own wire format at the edge.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):  # noqa: UP042
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str


class ChatRequest(BaseModel):
    """A conversation to send to a chat model."""

    model_config = ConfigDict(frozen=True)

    messages: list[Message] = Field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None
    metadata: dict[str, str] | None = None


class ChatResponse(BaseModel):
    """A chat model's reply."""

    model_config = ConfigDict(frozen=True)

    content: str
    model: str = ""
    usage_tokens: int = 0
