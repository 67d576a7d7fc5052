"""Conversation messages, content parts, token usage and streaming agent events."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    text: str


@dataclass(frozen=True)
class ToolCallPart:
    """A tool invocation requested by the model."""

    id: str
    name: str
    input: Any = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultPart:
    """The result of executing a tool call."""

    tool_call_id: str
    output: str
    is_error: bool = False


@dataclass(frozen=True)
class ThinkingPart:
    """Model reasoning content; never surfaced in logs."""

    text: str


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart, ThinkingPart]


def _part_to_dict(part: ContentPart) -> dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    if isinstance(part, ToolCallPart):
        return {"type": "tool_call", "id": part.id, "name": part.name, "input": part.input}
    if isinstance(part, ToolResultPart):
        return {
            "type": "tool_result",
            "tool_call_id": part.tool_call_id,
            "output": part.output,
            "is_error": part.is_error,
        }
    if isinstance(part, ThinkingPart):
        return {"type": "thinking", "text": part.text}
    raise TypeError(f"not a content part: {part!r}")


def _part_from_dict(data: dict[str, Any]) -> ContentPart:
    try:
        kind = data["type"]
        if kind == "text":
            return TextPart(text=data["text"])
        if kind == "tool_call":
            return ToolCallPart(id=data["id"], name=data["name"], input=data.get("input", {}))
        if kind == "tool_result":
            return ToolResultPart(
                tool_call_id=data["tool_call_id"],
                output=data["output"],
                is_error=bool(data.get("is_error", False)),
            )
        if kind == "thinking":
            return ThinkingPart(text=data["text"])
    except KeyError as exc:
        raise ValueError(f"content part missing field {exc}") from exc
    raise ValueError(f"unknown content part type: {kind!r}")


@dataclass
class Message:
    """One message in a conversation."""

    id: str
    role: Role
    parts: list[ContentPart] = field(default_factory=list)

    @classmethod
    def tool_result(cls, tool_call_id: str, output: str, is_error: bool) -> Message:
        """A tool-role message carrying a single tool result."""
        return cls(
            id=uuid.uuid4().hex,
            role=Role.TOOL,
            parts=[ToolResultPart(tool_call_id=tool_call_id, output=output, is_error=is_error)],
        )

    @classmethod
    def user(cls, message_id: str, text: str) -> Message:
        """A user message with a single text part."""
        return cls(id=message_id, role=Role.USER, parts=[TextPart(text=text)])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "parts": [_part_to_dict(p) for p in self.parts],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        try:
            role = Role(data["role"])
            return cls(
                id=data["id"],
                role=role,
                parts=[_part_from_dict(p) for p in data.get("parts", [])],
            )
        except KeyError as exc:
            raise ValueError(f"message missing field {exc}") from exc


@dataclass(frozen=True)
class Usage:
    """Token counts for a run."""

    input_tokens: int = 0
    output_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"input_tokens": self.input_tokens, "output_tokens": self.output_tokens}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Usage:
        return cls(
            input_tokens=int(data.get("input_tokens", 0)),
            output_tokens=int(data.get("output_tokens", 0)),
        )


# ── Streaming agent events ──────────────────────────────────────────────────


@dataclass(frozen=True)
class InputMessageEvent:
    message_id: str
    message: Message


@dataclass(frozen=True)
class MessageStartEvent:
    message_id: str
    role: Role


@dataclass(frozen=True)
class MessageStopEvent:
    message_id: str


@dataclass(frozen=True)
class MessageCompleteEvent:
    message: Message


@dataclass(frozen=True)
class TextChunkEvent:
    message_id: str
    index: int
    text: str


@dataclass(frozen=True)
class ThinkingChunkEvent:
    message_id: str
    index: int
    text: str


@dataclass(frozen=True)
class ToolCallStartEvent:
    message_id: str
    tool_call_id: str
    name: str


@dataclass(frozen=True)
class ToolCallInputDeltaEvent:
    tool_call_id: str
    delta: str


@dataclass(frozen=True)
class ToolCallInputDoneEvent:
    tool_call_id: str
    input: Any


@dataclass(frozen=True)
class ToolExecutingEvent:
    tool_call_id: str
    name: str


@dataclass(frozen=True)
class ToolCompleteEvent:
    tool_call_id: str
    output: str
    is_error: bool = False


@dataclass(frozen=True)
class RunCompleteEvent:
    usage: Usage
    iterations: int


AgentEvent = Union[
    InputMessageEvent,
    MessageStartEvent,
    MessageStopEvent,
    MessageCompleteEvent,
    TextChunkEvent,
    ThinkingChunkEvent,
    ToolCallStartEvent,
    ToolCallInputDeltaEvent,
    ToolCallInputDoneEvent,
    ToolExecutingEvent,
    ToolCompleteEvent,
    RunCompleteEvent,
]