"""Persisted agent state: the coarse domain events and the conversation they fold into."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from jobflow.context import CONCLUDE_TOOL
from jobflow.definitions import WorkflowAgentDef
from jobflow.messages import Message, Usage


@dataclass(frozen=True)
class AgentParams:
    """Per-agent run configuration distilled from a workflow agent definition."""

    system_prompt: Optional[str] = None
    has_output_schema: bool = False
    allow_ask_user: bool = False
    max_iterations: Optional[int] = None
    max_retries: int = 0

    @classmethod
    def from_def(cls, agent_def: WorkflowAgentDef) -> AgentParams:
        return cls(
            system_prompt=agent_def.system_prompt,
            has_output_schema=agent_def.output_schema is not None,
            allow_ask_user=agent_def.allow_ask_user,
            max_iterations=agent_def.max_iterations,
            max_retries=agent_def.max_retries if agent_def.max_retries is not None else 0,
        )

    def handoff_tool(self) -> Optional[str]:
        """The `conclude` tool name when the agent outputs or asks, else None."""
        if self.has_output_schema or self.allow_ask_user:
            return CONCLUDE_TOOL
        return None


@dataclass(frozen=True)
class InputMessage:
    """The input that began (or resumed) a turn."""

    message: Message


@dataclass(frozen=True)
class MessageComplete:
    """A finished assistant message."""

    message: Message


@dataclass(frozen=True)
class ToolComplete:
    """A tool call finished executing."""

    tool_call_id: str
    output: str
    is_error: bool = False


@dataclass(frozen=True)
class RunComplete:
    """The agent loop ended normally."""

    usage: Usage
    iterations: int


@dataclass(frozen=True)
class RunCancelled:
    """The run was cancelled."""


AgentDomainEvent = Union[InputMessage, MessageComplete, ToolComplete, RunComplete, RunCancelled]


@dataclass
class AgentState:
    """The conversation history reconstructed from agent domain events."""

    messages: list[Message] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"messages": [m.to_dict() for m in self.messages]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentState:
        return cls(messages=[Message.from_dict(m) for m in data.get("messages", [])])


def apply_agent_event(state: AgentState, event: AgentDomainEvent) -> AgentState:
    """Fold one event into the state, returning the new state."""
    if isinstance(event, (InputMessage, MessageComplete)):
        return AgentState(messages=[*state.messages, event.message])
    if isinstance(event, ToolComplete):
        result = Message.tool_result(event.tool_call_id, event.output, event.is_error)
        return AgentState(messages=[*state.messages, result])
    if isinstance(event, (RunComplete, RunCancelled)):
        return AgentState(messages=list(state.messages))
    raise TypeError(f"not an agent domain event: {event!r}")


def agent_persistence_id(session_id: Any) -> str:
    """The journal identity of an agent session."""
    return f"agent/{session_id}"


def encode_agent_event(event: AgentDomainEvent) -> bytes:
    """Serialize a domain event to JSON bytes."""
    if isinstance(event, InputMessage):
        body: dict[str, Any] = {"type": "InputMessage", "message": event.message.to_dict()}
    elif isinstance(event, MessageComplete):
        body = {"type": "MessageComplete", "message": event.message.to_dict()}
    elif isinstance(event, ToolComplete):
        body = {
            "type": "ToolComplete",
            "tool_call_id": event.tool_call_id,
            "output": event.output,
            "is_error": event.is_error,
        }
    elif isinstance(event, RunComplete):
        body = {"type": "RunComplete", "usage": event.usage.to_dict(), "iterations": event.iterations}
    elif isinstance(event, RunCancelled):
        body = {"type": "RunCancelled"}
    else:
        raise TypeError(f"not an agent domain event: {event!r}")
    return json.dumps(body).encode("utf-8")


def decode_agent_event(data: Union[bytes, str]) -> AgentDomainEvent:
    """Parse JSON bytes produced by `encode_agent_event`; raise ValueError if malformed."""
    try:
        body = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid agent event: {exc}") from exc
    if not isinstance(body, dict):
        raise ValueError("agent event must be a JSON object")
    kind = body.get("type")
    try:
        if kind == "InputMessage":
            return InputMessage(message=Message.from_dict(body["message"]))
        if kind == "MessageComplete":
            return MessageComplete(message=Message.from_dict(body["message"]))
        if kind == "ToolComplete":
            return ToolComplete(
                tool_call_id=body["tool_call_id"],
                output=body["output"],
                is_error=bool(body.get("is_error", False)),
            )
        if kind == "RunComplete":
            return RunComplete(usage=Usage.from_dict(body["usage"]), iterations=int(body["iterations"]))
        if kind == "RunCancelled":
            return RunCancelled()
    except KeyError as exc:
        raise ValueError(f"agent event missing field {exc}") from exc
    raise ValueError(f"unknown agent event type: {kind!r}")