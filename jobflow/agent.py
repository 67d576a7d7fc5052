"""Agent run logic: interpreting `conclude` payloads, history repair and event mapping."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from jobflow.agent_state import (
    AgentDomainEvent,
    AgentParams,
    MessageComplete,
    RunComplete,
    ToolComplete,
)
from jobflow.messages import (
    AgentEvent,
    Message,
    MessageCompleteEvent,
    Role,
    RunCompleteEvent,
    ToolCallPart,
    ToolCompleteEvent,
    ToolResultPart,
)

_INTERRUPTED_OUTPUT = "interrupted by shutdown, not completed"
_BACKOFF_BASE_MS = 50
_BACKOFF_MAX_SHIFT = 6


@dataclass(frozen=True)
class OutputConclusion:
    """The agent delivered its final output."""

    output: Any


@dataclass(frozen=True)
class AskConclusion:
    """The agent paused to ask the user a question."""

    tool_call_id: Optional[str]
    question: str


Conclusion = Union[OutputConclusion, AskConclusion]


def _field(data: Any, name: str) -> Any:
    return data.get(name) if isinstance(data, Mapping) else None


def _question(data: Any) -> str:
    question = _field(data, "question")
    return question if isinstance(question, str) else ""


def interpret_conclusion(params: AgentParams, data: Any, tool_call_id: Optional[str]) -> Conclusion:
    """Decide whether a `conclude` payload is a final output or a question."""
    if params.has_output_schema and params.allow_ask_user:
        kind = _field(data, "kind")
        if not isinstance(kind, str):
            kind = "submit"
        if kind == "ask":
            return AskConclusion(tool_call_id=tool_call_id, question=_question(data))
        return OutputConclusion(output=_field(data, "output"))
    if params.allow_ask_user:
        return AskConclusion(tool_call_id=tool_call_id, question=_question(data))
    return OutputConclusion(output=data)


def sanitize_for_resume(messages: Iterable[Message]) -> list[Message]:
    """Append error results for tool calls in the last assistant message that were never answered."""
    history = list(messages)
    answered = {
        part.tool_call_id
        for message in history
        for part in message.parts
        if isinstance(part, ToolResultPart)
    }
    last_assistant = next((m for m in reversed(history) if m.role == Role.ASSISTANT), None)
    if last_assistant is None:
        return history
    dangling = [
        part.id
        for part in last_assistant.parts
        if isinstance(part, ToolCallPart) and part.id not in answered
    ]
    history.extend(Message.tool_result(call_id, _INTERRUPTED_OUTPUT, True) for call_id in dangling)
    return history


def coarse_event(event: AgentEvent) -> Optional[AgentDomainEvent]:
    """The domain event to persist for a streaming event, or None for noise and inputs."""
    if isinstance(event, MessageCompleteEvent):
        return MessageComplete(message=event.message)
    if isinstance(event, ToolCompleteEvent):
        return ToolComplete(tool_call_id=event.tool_call_id, output=event.output, is_error=event.is_error)
    if isinstance(event, RunCompleteEvent):
        return RunComplete(usage=event.usage, iterations=event.iterations)
    return None


def find_tool_call_id(events: Iterable[AgentEvent], tool_name: str) -> Optional[str]:
    """The id of the most recent completed-message tool call to `tool_name`."""
    for event in reversed(list(events)):
        if not isinstance(event, MessageCompleteEvent):
            continue
        for part in event.message.parts:
            if isinstance(part, ToolCallPart) and part.name == tool_name:
                return part.id
    return None


def retry_backoff(attempt: int) -> float:
    """Seconds to wait before retry `attempt` after a provider error."""
    return _BACKOFF_BASE_MS * (1 << min(attempt, _BACKOFF_MAX_SHIFT)) / 1000