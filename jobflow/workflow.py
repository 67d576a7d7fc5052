"""Workflow status machine: domain events, persisted state, notifications and routing."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Union

from jobflow.definitions import WorkflowTransition
from jobflow.expr import ExpressionError, evaluate

logger = logging.getLogger(__name__)


class WorkflowStatus(str, Enum):
    """Lifecycle status of a workflow."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUSPENDED = "Suspended"
    AWAITING_USER_INPUT = "AwaitingUserInput"
    FINISHED = "Finished"
    FAILED = "Failed"


# ── Domain events (persisted) ───────────────────────────────────────────────


@dataclass(frozen=True)
class WorkflowStarted:
    """The workflow began at its start agent."""


@dataclass(frozen=True)
class AgentStarted:
    """An agent session started with the given input."""

    agent_name: str
    session_id: uuid.UUID
    input: str


@dataclass(frozen=True)
class AgentTransitioned:
    """Control moved from one agent session to another."""

    from_agent: str
    to_agent: str
    from_session: uuid.UUID
    to_session: uuid.UUID
    condition: Optional[str] = None


@dataclass(frozen=True)
class WorkflowFinished:
    """The workflow finished with this output."""

    output: Any


@dataclass(frozen=True)
class WorkflowSuspended:
    """The workflow was suspended (cancel or a recoverable failure)."""


@dataclass(frozen=True)
class WorkflowFailed:
    """The workflow failed."""

    error: str
    recoverable: bool = False


@dataclass(frozen=True)
class WorkflowPaused:
    """An agent paused to ask the user a question."""

    session_id: uuid.UUID
    tool_call_id: Optional[str] = None


@dataclass(frozen=True)
class WorkflowResumed:
    """The workflow resumed after a pause."""


WorkflowDomainEvent = Union[
    WorkflowStarted,
    AgentStarted,
    AgentTransitioned,
    WorkflowFinished,
    WorkflowSuspended,
    WorkflowFailed,
    WorkflowPaused,
    WorkflowResumed,
]


# ── Live notifications (never persisted) ────────────────────────────────────


@dataclass(frozen=True)
class AwaitingUserInputNotice:
    """An agent is waiting for the user to answer `question`."""

    question: str


@dataclass(frozen=True)
class SuspendedNotice:
    """The workflow was suspended."""


@dataclass(frozen=True)
class FinishedNotice:
    """The workflow finished with this output."""

    output: Any


@dataclass(frozen=True)
class FailedNotice:
    """The workflow failed terminally."""

    error: str


WorkflowNotification = Union[AwaitingUserInputNotice, SuspendedNotice, FinishedNotice, FailedNotice]


# ── State ───────────────────────────────────────────────────────────────────


def _uuid_or_none(value: Any) -> Optional[uuid.UUID]:
    return None if value is None else uuid.UUID(str(value))


@dataclass(frozen=True)
class WorkflowState:
    """Persisted workflow state, purely a function of the event log."""

    status: WorkflowStatus = WorkflowStatus.PENDING
    current_agent: Optional[str] = None
    current_session_id: Optional[uuid.UUID] = None
    pending_tool_call: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "current_agent": self.current_agent,
            "current_session_id": (
                None if self.current_session_id is None else str(self.current_session_id)
            ),
            "pending_tool_call": self.pending_tool_call,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowState:
        try:
            return cls(
                status=WorkflowStatus(data["status"]),
                current_agent=data.get("current_agent"),
                current_session_id=_uuid_or_none(data.get("current_session_id")),
                pending_tool_call=data.get("pending_tool_call"),
            )
        except KeyError as exc:
            raise ValueError(f"workflow state missing field {exc}") from exc


def apply_workflow_event(state: WorkflowState, event: WorkflowDomainEvent) -> WorkflowState:
    """Fold one event into the state, returning the new state."""
    if isinstance(event, WorkflowStarted):
        return replace(state, status=WorkflowStatus.RUNNING)
    if isinstance(event, AgentStarted):
        return replace(
            state,
            current_agent=event.agent_name,
            current_session_id=event.session_id,
            status=WorkflowStatus.RUNNING,
        )
    if isinstance(event, AgentTransitioned):
        return replace(
            state,
            current_agent=event.to_agent,
            current_session_id=event.to_session,
            status=WorkflowStatus.RUNNING,
        )
    if isinstance(event, WorkflowFinished):
        return replace(state, status=WorkflowStatus.FINISHED)
    if isinstance(event, WorkflowSuspended):
        return replace(state, status=WorkflowStatus.SUSPENDED)
    if isinstance(event, WorkflowFailed):
        return replace(state, status=WorkflowStatus.FAILED)
    if isinstance(event, WorkflowPaused):
        return replace(
            state,
            status=WorkflowStatus.AWAITING_USER_INPUT,
            pending_tool_call=event.tool_call_id,
        )
    if isinstance(event, WorkflowResumed):
        return replace(state, status=WorkflowStatus.RUNNING, pending_tool_call=None)
    raise TypeError(f"not a workflow domain event: {event!r}")


# ── Routing ─────────────────────────────────────────────────────────────────


def find_next_transition(
    transitions: Iterable[WorkflowTransition], output: Any
) -> Optional[tuple[str, Optional[str]]]:
    """The first transition whose condition matches `output`, as (target, condition).

    An absent condition always matches. A condition that fails to evaluate or
    yields anything but ``true`` does not match.
    """
    for transition in transitions:
        if transition.condition is None:
            return transition.to, None
        try:
            matched = evaluate(transition.condition, {"output": output})
        except ExpressionError as exc:
            logger.warning(
                "transition condition %r failed to evaluate: %s", transition.condition, exc
            )
            continue
        if matched is True:
            return transition.to, transition.condition
    return None


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def output_as_input(output: Any) -> str:
    """An agent's output as the next agent's input: strings as-is, else compact JSON."""
    if isinstance(output, str):
        return output
    return _to_json(output)


def workflow_persistence_id(run_id: str) -> str:
    """The journal identity of a workflow run."""
    return f"workflow/{run_id}"


# ── Serialization ───────────────────────────────────────────────────────────


def encode_workflow_event(event: WorkflowDomainEvent) -> bytes:
    """Serialize a domain event to JSON bytes."""
    if isinstance(event, WorkflowStarted):
        body: dict[str, Any] = {"type": "WorkflowStarted"}
    elif isinstance(event, AgentStarted):
        body = {
            "type": "AgentStarted",
            "agent_name": event.agent_name,
            "session_id": str(event.session_id),
            "input": event.input,
        }
    elif isinstance(event, AgentTransitioned):
        body = {
            "type": "AgentTransitioned",
            "from": event.from_agent,
            "to": event.to_agent,
            "from_session": str(event.from_session),
            "to_session": str(event.to_session),
            "condition": event.condition,
        }
    elif isinstance(event, WorkflowFinished):
        body = {"type": "WorkflowFinished", "output": event.output}
    elif isinstance(event, WorkflowSuspended):
        body = {"type": "WorkflowSuspended"}
    elif isinstance(event, WorkflowFailed):
        body = {"type": "WorkflowFailed", "error": event.error, "recoverable": event.recoverable}
    elif isinstance(event, WorkflowPaused):
        body = {
            "type": "WorkflowPaused",
            "session_id": str(event.session_id),
            "tool_call_id": event.tool_call_id,
        }
    elif isinstance(event, WorkflowResumed):
        body = {"type": "WorkflowResumed"}
    else:
        raise TypeError(f"not a workflow domain event: {event!r}")
    return json.dumps(body).encode("utf-8")


def decode_workflow_event(data: Union[bytes, str]) -> WorkflowDomainEvent:
    """Parse JSON produced by `encode_workflow_event`; raise ValueError if malformed."""
    try:
        body = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"invalid workflow event: {exc}") from exc
    if not isinstance(body, dict):
        raise ValueError("workflow event must be a JSON object")
    kind = body.get("type")
    try:
        if kind == "WorkflowStarted":
            return WorkflowStarted()
        if kind == "AgentStarted":
            return AgentStarted(
                agent_name=body["agent_name"],
                session_id=uuid.UUID(body["session_id"]),
                input=body["input"],
            )
        if kind == "AgentTransitioned":
            return AgentTransitioned(
                from_agent=body["from"],
                to_agent=body["to"],
                from_session=uuid.UUID(body["from_session"]),
                to_session=uuid.UUID(body["to_session"]),
                condition=body.get("condition"),
            )
        if kind == "WorkflowFinished":
            return WorkflowFinished(output=body.get("output"))
        if kind == "WorkflowSuspended":
            return WorkflowSuspended()
        if kind == "WorkflowFailed":
            return WorkflowFailed(
                error=body["error"], recoverable=bool(body.get("recoverable", False))
            )
        if kind == "WorkflowPaused":
            return WorkflowPaused(
                session_id=uuid.UUID(body["session_id"]),
                tool_call_id=body.get("tool_call_id"),
            )
        if kind == "WorkflowResumed":
            return WorkflowResumed()
    except KeyError as exc:
        raise ValueError(f"workflow event missing field {exc}") from exc
    except (TypeError, AttributeError) as exc:
        raise ValueError(f"malformed workflow event: {exc}") from exc
    raise ValueError(f"unknown workflow event type: {kind!r}")