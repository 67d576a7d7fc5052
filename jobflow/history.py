"""Render a job's history so far by replaying its durable workflow and agent journals.

Streaming deltas are never journaled, so this shows coarse messages, tool calls
and results, and workflow lifecycle transitions rather than the live stream.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from jobflow.agent_state import (
    AgentState,
    agent_persistence_id,
    apply_agent_event,
    decode_agent_event,
)
from jobflow.job_events import JobEventFrame
from jobflow.journal import InMemoryJournal
from jobflow.messages import Message, Role, TextPart, ToolCallPart, ToolResultPart
from jobflow.workflow import (
    AgentStarted,
    AgentTransitioned,
    WorkflowDomainEvent,
    WorkflowFailed,
    WorkflowFinished,
    WorkflowPaused,
    WorkflowResumed,
    WorkflowStarted,
    WorkflowSuspended,
    decode_workflow_event,
    workflow_persistence_id,
)

MAX_OUTPUT_CHARS = 500


def render_history(journal: InMemoryJournal, job_id: str) -> list[JobEventFrame]:
    """Replay the job's workflow and agent journals into log frames."""
    lines: list[str] = []
    for event in _workflow_events(journal, job_id):
        if isinstance(event, WorkflowStarted):
            lines.append("● workflow started\n")
        elif isinstance(event, AgentStarted):
            lines.append(f"\n▸ agent {event.agent_name}\n")
            lines.extend(_agent_session_lines(journal, event.session_id))
        elif isinstance(event, AgentTransitioned):
            cond = "" if event.condition is None else f" [{event.condition}]"
            lines.append(f"↳ {event.from_agent} → {event.to_agent}{cond}\n")
        elif isinstance(event, WorkflowPaused):
            lines.append("⏸ awaiting user input\n")
        elif isinstance(event, WorkflowResumed):
            lines.append("▶ resumed\n")
        elif isinstance(event, WorkflowSuspended):
            lines.append("⏸ suspended\n")
        elif isinstance(event, WorkflowFinished):
            lines.append(f"\n✓ finished: {compact(event.output)}\n")
        elif isinstance(event, WorkflowFailed):
            lines.append(f"\n✗ failed: {event.error}\n")
    return [JobEventFrame(job_id=job_id, text=text) for text in lines]


def _snapshot_seq(journal: InMemoryJournal, persistence_id: str) -> int:
    snapshot = journal.latest_snapshot(persistence_id)
    return 0 if snapshot is None else snapshot[1]


def _workflow_events(journal: InMemoryJournal, job_id: str) -> list[WorkflowDomainEvent]:
    pid = workflow_persistence_id(job_id)
    events: list[WorkflowDomainEvent] = []
    for payload in journal.replay(pid, _snapshot_seq(journal, pid)):
        try:
            events.append(decode_workflow_event(payload))
        except ValueError:
            continue
    return events


def _agent_session_lines(journal: InMemoryJournal, session_id: Any) -> list[str]:
    pid = agent_persistence_id(session_id)
    state = AgentState()
    seq = 0
    snapshot = journal.latest_snapshot(pid)
    if snapshot is not None:
        payload, snap_seq = snapshot
        try:
            state = AgentState.from_dict(json.loads(payload))
            seq = snap_seq
        except (ValueError, KeyError, TypeError, AttributeError):
            state = AgentState()
    for payload in journal.replay(pid, seq):
        try:
            event = decode_agent_event(payload)
        except ValueError:
            continue
        state = apply_agent_event(state, event)
    return [line for line in map(render_message, state.messages) if line is not None]


def render_message(message: Message) -> Optional[str]:
    """One message as log text, or None if it carries nothing worth showing."""
    out: list[str] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            text = part.text.strip()
            if text:
                prefix = "» " if message.role == Role.USER else ""
                out.append(f"{prefix}{text}\n")
        elif isinstance(part, ToolCallPart):
            out.append(f"· tool {part.name} {compact(part.input)}\n")
        elif isinstance(part, ToolResultPart):
            tag = "error" if part.is_error else "ok"
            out.append(f"· result [{tag}] {truncate(part.output)}\n")
    return "".join(out) or None


def compact(value: Any) -> str:
    """A JSON value as a single-line, length-bounded string."""
    try:
        text = json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    except (TypeError, ValueError):
        text = str(value)
    return truncate(text)


def truncate(text: str) -> str:
    """Cap `text` at MAX_OUTPUT_CHARS characters, noting the full length when cut."""
    if len(text) <= MAX_OUTPUT_CHARS:
        return text
    return f"{text[:MAX_OUTPUT_CHARS]}… ({len(text)} chars)"