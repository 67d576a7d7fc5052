"""The job registry: job specs, registry events and the state they fold into."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Union

from jobflow.definitions import WorkflowDefinition
from jobflow.job_events import JobStatus


class JobRegistryError(Exception):
    """A registry operation was refused."""


@dataclass(frozen=True)
class JobSpec:
    """Persisted, self-contained description of one job.

    ``capabilities`` is the already-resolved capability spec, carried inline so the
    journal is the single source of truth for a job.
    """

    workflow: WorkflowDefinition
    workflow_name: str
    workdir: Path
    input: str
    capabilities: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "workflow": self.workflow.to_dict(),
            "workflow_name": self.workflow_name,
            "workdir": str(self.workdir),
            "input": self.input,
            "capabilities": self.capabilities,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobSpec:
        try:
            return cls(
                workflow=WorkflowDefinition.from_dict(data["workflow"]),
                workflow_name=data["workflow_name"],
                workdir=Path(data["workdir"]),
                input=data["input"],
                capabilities=data.get("capabilities"),
            )
        except KeyError as exc:
            raise ValueError(f"job spec missing field {exc}") from exc


@dataclass(frozen=True)
class JobRecord:
    """One registry row."""

    spec: JobSpec
    status: JobStatus
    submitted_at: int


@dataclass(frozen=True)
class JobSummary:
    """A job as shown by a listing."""

    job_id: str
    workflow_name: str
    status: JobStatus
    submitted_at: int
    workdir: str


# ── Registry events (persisted) ─────────────────────────────────────────────


@dataclass(frozen=True)
class JobSubmitted:
    """A new job entered the registry."""

    id: str
    spec: JobSpec
    submitted_at: int


@dataclass(frozen=True)
class JobStatusChanged:
    """A job reported a new status."""

    id: str
    status: JobStatus


@dataclass(frozen=True)
class JobRemoved:
    """A terminal job was dropped from the registry."""

    id: str


SupervisorEvent = Union[JobSubmitted, JobStatusChanged, JobRemoved]


def is_terminal(status: JobStatus) -> bool:
    """Whether a job in this status will never run again."""
    return status in (JobStatus.FINISHED, JobStatus.FAILED)


def summarize(job_id: str, record: JobRecord) -> JobSummary:
    """Project a registry row into a listing entry."""
    return JobSummary(
        job_id=job_id,
        workflow_name=record.spec.workflow_name,
        status=record.status,
        submitted_at=record.submitted_at,
        workdir=str(record.spec.workdir),
    )


@dataclass(frozen=True)
class SupervisorState:
    """The job registry, purely a function of the supervisor's events."""

    jobs: dict[str, JobRecord] = field(default_factory=dict)

    def summaries(self) -> list[JobSummary]:
        """Every job, ordered by id."""
        return [summarize(job_id, self.jobs[job_id]) for job_id in sorted(self.jobs)]


def apply_supervisor_event(state: SupervisorState, event: SupervisorEvent) -> SupervisorState:
    """Fold one event into the registry, returning the new state."""
    jobs = dict(state.jobs)
    if isinstance(event, JobSubmitted):
        jobs[event.id] = JobRecord(
            spec=event.spec, status=JobStatus.RUNNING, submitted_at=event.submitted_at
        )
    elif isinstance(event, JobStatusChanged):
        record = jobs.get(event.id)
        if record is not None:
            jobs[event.id] = replace(record, status=event.status)
    elif isinstance(event, JobRemoved):
        jobs.pop(event.id, None)
    else:
        raise TypeError(f"not a supervisor event: {event!r}")
    return SupervisorState(jobs=jobs)


def check_removable(state: SupervisorState, job_id: str) -> JobRecord:
    """The record of a job that may be removed; JobRegistryError if unknown or still active."""
    record = state.jobs.get(job_id)
    if record is None:
        raise JobRegistryError(f"no such job: {job_id}")
    if not is_terminal(record.status):
        raise JobRegistryError(
            f"job {job_id} is {record.status.value}; stop it before removing"
        )
    return record


def recoverable_jobs(state: SupervisorState) -> list[tuple[str, JobSpec]]:
    """Non-terminal jobs, ordered by id, that need a live job after a restart."""
    return [
        (job_id, state.jobs[job_id].spec)
        for job_id in sorted(state.jobs)
        if not is_terminal(state.jobs[job_id].status)
    ]