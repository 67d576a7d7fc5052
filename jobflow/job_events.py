"""Job lifecycle: status, log frames, persisted job events and the state they fold into."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class JobStatus(str, Enum):
    """Status of a supervised job."""

    RUNNING = "Running"
    SUSPENDED = "Suspended"
    AWAITING_USER_INPUT = "AwaitingUserInput"
    FINISHED = "Finished"
    FAILED = "Failed"


@dataclass(frozen=True)
class JobEventFrame:
    """One render-friendly log fragment for a job."""

    job_id: str
    text: str


@dataclass(frozen=True)
class JobStarted:
    """The job's workflow was launched."""


@dataclass(frozen=True)
class JobConcluded:
    """The job finished with this output."""

    output: Any


@dataclass(frozen=True)
class JobSuspended:
    """The job was suspended."""


@dataclass(frozen=True)
class JobAwaitingInput:
    """The job is waiting for user input."""


@dataclass(frozen=True)
class JobFailed:
    """The job failed."""

    error: str


JobDomainEvent = Union[JobStarted, JobConcluded, JobSuspended, JobAwaitingInput, JobFailed]


@dataclass(frozen=True)
class JobState:
    """Persisted job state; `status` is None until the job's first event."""

    status: Optional[JobStatus] = None


def apply_job_event(state: JobState, event: JobDomainEvent) -> JobState:
    """Fold one event into the state, returning the new state."""
    if isinstance(event, JobStarted):
        status = JobStatus.RUNNING
    elif isinstance(event, JobConcluded):
        status = JobStatus.FINISHED
    elif isinstance(event, JobSuspended):
        status = JobStatus.SUSPENDED
    elif isinstance(event, JobAwaitingInput):
        status = JobStatus.AWAITING_USER_INPUT
    elif isinstance(event, JobFailed):
        status = JobStatus.FAILED
    else:
        raise TypeError(f"not a job domain event: {event!r}")
    return JobState(status=status)


def job_persistence_id(job_id: str) -> str:
    """The journal identity of a job."""
    return f"job/{job_id}"