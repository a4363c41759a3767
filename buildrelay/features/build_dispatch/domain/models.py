# File: buildrelay/features/build_dispatch/domain/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional
from uuid import UUID

from buildrelay.core.enums import BuildResult, DispatchState


def utc_now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobSubmission:
    """
    DTO for requesting a new parameterized build.
    Immutable once handed to the dispatcher.
    """
    job_name: str
    parameters: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.job_name or not self.job_name.strip():
            raise ValueError("Job name cannot be empty.")
        for key, value in self.parameters.items():
            if not isinstance(value, str):
                raise ValueError(f"Parameter '{key}' must be a string, got {type(value).__name__}.")


@dataclass(frozen=True)
class AcceptanceResponse:
    """What the remote side answered to a 'start job' request."""
    status_code: int
    detail: str = ""

    @property
    def accepted(self) -> bool:
        # 2xx or the 302 redirect Jenkins answers with when it queues the build
        return 200 <= self.status_code < 300 or self.status_code == 302


@dataclass(frozen=True)
class SubmissionToken:
    """
    Proof that a dispatch was accepted. The build number is not known yet:
    the remote queue assigns it later.
    """
    submission: JobSubmission
    status_code: int
    accepted_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class QueueItem:
    """
    A pending entry of the remote admission queue.

    `params` is the raw parameter text as the queue reports it
    (newline-joined `KEY=value` pairs), not a parsed mapping.
    `task_name` is the job's short name; `task_path` is the full
    folder path ('infra/deploy') when the queue reported the job URL.
    """
    task_name: str
    params: str = ""
    build_number: Optional[int] = None
    task_path: str = ""

    @property
    def job_name(self) -> str:
        return self.task_path or self.task_name

    def matches(self, submission: JobSubmission) -> bool:
        """
        Same job, and every submitted value appears somewhere in the
        parameter text. This is a substring check: a queued build of the
        same job whose parameters merely contain our value also matches.
        """
        wanted = "/".join(p for p in submission.job_name.split("/") if p)
        if self.job_name != wanted:
            return False
        return all(value in self.params for value in submission.parameters.values())


@dataclass(frozen=True)
class BuildHandle:
    """Stable identifier of one concrete build."""
    job_name: str
    number: int

    def __str__(self):
        return f"{self.job_name}#{self.number}"


@dataclass(frozen=True)
class BuildStatus:
    number: int
    running: bool
    result: Optional[BuildResult] = None
    duration_ms: int = 0

    @property
    def duration_seconds(self) -> int:
        return round(self.duration_ms / 1000)


@dataclass(frozen=True)
class BuildLog:
    """Full console text at fetch time. Always the whole log, never a delta."""
    handle: BuildHandle
    text: str
    fetched_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class BuildSnapshot:
    handle: BuildHandle
    status: BuildStatus
    log: BuildLog

    @property
    def is_terminal(self) -> bool:
        return not self.status.running


@dataclass(frozen=True)
class DispatchConfig:
    """
    Timing of the two polling loops.
    Defaults mirror the cadence the portal panel used (2s queue, 3s build).
    """
    queue_poll_interval: float = 2.0
    build_poll_interval: float = 3.0
    resolution_timeout: Optional[float] = 300.0  # None = wait forever
    max_resolution_attempts: Optional[int] = None

    def __post_init__(self):
        if self.queue_poll_interval < 0 or self.build_poll_interval < 0:
            raise ValueError("Poll intervals cannot be negative.")
        if self.resolution_timeout is not None and self.resolution_timeout <= 0:
            raise ValueError("Resolution timeout must be positive (or None for no limit).")
        if self.max_resolution_attempts is not None and self.max_resolution_attempts < 1:
            raise ValueError("max_resolution_attempts must be at least 1.")

    @classmethod
    def from_settings(cls, settings) -> "DispatchConfig":
        timeout = settings.JENKINS_RESOLUTION_TIMEOUT_SECONDS
        return cls(
            queue_poll_interval=settings.JENKINS_QUEUE_POLL_SECONDS,
            build_poll_interval=settings.JENKINS_BUILD_POLL_SECONDS,
            resolution_timeout=timeout if timeout > 0 else None,
        )


@dataclass
class DispatchOutcome:
    """
    Structured end result of a dispatch sequence.
    Failures are reported through error_kind/error_message instead of raising.
    """
    state: DispatchState
    record_id: Optional[UUID] = None
    handle: Optional[BuildHandle] = None
    final_status: Optional[BuildStatus] = None
    log: str = ""
    snapshots: int = 0
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == DispatchState.SUCCEEDED


@dataclass(frozen=True)
class JobSummary:
    name: str
    color: str = ""
    url: str = ""
