import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from uuid import UUID, uuid4

from buildrelay.core.enums import DispatchState
from ..domain.errors import DispatchError
from ..domain.interfaces import (
    IBuildInfoService, IDispatchRepository, IJobControlService, IJobQueueService
)
from ..domain.models import (
    BuildHandle, BuildSnapshot, DispatchConfig, DispatchOutcome, JobSubmission
)
from .dispatcher import BuildDispatcher

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[BuildSnapshot], None]


@dataclass
class DispatchRun:
    """A sequence that has been started: its history id, its dispatcher, and (once resolved) its build."""
    record_id: UUID
    dispatcher: BuildDispatcher
    submission: JobSubmission
    handle: Optional[BuildHandle] = None


class DispatchService:
    """
    Public API for the Build Dispatch feature.
    Runs dispatch sequences end to end and keeps the dispatch history in sync.
    """

    def __init__(self,
                 queue: IJobQueueService,
                 control: IJobControlService,
                 build_info: IBuildInfoService,
                 repo: Optional[IDispatchRepository] = None,
                 config: Optional[DispatchConfig] = None):
        self.queue = queue
        self.control = control
        self.build_info = build_info
        self.repo = repo
        self.config = config or DispatchConfig()

        self._active: Dict[UUID, DispatchRun] = {}
        self._active_lock = threading.Lock()

    def start(self, job_name: str, parameters: Optional[Dict[str, str]] = None) -> DispatchRun:
        """
        Submits the job and waits until it has a build number.

        Raises:
            DispatchError: submission or resolution failed (already recorded).
        """
        run = self._open(job_name, parameters)
        self._resolve(run)
        return run

    def follow(self, run: DispatchRun, on_snapshot: Optional[SnapshotCallback] = None) -> DispatchOutcome:
        """
        Tracks a started run until its build finishes (or the run is cancelled).
        """
        if run.dispatcher.cancelled:
            return self._finish(run, 0)

        snapshots = 0
        try:
            for snapshot in run.dispatcher.track(run.handle):
                snapshots += 1
                if on_snapshot:
                    on_snapshot(snapshot)
        except Exception:
            run.dispatcher.cancel()
            self._finish(run, snapshots)
            raise

        return self._finish(run, snapshots)

    def dispatch(self,
                 job_name: str,
                 parameters: Optional[Dict[str, str]] = None,
                 on_snapshot: Optional[SnapshotCallback] = None) -> DispatchOutcome:
        """
        Whole sequence in one call. Never raises DispatchError: failures come
        back as an outcome carrying the error kind and message.
        """
        run = self._open(job_name, parameters)
        try:
            self._resolve(run)
        except DispatchError as e:
            return DispatchOutcome(
                state=run.dispatcher.state,
                record_id=run.record_id,
                error_kind=e.kind,
                error_message=e.message
            )
        return self.follow(run, on_snapshot)

    def cancel(self, record_id: UUID) -> bool:
        """Cancels a running sequence. Returns False if it is unknown or already over."""
        with self._active_lock:
            run = self._active.get(record_id)
        if run is None:
            return False
        run.dispatcher.cancel()
        return True

    def active_runs(self) -> List[UUID]:
        with self._active_lock:
            return list(self._active)

    # --- Internals ---

    def _open(self, job_name: str, parameters: Optional[Dict[str, str]]) -> DispatchRun:
        submission = JobSubmission(job_name=job_name, parameters=dict(parameters or {}))
        record_id = self.repo.create_record(submission) if self.repo else uuid4()

        run = DispatchRun(
            record_id=record_id,
            dispatcher=BuildDispatcher(self.queue, self.control, self.build_info, self.config),
            submission=submission
        )
        with self._active_lock:
            self._active[record_id] = run
        return run

    def _resolve(self, run: DispatchRun):
        try:
            token = run.dispatcher.submit(run.submission.job_name, run.submission.parameters)
            run.handle = run.dispatcher.resolve_build_number(token)
        except DispatchError as e:
            logger.error(f"Dispatch {run.record_id} of '{run.submission.job_name}' failed: {e.message}")
            self._forget(run)
            if self.repo:
                self.repo.mark_finished(
                    run.record_id,
                    run.dispatcher.state,
                    error_kind=e.kind,
                    error_message=e.message
                )
            raise

        if self.repo:
            self.repo.mark_resolved(run.record_id, run.handle.number)

    def _finish(self, run: DispatchRun, snapshots: int) -> DispatchOutcome:
        self._forget(run)
        dispatcher = run.dispatcher
        latest = dispatcher.latest

        outcome = DispatchOutcome(
            state=dispatcher.state,
            record_id=run.record_id,
            handle=run.handle,
            final_status=latest.status if latest else None,
            log=latest.log.text if latest else "",
            snapshots=snapshots
        )
        if dispatcher.state == DispatchState.CANCELLED:
            outcome.error_kind = "cancelled"
            outcome.error_message = f"Tracking of {run.handle} was cancelled."

        if self.repo:
            status = outcome.final_status
            self.repo.mark_finished(
                run.record_id,
                outcome.state,
                result=status.result.value if status and status.result else None,
                duration_ms=status.duration_ms if status else None,
                error_kind=outcome.error_kind,
                error_message=outcome.error_message
            )

        logger.info(f"Dispatch {run.record_id} ended as {outcome.state.value} after {snapshots} snapshot(s)")
        return outcome

    def _forget(self, run: DispatchRun):
        with self._active_lock:
            self._active.pop(run.record_id, None)
