# File: buildrelay/features/build_dispatch/service/dispatcher.py

import logging
import threading
import time
from typing import Dict, Iterator, Optional

from buildrelay.core.enums import BuildResult, DispatchState
from ..domain.errors import (
    DispatchCancelled, DispatchStateError, ResolutionError, ResolutionTimeout,
    SubmissionRejected, TrackingError
)
from ..domain.interfaces import IBuildInfoService, IJobControlService, IJobQueueService
from ..domain.models import (
    BuildHandle, BuildSnapshot, BuildStatus, DispatchConfig, JobSubmission, SubmissionToken
)

logger = logging.getLogger(__name__)

FAILED_RESULTS = {BuildResult.FAILURE, BuildResult.ABORTED, BuildResult.UNSTABLE, BuildResult.NOT_BUILT}


class BuildDispatcher:
    """
    Runs ONE dispatch sequence: submit -> resolve build number -> track.

    The remote queue does not hand back a build number when a job is
    started, so the dispatcher reconciles its submission against the queue,
    then against the job's last build, before it can follow the build.

    Both polling loops run on the caller's thread and sleep on a single
    Event, so `cancel()` (from any thread) interrupts whichever wait is
    active and no loop outlives the sequence.
    A fresh instance is required for every new dispatch.
    """

    def __init__(self,
                 queue: IJobQueueService,
                 control: IJobControlService,
                 build_info: IBuildInfoService,
                 config: Optional[DispatchConfig] = None):
        self.queue = queue
        self.control = control
        self.build_info = build_info
        self.config = config or DispatchConfig()

        self.handle: Optional[BuildHandle] = None
        self.latest: Optional[BuildSnapshot] = None
        self.last_tracking_error: Optional[TrackingError] = None

        self._state = DispatchState.IDLE
        self._token: Optional[SubmissionToken] = None
        self._tracking = False
        self._stop = threading.Event()
        self._lock = threading.Lock()

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    # --- Phase 1: Submission ---

    def submit(self, job_name: str, parameters: Optional[Dict[str, str]] = None) -> SubmissionToken:
        """
        Issues exactly one 'start with parameters' call.

        Raises:
            SubmissionRejected: the remote answered with anything other than
                2xx/302, or the request itself failed.
        """
        submission = JobSubmission(job_name=job_name, parameters=dict(parameters or {}))
        self._require(DispatchState.IDLE, "submit")
        self._set_state(DispatchState.SUBMITTING)

        logger.info(f"Dispatching '{submission.job_name}' with {len(submission.parameters)} parameter(s)")

        try:
            response = self.control.start_with_parameters(submission.job_name, dict(submission.parameters))
        except Exception as e:
            self._set_state(DispatchState.FAILED)
            logger.error(f"Start request for '{submission.job_name}' failed: {e}")
            raise SubmissionRejected(f"Request to start '{submission.job_name}' failed: {e}") from e

        if not response.accepted:
            self._set_state(DispatchState.FAILED)
            logger.error(f"Start of '{submission.job_name}' rejected with status {response.status_code}")
            raise SubmissionRejected(
                f"Start of '{submission.job_name}' rejected ({response.status_code}): {response.detail}",
                status_code=response.status_code,
                detail=response.detail,
            )

        self._token = SubmissionToken(submission=submission, status_code=response.status_code)
        self._set_state(DispatchState.RESOLVING)
        return self._token

    # --- Phase 2: Queue resolution ---

    def resolve_build_number(self, token: SubmissionToken) -> BuildHandle:
        """
        Polls the admission queue until the submission turns into a build.

        Per poll, exactly one of:
          a. no matching queue entry -> it already left the queue; fall back
             to the job's last build (ResolutionError if there is none)
          b. matching entry with a build number -> done
          c. matching entry still waiting -> poll again

        Raises:
            ResolutionError: a lookup failed or the fallback was inconclusive.
            ResolutionTimeout: still queued when the timeout/attempt ceiling hit.
            DispatchCancelled: cancel() was called while waiting.
        """
        self._require(DispatchState.RESOLVING, "resolve_build_number")
        if token is not self._token:
            raise DispatchStateError("Submission token was not issued by this dispatcher.")

        submission = token.submission
        timeout = self.config.resolution_timeout
        max_attempts = self.config.max_resolution_attempts
        started = time.monotonic()
        attempts = 0

        while True:
            if self._stop.wait(self.config.queue_poll_interval):
                self._set_state(DispatchState.CANCELLED)
                raise DispatchCancelled(f"Resolution of '{submission.job_name}' cancelled.")

            attempts += 1
            try:
                number = self._poll_queue(submission)
            except ResolutionError:
                self._set_state(DispatchState.FAILED)
                raise

            if number is not None:
                self.handle = BuildHandle(job_name=submission.job_name, number=number)
                self._set_state(DispatchState.TRACKING)
                logger.info(f"Resolved '{submission.job_name}' to build {self.handle} after {attempts} poll(s)")
                return self.handle

            waited = time.monotonic() - started
            if (timeout is not None and waited >= timeout) or (max_attempts is not None and attempts >= max_attempts):
                self._set_state(DispatchState.FAILED)
                logger.error(f"'{submission.job_name}' still queued after {waited:.1f}s / {attempts} poll(s)")
                raise ResolutionTimeout(
                    f"Build of '{submission.job_name}' did not leave the queue in time.",
                    waited_seconds=waited,
                    attempts=attempts,
                )

    def _poll_queue(self, submission: JobSubmission) -> Optional[int]:
        """One queue poll. Returns the build number, or None to keep waiting."""
        try:
            items = self.queue.list_queued_items()
        except Exception as e:
            raise ResolutionError(f"Queue lookup failed: {e}", cause=e) from e

        item = next((i for i in items if i.matches(submission)), None)

        if item is None:
            # Gone from the queue: it started (or even finished) between polls
            logger.debug(f"'{submission.job_name}' no longer queued, asking for its last build")
            try:
                number = self.queue.get_last_build(submission.job_name)
            except Exception as e:
                raise ResolutionError(f"Last build lookup failed: {e}", cause=e) from e
            if number is None:
                raise ResolutionError(f"Could not determine build number for '{submission.job_name}'.")
            return number

        if item.build_number is not None:
            return item.build_number

        logger.debug(f"'{submission.job_name}' still waiting in queue")
        return None

    # --- Phase 3: Tracking ---

    def track(self, handle: BuildHandle) -> Iterator[BuildSnapshot]:
        """
        Lazily yields one snapshot (status + full log) per tick.

        The first tick runs immediately, the next one a build poll interval
        after the previous one finished. The first snapshot that is no longer
        running is the last one yielded.
        """
        self._require(DispatchState.TRACKING, "track")
        if handle != self.handle:
            raise DispatchStateError(f"Build {handle} is not the build of this dispatch ({self.handle}).")
        if self._tracking:
            raise DispatchStateError(f"Build {handle} is already being tracked.")
        self._tracking = True
        return self._track(handle)

    def _track(self, handle: BuildHandle) -> Iterator[BuildSnapshot]:
        finished = False
        try:
            while not self._stop.is_set():
                snapshot = self._tick(handle)

                if snapshot is not None:
                    self.latest = snapshot
                    if snapshot.is_terminal:
                        self._set_state(self._final_state(snapshot.status))
                        finished = True
                        logger.info(f"Build {handle} finished: {snapshot.status.result} ({snapshot.status.duration_seconds}s)")
                    yield snapshot
                    if finished:
                        return

                if self._stop.wait(self.config.build_poll_interval):
                    break
        finally:
            # Cancelled, or the consumer closed the generator early
            if not finished:
                self.cancel()

    def _tick(self, handle: BuildHandle) -> Optional[BuildSnapshot]:
        try:
            status = self.build_info.get_status(handle.job_name, handle.number)
            log = self.build_info.get_log(handle.job_name, handle.number)
        except Exception as e:
            error = TrackingError(f"Tracking tick for {handle} failed: {e}", cause=e)
            self.last_tracking_error = error
            logger.warning(error.message)
            return None
        return BuildSnapshot(handle=handle, status=status, log=log)

    @staticmethod
    def _final_state(status: BuildStatus) -> DispatchState:
        if status.result == BuildResult.SUCCESS:
            return DispatchState.SUCCEEDED
        if status.result in FAILED_RESULTS:
            return DispatchState.FAILED
        return DispatchState.UNKNOWN

    # --- Lifecycle ---

    def cancel(self):
        """Stops the active loop at once. Idempotent; no effect on a finished sequence."""
        self._stop.set()
        if self._set_state(DispatchState.CANCELLED):
            logger.info("Dispatch sequence cancelled")

    def _set_state(self, new_state: DispatchState) -> bool:
        """Moves forward. A terminal state is final; returns False if the move was refused."""
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = new_state
            return True

    def _require(self, expected: DispatchState, operation: str):
        if self._state != expected:
            raise DispatchStateError(
                f"Cannot {operation} while dispatch is '{self._state.value}' (expected '{expected.value}')."
            )
