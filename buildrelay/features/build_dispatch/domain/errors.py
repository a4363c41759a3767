# File: buildrelay/features/build_dispatch/domain/errors.py
from typing import Optional


class DispatchError(Exception):
    """Base class for every failure of a dispatch sequence."""
    kind = "dispatch_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class SubmissionRejected(DispatchError):
    """The remote side refused to start the job (or could not be reached)."""
    kind = "submission_rejected"

    def __init__(self, message: str, status_code: Optional[int] = None, detail: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ResolutionError(DispatchError):
    """Queue or last-build lookup failed, or was inconclusive."""
    kind = "resolution_error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ResolutionTimeout(DispatchError):
    kind = "resolution_timeout"

    def __init__(self, message: str, waited_seconds: float, attempts: int):
        super().__init__(message)
        self.waited_seconds = waited_seconds
        self.attempts = attempts


class TrackingError(DispatchError):
    """A single tracking tick failed. Never fatal to the sequence."""
    kind = "tracking_error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class DispatchCancelled(DispatchError):
    kind = "cancelled"


class DispatchStateError(DispatchError):
    """An operation was called out of order (e.g. track before resolve)."""
    kind = "invalid_state"
