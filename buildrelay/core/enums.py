from enum import Enum, unique

@unique
class DispatchState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    RESOLVING = "resolving"
    TRACKING = "tracking"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNKNOWN = "unknown"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

@unique
class BuildResult(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ABORTED = "ABORTED"
    UNSTABLE = "UNSTABLE"
    NOT_BUILT = "NOT_BUILT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw):
        """Maps a remote result string to a member. None stays None (build still running)."""
        if raw is None:
            return None
        try:
            return cls(str(raw).upper())
        except ValueError:
            return cls.UNKNOWN


TERMINAL_STATES = frozenset({
    DispatchState.SUCCEEDED,
    DispatchState.FAILED,
    DispatchState.UNKNOWN,
    DispatchState.CANCELLED,
})
