from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Any
from uuid import UUID

from buildrelay.core.enums import DispatchState
from .models import (
    AcceptanceResponse, BuildLog, BuildStatus, JobSubmission, JobSummary, QueueItem
)


class ICredentialProvider(ABC):
    """
    Supplies the authorization material attached to every remote call.
    Callers treat the value as opaque.
    """

    @abstractmethod
    def authorization_header(self) -> Optional[str]:
        pass


class IJobQueueService(ABC):
    """
    Contract for reading the remote admission queue.
    """

    @abstractmethod
    def list_queued_items(self) -> List[QueueItem]:
        pass

    @abstractmethod
    def get_last_build(self, job_name: str) -> Optional[int]:
        """
        Number of the most recent build of the job, or None if it has none.
        """
        pass


class IJobControlService(ABC):

    @abstractmethod
    def start_with_parameters(self, job_name: str, parameters: Dict[str, str]) -> AcceptanceResponse:
        """
        Asks the remote side to start the job.
        Must not raise for non-success status codes; the caller decides
        what counts as accepted.
        """
        pass


class IBuildInfoService(ABC):

    @abstractmethod
    def get_status(self, job_name: str, build_number: int) -> BuildStatus:
        pass

    @abstractmethod
    def get_log(self, job_name: str, build_number: int) -> BuildLog:
        pass


class IJobCatalog(ABC):

    @abstractmethod
    def list_jobs(self) -> List[JobSummary]:
        pass


class IDispatchRepository(ABC):
    """
    Contract for the dispatch history.
    One record per dispatch sequence; records are never re-queued.
    """

    @abstractmethod
    def create_record(self, submission: JobSubmission) -> UUID:
        pass

    @abstractmethod
    def mark_resolved(self, record_id: UUID, build_number: int) -> None:
        pass

    @abstractmethod
    def mark_finished(self,
                      record_id: UUID,
                      state: DispatchState,
                      result: Optional[str] = None,
                      duration_ms: Optional[int] = None,
                      error_kind: Optional[str] = None,
                      error_message: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def get_record(self, record_id: UUID) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    def list_recent(self, job_name: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        pass
