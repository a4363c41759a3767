import logging
from typing import Optional, Dict, Any, List
from uuid import UUID

from buildrelay.core.database.connection import SessionLocal
from buildrelay.core.enums import DispatchState
from ..domain.interfaces import IDispatchRepository
from ..domain.models import JobSubmission, utc_now
from .sql_models import DispatchRecordModel

logger = logging.getLogger(__name__)

class SqlDispatchRepository(IDispatchRepository):

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def create_record(self, submission: JobSubmission) -> UUID:
        with self.session_factory() as db:
            record = DispatchRecordModel(
                job_name=submission.job_name,
                parameters=dict(submission.parameters),
                state=DispatchState.SUBMITTING
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return record.id

    def mark_resolved(self, record_id: UUID, build_number: int) -> None:
        with self.session_factory() as db:
            record = db.get(DispatchRecordModel, record_id)
            if not record:
                logger.error(f"Dispatch record {record_id} not found.")
                return
            record.build_number = build_number
            record.state = DispatchState.TRACKING
            record.resolved_at = utc_now()
            db.commit()

    def mark_finished(self,
                      record_id: UUID,
                      state: DispatchState,
                      result: Optional[str] = None,
                      duration_ms: Optional[int] = None,
                      error_kind: Optional[str] = None,
                      error_message: Optional[str] = None) -> None:
        with self.session_factory() as db:
            record = db.get(DispatchRecordModel, record_id)
            if not record:
                logger.error(f"Dispatch record {record_id} not found.")
                return
            record.state = state
            record.result = result
            record.duration_ms = duration_ms
            record.error_kind = error_kind
            record.error_message = error_message
            record.finished_at = utc_now()
            db.commit()

    def get_record(self, record_id: UUID) -> Optional[Dict[str, Any]]:
        with self.session_factory() as db:
            record = db.get(DispatchRecordModel, record_id)
            return record.to_dict() if record else None

    def list_recent(self, job_name: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        with self.session_factory() as db:
            query = db.query(DispatchRecordModel)
            if job_name:
                query = query.filter(DispatchRecordModel.job_name == job_name)

            records = (
                query
                .order_by(DispatchRecordModel.created_at.desc())
                .limit(limit)
                .all()
            )
            return [r.to_dict() for r in records]
