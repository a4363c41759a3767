import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Enum as SQLEnum, JSON, Text, Uuid
from buildrelay.core.database.base import Base
from buildrelay.core.enums import DispatchState

def utc_now():
    return datetime.now(timezone.utc)

class DispatchRecordModel(Base):
    """
    One row per dispatch sequence (submit -> resolve -> track).
    A history of what was dispatched, not a work queue: nothing picks these up.
    """
    __tablename__ = "dispatches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    job_name = Column(String, nullable=False, index=True)
    parameters = Column(JSON, default=dict)

    state = Column(SQLEnum(DispatchState), default=DispatchState.SUBMITTING, nullable=False, index=True)
    build_number = Column(Integer, nullable=True)
    result = Column(String, nullable=True)       # Remote result string, e.g. SUCCESS
    duration_ms = Column(Integer, nullable=True)

    error_kind = Column(String, nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "job_name": self.job_name,
            "parameters": dict(self.parameters or {}),
            "state": self.state.value if self.state else None,
            "build_number": self.build_number,
            "result": self.result,
            "duration_ms": self.duration_ms,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
