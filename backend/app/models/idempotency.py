import enum
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String


class IdempotencyStatus(enum.Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class IdempotencyRecord(Base):
    __tablename__ = "idempotency_records"
    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(160), unique=True, nullable=False, index=True)
    operation = Column(String(64), nullable=False)
    status = Column(
        Enum(IdempotencyStatus), nullable=False, default=IdempotencyStatus.IN_PROGRESS
    )
    response_body = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
