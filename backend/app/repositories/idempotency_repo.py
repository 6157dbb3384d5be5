import logging
from typing import Callable, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models.idempotency import IdempotencyRecord, IdempotencyStatus

log = logging.getLogger(__name__)


class IdempotencyRepository:
    """
    Every call runs on its own short-lived session and commits immediately,
    so claims are visible to concurrent requests and the caller's unit of
    work is never joined or committed early.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[IdempotencyRecord]:
        with self.session_factory() as s:
            return (
                s.query(IdempotencyRecord)
                .filter(IdempotencyRecord.key == key)
                .first()
            )

    def begin(self, key: str, operation: str) -> Tuple[Optional[IdempotencyRecord], bool]:
        """
        Atomically claim `key`.
        Returns (record, created_flag)
          - created_flag == True  -> this call inserted the IN_PROGRESS row (owner)
          - created_flag == False -> the key was already claimed earlier
        """
        created = False
        try:
            with self.session_factory() as s:
                s.add(
                    IdempotencyRecord(
                        key=key, operation=operation, status=IdempotencyStatus.IN_PROGRESS
                    )
                )
                s.commit()
                created = True
        except IntegrityError:
            log.debug("begin(): key already claimed key=%r", key)
        return self.get(key), created

    def mark_completed(self, key: str, response_body: dict):
        with self.session_factory() as s:
            rec = s.query(IdempotencyRecord).filter(IdempotencyRecord.key == key).first()
            if not rec:
                raise RuntimeError(f"Idempotency record missing for key: {key}")
            rec.status = IdempotencyStatus.COMPLETED
            rec.response_body = response_body
            s.commit()
        log.debug("mark_completed(): key=%r", key)

    def release(self, key: str):
        """
        Drop an unfinished claim so the same key can be retried. Rejected
        requests never leave a record behind; a retry re-runs validation.
        """
        with self.session_factory() as s:
            rec = s.query(IdempotencyRecord).filter(IdempotencyRecord.key == key).first()
            if rec and rec.status != IdempotencyStatus.COMPLETED:
                s.delete(rec)
                s.commit()
        log.debug("release(): key=%r", key)
