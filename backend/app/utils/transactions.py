import os
import tempfile
from contextlib import contextmanager
from typing import Iterator

from filelock import FileLock
from sqlalchemy.orm import Session, SessionTransactionOrigin


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Run the block as one unit of work on the given Session.

    - No transaction yet: begin one, commit on exit.
    - Only an implicit (autobegun) transaction from earlier reads: adopt it
      and commit it on exit.
    - An explicit transaction owned by the caller: open a SAVEPOINT
      (begin_nested) and leave the outer commit to the caller.

    Any exception rolls the unit of work back before propagating.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    tx = session.get_transaction()
    if tx is not None and tx.origin is SessionTransactionOrigin.AUTOBEGIN:
        try:
            yield
            session.commit()
        except BaseException:
            session.rollback()
            raise
        return

    cm = session.begin() if tx is None else session.begin_nested()
    with cm:
        yield


def product_lock(product_id: int, timeout: float):
    """
    Host-wide lock serializing ledger commits for one product across worker
    processes. Raises filelock.Timeout when contended longer than `timeout`.
    """
    locks_dir = os.path.join(tempfile.gettempdir(), "stockroom_locks")
    os.makedirs(locks_dir, exist_ok=True)
    lock = FileLock(os.path.join(locks_dir, f"product_{product_id}.lock"))
    return lock.acquire(timeout=timeout)
