import importlib
import logging
import os
import sys
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# every module declaring tables; imported before create_all so metadata is complete
MODEL_MODULES = [
    "app.models.user_account",
    "app.models.product_group",
    "app.models.product",
    "app.models.stock_adjustment",
    "app.models.idempotency",
]


def _running_under_pytest() -> bool:
    if any("pytest" in os.path.basename(a).lower() for a in sys.argv):
        return True
    return "PYTEST_CURRENT_TEST" in os.environ


def init_db(reset: Optional[bool] = None):
    """
    Initialize DB schema.

    Behavior:
      - reset=True drops and recreates every table.
      - reset=None resets when settings.RESET_DB is set or pytest is driving
        the process, so tests always start from a clean database.
      - Otherwise existing tables are left in place.
    """
    if reset is None:
        reset = settings.RESET_DB or _running_under_pytest()

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset:
        log.info("Resetting database schema")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized (%s)", engine.url.render_as_string(hide_password=True))


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
