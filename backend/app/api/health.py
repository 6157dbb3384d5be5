from fastapi import APIRouter
from sqlalchemy import text

from app.api.deps import identity_adapter
from app.db import engine

router = APIRouter()


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False
    identity_ok = identity_adapter.health_check()

    return {
        "status": "ok" if db_ok and identity_ok else "degraded",
        "db": db_ok,
        "identity_adapter": identity_ok,
    }
