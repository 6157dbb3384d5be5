import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import identity_adapter
from app.api.health import router as health_router
from app.api.routes_auth import router as auth_router
from app.api.routes_catalogue import router as catalogue_router
from app.api.routes_stock import router as stock_router
from app.api.routes_users import router as users_router
from app.config import settings
from app.db import SessionLocal, init_db
from app.services.session_service import SessionProvider
from app.services.user_service import UserService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("app")


def sweep_inactive_sessions():
    db = SessionLocal()
    try:
        SessionProvider(db, identity_adapter).sweep_inactive()
    except Exception:
        log.exception("inactive session sweep failed")
    finally:
        db.close()


def bootstrap_admin():
    db = SessionLocal()
    try:
        UserService(db).ensure_bootstrap_admin(
            settings.BOOTSTRAP_ADMIN_EMAIL,
            settings.BOOTSTRAP_ADMIN_PASSWORD,
            settings.BOOTSTRAP_ADMIN_NAME,
        )
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()
    bootstrap_admin()

    # deactivated accounts lose their sessions without waiting for their next request
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        sweep_inactive_sessions,
        "interval",
        seconds=settings.SESSION_SWEEP_SECONDS,
        id="sweep_inactive_sessions",
    )
    scheduler.start()

    try:
        yield
    finally:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Stockroom - Backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(auth_router, tags=["auth"])

app.include_router(catalogue_router, tags=["catalogue"])

app.include_router(stock_router, tags=["stock"])

app.include_router(users_router, tags=["users"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
