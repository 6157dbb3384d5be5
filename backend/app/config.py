from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stockroom.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:8081"]
    RESET_DB: bool = False
    LOG_LEVEL: str = "INFO"
    LOW_STOCK_THRESHOLD: int = 10
    DEFAULT_UNIT: str = "pcs"
    LEDGER_LOCK_TIMEOUT_SECONDS: int = 10
    SESSION_SWEEP_SECONDS: int = 30
    FEED_POLL_INTERVAL_MS: int = 1000
    BOOTSTRAP_ADMIN_EMAIL: Optional[str] = None
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = None
    BOOTSTRAP_ADMIN_NAME: str = "Administrator"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
