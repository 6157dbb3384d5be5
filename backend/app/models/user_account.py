import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, String

from app.db import Base


class Role(enum.Enum):
    ADMIN = "admin"
    USER = "user"


class UserAccount(Base):
    __tablename__ = "users"

    uid = Column(String(64), primary_key=True, default=lambda: uuid4().hex)
    name = Column(String(256), nullable=False)
    email = Column(String(320), unique=True, index=True, nullable=False)
    password_hash = Column(String(128), nullable=False)
    role = Column(Enum(Role, values_callable=lambda r: [m.value for m in r]), nullable=False, default=Role.USER)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<UserAccount email={self.email} role={self.role.value}>"
