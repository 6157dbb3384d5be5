from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: str
    password: str


class UserCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    role: Optional[str] = "user"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    uid: str
    name: str
    email: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, u) -> "UserOut":
        return cls(
            uid=u.uid,
            name=u.name,
            email=u.email,
            role=u.role.value,
            is_active=u.is_active,
            created_at=u.created_at,
        )


class SessionOut(BaseModel):
    uid: str
    name: str
    email: str
    role: str
    is_admin: bool
    is_user: bool
    can_modify_stock: bool

    @classmethod
    def from_session(cls, s) -> "SessionOut":
        return cls(
            uid=s.uid,
            name=s.name,
            email=s.email,
            role=s.role.value,
            is_admin=s.is_admin(),
            is_user=s.is_user(),
            can_modify_stock=s.can_modify_stock(),
        )


class LoginResponse(SessionOut):
    token: str
