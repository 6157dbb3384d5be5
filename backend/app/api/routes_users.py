from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.adapters.mock_identity import MockIdentityAdapter
from app.api.deps import get_current_session, get_identity
from app.db import get_db
from app.schemas.user_schema import UserCreate, UserOut
from app.services.session_service import SessionContext
from app.services.user_service import (
    UserNotFound,
    UserPermissionError,
    UserService,
    UserServiceException,
)

router = APIRouter(prefix="/api/users", tags=["users"])


def _raise_http(e: UserServiceException):
    if isinstance(e, UserPermissionError):
        raise HTTPException(status_code=403, detail=str(e))
    if isinstance(e, UserNotFound):
        raise HTTPException(status_code=404, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[UserOut], summary="List user accounts")
def list_users(
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        users = UserService(db).list_users(session)
    except UserServiceException as e:
        _raise_http(e)
    return [UserOut.from_account(u) for u in users]


@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
):
    try:
        user = UserService(db).create_user(
            session, payload.name, payload.email, payload.password, payload.role
        )
    except UserServiceException as e:
        _raise_http(e)
    return UserOut.from_account(user)


@router.post("/{uid}/toggle-status", response_model=UserOut)
def toggle_status(
    uid: str,
    db: Session = Depends(get_db),
    session: SessionContext = Depends(get_current_session),
    identity: MockIdentityAdapter = Depends(get_identity),
):
    try:
        user = UserService(db, identity=identity).toggle_status(session, uid)
    except UserServiceException as e:
        _raise_http(e)
    return UserOut.from_account(user)
