from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_current_session, get_session_provider
from app.schemas.user_schema import LoginRequest, LoginResponse, SessionOut
from app.services.session_service import (
    AuthenticationError,
    SessionContext,
    SessionProvider,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, provider: SessionProvider = Depends(get_session_provider)):
    try:
        session = provider.sign_in(payload.email, payload.password)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return LoginResponse(token=session.token, **SessionOut.from_session(session).model_dump())


@router.post("/logout")
def logout(
    session: SessionContext = Depends(get_current_session),
    provider: SessionProvider = Depends(get_session_provider),
):
    provider.sign_out(session.token)
    return {"signed_out": True}


@router.get("/me", response_model=SessionOut)
def me(session: SessionContext = Depends(get_current_session)):
    return SessionOut.from_session(session)
