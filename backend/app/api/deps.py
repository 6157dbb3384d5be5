from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.adapters.mock_identity import MockIdentityAdapter
from app.db import get_db
from app.services.session_service import SessionContext, SessionProvider

# one identity service per process; tokens live as long as the process
identity_adapter = MockIdentityAdapter()


def get_identity() -> MockIdentityAdapter:
    return identity_adapter


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_session_provider(
    db: Session = Depends(get_db),
    identity: MockIdentityAdapter = Depends(get_identity),
) -> SessionProvider:
    return SessionProvider(db, identity)


def get_current_session(
    token: Optional[str] = Depends(bearer_token),
    provider: SessionProvider = Depends(get_session_provider),
) -> SessionContext:
    session = provider.resolve(token)
    if session is None:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
