import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import bcrypt
from sqlalchemy.orm import Session

from app.adapters.mock_identity import Identity, MockIdentityAdapter
from app.models.user_account import Role, UserAccount
from app.repositories.user_repo import UserRepository

log = logging.getLogger(__name__)


class AuthenticationError(Exception):
    pass


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


@dataclass(frozen=True)
class SessionContext:
    """
    The signed-in account for one request. Capability predicates are pure
    functions of the loaded role, so a new context is built whenever the
    identity behind a token changes.
    """

    token: str
    uid: str
    email: str
    name: str
    role: Role

    def is_admin(self) -> bool:
        if self.role is Role.ADMIN:
            return True
        if self.role is Role.USER:
            return False
        raise ValueError(f"unknown role {self.role!r}")

    def is_user(self) -> bool:
        if self.role is Role.USER:
            return True
        if self.role is Role.ADMIN:
            return False
        raise ValueError(f"unknown role {self.role!r}")

    def can_modify_stock(self) -> bool:
        return self.is_admin()

    @classmethod
    def from_account(cls, token: str, account: UserAccount) -> "SessionContext":
        return cls(
            token=token,
            uid=account.uid,
            email=account.email,
            name=account.name,
            role=account.role,
        )


SessionListener = Callable[[str, Optional[Identity]], None]


class SessionProvider:
    """
    Turns identities from the identity adapter into usable sessions backed by
    a UserAccount. Accounts that are missing or deactivated are signed out
    instead of surfaced.
    """

    def __init__(self, db: Session, identity: MockIdentityAdapter):
        self.db = db
        self.identity = identity
        self.users = UserRepository(db)

    def sign_in(self, email: str, password: str) -> SessionContext:
        account = self.users.get_by_email(email or "")
        if not account or not verify_password(password or "", account.password_hash):
            log.info("sign-in refused for %s: bad credentials", email)
            raise AuthenticationError("Invalid email or password")
        if not account.is_active:
            log.info("sign-in refused for %s: account inactive", email)
            raise AuthenticationError("Account is deactivated")
        token = self.identity.issue(account.uid, account.email)
        log.info("signed in uid=%s", account.uid)
        return SessionContext.from_account(token, account)

    def resolve(self, token: Optional[str]) -> Optional[SessionContext]:
        ident = self.identity.current_identity(token)
        if ident is None:
            return None
        account = self.users.get(ident.uid)
        if account is None or not account.is_active:
            # identity without a usable account is terminated on detection
            self.identity.sign_out(token)
            log.info("terminated session for uid=%s (missing or inactive account)", ident.uid)
            return None
        return SessionContext.from_account(token, account)

    def sign_out(self, token: str) -> bool:
        return self.identity.sign_out(token)

    def sweep_inactive(self) -> List[str]:
        """Sign out every live identity whose account is now inactive or gone."""
        inactive = set(self.users.inactive_uids())
        revoked = []
        for token, ident in self.identity.live_identities().items():
            if ident.uid in inactive or self.users.get(ident.uid) is None:
                if self.identity.sign_out(token):
                    revoked.append(ident.uid)
        if revoked:
            log.info("session sweep revoked %d token(s)", len(revoked))
        return revoked

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        return self.identity.subscribe(listener)
