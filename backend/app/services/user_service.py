import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from app.adapters.mock_identity import MockIdentityAdapter
from app.models.user_account import Role, UserAccount
from app.repositories.user_repo import UserRepository
from app.services.session_service import SessionContext, hash_password
from app.utils.transactions import smart_transaction

log = logging.getLogger(__name__)


class UserServiceException(Exception):
    pass


class UserNotFound(UserServiceException):
    pass


class UserPermissionError(UserServiceException):
    pass


def parse_role(raw: Any) -> Role:
    if isinstance(raw, Role):
        return raw
    if raw is None or str(raw).strip() == "":
        return Role.USER
    try:
        return Role(str(raw).strip().lower())
    except ValueError:
        raise UserServiceException("Role must be 'admin' or 'user'")


class UserService:
    def __init__(self, db: Session, identity: Optional[MockIdentityAdapter] = None):
        self.db = db
        self.repo = UserRepository(db)
        self.identity = identity

    def _require_admin(self, session: SessionContext):
        if session is None or not session.is_admin():
            raise UserPermissionError("Only administrators can manage users")

    def list_users(self, session: SessionContext) -> List[UserAccount]:
        self._require_admin(session)
        return self.repo.list()

    def create_user(
        self,
        session: SessionContext,
        name: str,
        email: str,
        password: str,
        role: Any = None,
    ) -> UserAccount:
        self._require_admin(session)
        if not (name or "").strip() or not (email or "").strip() or not password:
            raise UserServiceException("Please fill in all fields")
        if "@" not in email:
            raise UserServiceException("Please enter a valid email")
        parsed_role = parse_role(role)
        with smart_transaction(self.db):
            if self.repo.get_by_email(email):
                raise UserServiceException("A user with this email already exists")
            user = self.repo.create(
                name=name.strip(),
                email=email,
                password_hash=hash_password(password),
                role=parsed_role,
                created_by=session.uid,
            )
        log.info("user created uid=%s role=%s by uid=%s", user.uid, parsed_role.value, session.uid)
        return user

    def toggle_status(self, session: SessionContext, uid: str) -> UserAccount:
        """Flip a user's active flag. Deactivation revokes their live sessions."""
        self._require_admin(session)
        if uid == session.uid:
            raise UserServiceException("You cannot change the status of your own account")
        with smart_transaction(self.db):
            user = self.repo.get(uid)
            if not user:
                raise UserNotFound("User not found")
            user.is_active = not user.is_active
        if not user.is_active and self.identity is not None:
            revoked = self.identity.sign_out_uid(uid)
            log.info("user uid=%s deactivated; revoked %d session(s)", uid, revoked)
        else:
            log.info("user uid=%s active=%s", uid, user.is_active)
        return user

    def ensure_bootstrap_admin(self, email: Optional[str], password: Optional[str], name: str) -> Optional[UserAccount]:
        """Create the configured first administrator if no account has that email yet."""
        if not email or not password:
            return None
        with smart_transaction(self.db):
            existing = self.repo.get_by_email(email)
            if existing:
                return existing
            user = self.repo.create(
                name=name,
                email=email,
                password_hash=hash_password(password),
                role=Role.ADMIN,
            )
        log.info("bootstrap admin created uid=%s", user.uid)
        return user
