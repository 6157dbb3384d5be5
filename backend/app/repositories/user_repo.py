from typing import List, Optional

from app.models.user_account import Role, UserAccount
from sqlalchemy import func
from sqlalchemy.orm import Session


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, uid: str) -> Optional[UserAccount]:
        return self.db.query(UserAccount).filter(UserAccount.uid == uid).first()

    def get_by_email(self, email: str) -> Optional[UserAccount]:
        return (
            self.db.query(UserAccount)
            .filter(func.lower(UserAccount.email) == email.strip().lower())
            .first()
        )

    def list(self) -> List[UserAccount]:
        return self.db.query(UserAccount).order_by(UserAccount.name).all()

    def inactive_uids(self) -> List[str]:
        rows = (
            self.db.query(UserAccount.uid)
            .filter(UserAccount.is_active == False)  # noqa: E712
            .all()
        )
        return [r[0] for r in rows]

    def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: Role = Role.USER,
        created_by: Optional[str] = None,
    ) -> UserAccount:
        u = UserAccount(
            name=name,
            email=email.strip().lower(),
            password_hash=password_hash,
            role=role,
            is_active=True,
            created_by=created_by,
        )
        self.db.add(u)
        self.db.flush()
        return u
