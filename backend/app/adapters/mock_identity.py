import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)


class IdentityError(Exception):
    pass


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str


# callback(token, identity_or_None); None means the token was signed out
IdentityListener = Callable[[str, Optional[Identity]], None]


class MockIdentityAdapter:
    """
    In-process stand-in for a hosted auth provider.

    Issues opaque bearer tokens for identities whose credentials were already
    verified by the caller, resolves tokens back to identities and notifies
    subscribers whenever an identity is signed in or out.
    """

    def __init__(self):
        self._tokens: Dict[str, Identity] = {}
        self._listeners: List[IdentityListener] = []
        self._lock = threading.RLock()

    def issue(self, uid: str, email: str) -> str:
        token = secrets.token_urlsafe(32)
        identity = Identity(uid=uid, email=email)
        with self._lock:
            self._tokens[token] = identity
        self._notify(token, identity)
        return token

    def current_identity(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        with self._lock:
            return self._tokens.get(token)

    def sign_out(self, token: str) -> bool:
        with self._lock:
            identity = self._tokens.pop(token, None)
        if identity is None:
            return False
        self._notify(token, None)
        return True

    def sign_out_uid(self, uid: str) -> int:
        """Revoke every live token held by uid; returns how many were revoked."""
        with self._lock:
            tokens = [t for t, ident in self._tokens.items() if ident.uid == uid]
        return sum(1 for t in tokens if self.sign_out(t))

    def live_identities(self) -> Dict[str, Identity]:
        with self._lock:
            return dict(self._tokens)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def health_check(self) -> bool:
        return True

    def _notify(self, token: str, identity: Optional[Identity]):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(token, identity)
            except Exception:
                log.exception("identity listener failed")
