# storefront/auth.py
from __future__ import annotations

import math
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

from passlib.context import CryptContext


pwd = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    try:
        return pwd.verify(p, h)
    except (ValueError, TypeError):
        # unknown or malformed hash
        return False


def dummy_verify() -> None:
    pwd.dummy_verify()


def new_token() -> str:
    """Opaque bearer token. Carries no claims, it is only an index key."""
    return secrets.token_hex(32)


# -------------------
# Admin back-office
# -------------------
class AdminAuthError(Exception):
    pass


class AdminNotConfigured(AdminAuthError):
    pass


class AdminLockedOut(AdminAuthError):
    def __init__(self, retry_after: int) -> None:
        super().__init__("Too many login attempts. Please try again later.")
        self.retry_after = retry_after


def _admin_password_ok(password: str, configured: str) -> bool:
    # ADMIN_PASSWORD_HASH may hold a passlib hash or, in dev setups, plain text.
    if pwd.identify(configured, required=False):
        return verify_password(password, configured)
    return secrets.compare_digest(password.encode("utf-8"), configured.encode("utf-8"))


class AdminAuth:
    """
    Basic-Auth check for the single admin account plus an in-process table of
    admin sessions. Admin tokens are a separate space from shopper sessions.

    Failed logins are counted per client address; after `max_attempts`
    failures the client is locked out for `lockout`.
    """

    def __init__(
        self,
        username: str,
        password_hash: str | None,
        session_hours: int = 8,
        max_attempts: int = 5,
        lockout: timedelta = timedelta(minutes=15),
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.username = username
        self.password_hash = password_hash
        self.session_ttl = timedelta(hours=session_hours)
        self.max_attempts = max_attempts
        self.lockout = lockout
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._sessions: Dict[str, Tuple[str, datetime]] = {}
        self._attempts: Dict[str, Tuple[int, datetime]] = {}

    def check_credentials(self, username: str, password: str, client: str = "unknown") -> str:
        now = self._now()
        attempts = self._attempts.get(client)
        if attempts and attempts[0] >= self.max_attempts:
            elapsed = now - attempts[1]
            if elapsed < self.lockout:
                raise AdminLockedOut(math.ceil((self.lockout - elapsed).total_seconds()))
            del self._attempts[client]

        if not self.password_hash:
            raise AdminNotConfigured("Admin authentication not configured properly")

        if username != self.username or not _admin_password_ok(password, self.password_hash):
            count = self._attempts.get(client, (0, now))[0]
            self._attempts[client] = (count + 1, now)
            raise AdminAuthError("Invalid admin credentials")

        self._attempts.pop(client, None)
        return username

    def open_session(self, username: str) -> Tuple[str, datetime]:
        token = new_token()
        expires_at = self._now() + self.session_ttl
        self._sessions[token] = (username, expires_at)
        return token, expires_at

    def session_user(self, token: str) -> Optional[str]:
        entry = self._sessions.get(token)
        if not entry:
            return None
        username, expires_at = entry
        if expires_at <= self._now():
            del self._sessions[token]
            return None
        return username

    def close_session(self, token: str) -> None:
        self._sessions.pop(token, None)
