"""
Auth — Single-user login for the web API.

Credentials come from AUTH_USERNAME / AUTH_PASSWORD in .env. A successful
login returns an opaque token that web_server.py puts in an httpOnly cookie.
Tokens live in memory and expire after `max_age` seconds.
"""
import secrets
import threading
import time


class AuthSessions:
    """In-memory login sessions for one configured user."""

    def __init__(self, username: str | None, password: str | None,
                 max_age: float = 24 * 60 * 60, clock=time.monotonic):
        self._username = username
        self._password = password
        self.max_age = max_age
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens: dict[str, float] = {}   # token → issued at

    @property
    def enabled(self) -> bool:
        return bool(self._username and self._password)

    def login(self, username, password) -> str | None:
        """Return a new token, or None when the credentials don't match."""
        if not self.enabled or not isinstance(username, str) or not isinstance(password, str):
            return None
        user_ok = secrets.compare_digest(username.encode(), self._username.encode())
        pass_ok = secrets.compare_digest(password.encode(), self._password.encode())
        if not (user_ok and pass_ok):
            return None
        token = secrets.token_urlsafe(16)
        with self._lock:
            self._tokens[token] = self._clock()
        return token

    def logout(self, token: str | None) -> None:
        if not token:
            return
        with self._lock:
            self._tokens.pop(token, None)

    def is_authenticated(self, token: str | None) -> bool:
        if not token:
            return False
        with self._lock:
            issued_at = self._tokens.get(token)
            if issued_at is None:
                return False
            if self._clock() - issued_at > self.max_age:
                del self._tokens[token]
                return False
            return True
