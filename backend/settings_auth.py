"""
Settings Access Gate

Administrator password check for the settings screens (cars, personnel).
The check lives on the server: the password is held as a bcrypt hash and
a successful login returns a short-lived signed session token.

Session:
- Signed JWT (HS256), 1 hour lifetime, claim scope="settings".
- Browser: httpOnly cookie "fleet_settings". Other clients: Bearer header.

Login throttling:
- 3 failed attempts per client, then a 30 second lockout.
- Attempt count and lockout deadline live on LoginThrottle, one entry
  per client key, with an injectable clock.

DEPENDENCIES: PyJWT, bcrypt
"""

import os
import time
import secrets
import logging
from datetime import datetime, timezone, timedelta
from typing import Callable, Optional

import bcrypt
import jwt  # PyJWT

from settings_helper import get_admin_password_hash, get_admin_password

logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================

# Signing key - set FLEET_JWT_SECRET in production.
# If not set, generates a random key (sessions invalidated on restart).
_default_secret = secrets.token_urlsafe(64)
JWT_SECRET = os.environ.get("FLEET_JWT_SECRET", _default_secret)
if JWT_SECRET == _default_secret:
    logger.warning(
        "FLEET_JWT_SECRET not set in environment - using random key. "
        "Settings sessions will be invalidated on restart."
    )

JWT_ALGORITHM = "HS256"
SESSION_LIFETIME = timedelta(hours=1)
SESSION_COOKIE = "fleet_settings"
SESSION_SCOPE = "settings"

MAX_LOGIN_ATTEMPTS = 3
LOCKOUT_SECONDS = 30


# =============================================================================
# PASSWORD
# =============================================================================

_password_hash: Optional[bytes] = None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def _admin_hash() -> bytes:
    global _password_hash
    if _password_hash is None:
        configured = get_admin_password_hash()
        if configured:
            _password_hash = configured.encode('utf-8')
        else:
            _password_hash = hash_password(get_admin_password()).encode('utf-8')
    return _password_hash


def reset_password_cache() -> None:
    """Forget the cached hash so the next check re-reads configuration."""
    global _password_hash
    _password_hash = None


def verify_admin_password(password: str) -> bool:
    if not password:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), _admin_hash())
    except ValueError as e:
        logger.error(f"Admin password verification error: {e}")
        return False


# =============================================================================
# SESSION TOKENS
# =============================================================================


class SettingsSession:
    """Validated settings-session claims."""

    __slots__ = ("issued_at", "expires_at")

    def __init__(self, payload: dict):
        self.issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        self.expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

    @property
    def remaining_seconds(self) -> int:
        return max(0, int((self.expires_at - datetime.now(timezone.utc)).total_seconds()))


def create_session_token(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        "scope": SESSION_SCOPE,
        "iat": now,
        "exp": now + SESSION_LIFETIME,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: Optional[str]) -> Optional[SettingsSession]:
    """Claims for a valid, unexpired settings token, else None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Settings session expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid settings session token: {e}")
        return None

    if payload.get("scope") != SESSION_SCOPE:
        return None
    return SettingsSession(payload)


# =============================================================================
# LOGIN THROTTLE
# =============================================================================


class LoginThrottle:
    """Failed-attempt counter with timed lockout, per client key."""

    def __init__(
        self,
        max_attempts: int = MAX_LOGIN_ATTEMPTS,
        lockout_seconds: float = LOCKOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.clock = clock
        self._attempts: dict[str, int] = {}
        self._locked_until: dict[str, float] = {}

    def lockout_remaining(self, key: str) -> float:
        """Seconds left on a lockout; 0 when not locked. Expired lockouts reset."""
        until = self._locked_until.get(key)
        if until is None:
            return 0
        remaining = until - self.clock()
        if remaining <= 0:
            self.reset(key)
            return 0
        return remaining

    def record_failure(self, key: str) -> int:
        """Count a failed attempt. Returns attempts remaining (0 = now locked)."""
        attempts = self._attempts.get(key, 0) + 1
        self._attempts[key] = attempts
        remaining = self.max_attempts - attempts
        if remaining <= 0:
            self._locked_until[key] = self.clock() + self.lockout_seconds
            logger.warning(f"Settings login locked for {key} after {attempts} failed attempts")
            return 0
        return remaining

    def reset(self, key: str) -> None:
        self._attempts.pop(key, None)
        self._locked_until.pop(key, None)

    def clear(self) -> None:
        self._attempts.clear()
        self._locked_until.clear()


login_throttle = LoginThrottle()
