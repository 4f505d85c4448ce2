"""
Settings router - administrator access to the settings screens

Endpoints:
    POST /api/settings/auth/login   - Check the admin password, start a session
    GET  /api/settings/auth/status  - Is the caller's session valid
    POST /api/settings/auth/logout  - End the session

Car and personnel mutations depend on require_settings_session.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel

from settings_auth import (
    SESSION_COOKIE, SESSION_LIFETIME, SettingsSession,
    create_session_token, decode_session_token, login_throttle, verify_admin_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    authenticated: bool
    token: str
    expires_in: int


class StatusResponse(BaseModel):
    authenticated: bool
    expires_in: Optional[int] = None


# =============================================================================
# HELPERS
# =============================================================================


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth = request.headers.get("authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return None


def get_settings_session(request: Request) -> Optional[SettingsSession]:
    return decode_session_token(_token_from_request(request))


def require_settings_session(request: Request) -> SettingsSession:
    """Dependency for endpoints behind the settings password."""
    session = get_settings_session(request)
    if session is None:
        raise HTTPException(status_code=401, detail="Administrator access required")
    return session


# =============================================================================
# ENDPOINTS
# =============================================================================


@router.post("/auth/login", response_model=LoginResponse)
async def settings_login(data: LoginRequest, request: Request, response: Response):
    key = _client_key(request)

    if login_throttle.lockout_remaining(key) > 0:
        raise HTTPException(status_code=429, detail="Too many failed attempts. Please try again later.")

    if not verify_admin_password(data.password):
        remaining = login_throttle.record_failure(key)
        if remaining == 0:
            raise HTTPException(status_code=429, detail="Too many failed attempts. Please try again later.")
        raise HTTPException(status_code=401, detail=f"Incorrect password. {remaining} attempts remaining.")

    login_throttle.reset(key)
    token = create_session_token()
    max_age = int(SESSION_LIFETIME.total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
    )
    logger.info(f"Settings session started for {key}")
    return LoginResponse(authenticated=True, token=token, expires_in=max_age)


@router.get("/auth/status", response_model=StatusResponse)
async def settings_status(session: Optional[SettingsSession] = Depends(get_settings_session)):
    if session is None:
        return StatusResponse(authenticated=False)
    return StatusResponse(authenticated=True, expires_in=session.remaining_seconds)


@router.post("/auth/logout")
async def settings_logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"status": "ok"}
