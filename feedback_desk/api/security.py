"""
Caller identity for the HTTP surface.

Tokens are issued elsewhere (the login service); this module only verifies the
bearer token's signature and turns its claims into a StaffIdentity.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from feedback_desk.config import Settings
from feedback_desk.domain.models import StaffIdentity
from feedback_desk.errors import AuthenticationError

bearer = HTTPBearer(auto_error=False)


def decode_staff_token(token: str, settings: Settings) -> StaffIdentity:
    """
    Verify a JWT and map its claims (`userId`, `username`, `isAdmin`).

    Raises
    ------
    AuthenticationError
        When the signature, expiry or claims are invalid.
    """
    try:
        payload: Dict[str, Any] = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        raise AuthenticationError("Could not validate credentials") from None

    staff_id = payload.get("userId")
    if not isinstance(staff_id, int) or isinstance(staff_id, bool):
        raise AuthenticationError("Token is missing the staff id")
    return StaffIdentity(
        staff_id=staff_id,
        username=str(payload.get("username") or ""),
        is_admin=bool(payload.get("isAdmin", False)),
    )


def create_staff_token(staff: StaffIdentity, settings: Settings, **claims: Any) -> str:
    """Sign a token for `staff`. Used by the CLI and tests; login lives elsewhere."""
    payload = {
        "userId": staff.staff_id,
        "username": staff.username,
        "isAdmin": staff.is_admin,
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_staff(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> StaffIdentity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Authentication token is missing")
    return decode_staff_token(credentials.credentials, request.app.state.settings)


__all__ = ["decode_staff_token", "create_staff_token", "get_current_staff", "bearer"]
