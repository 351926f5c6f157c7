"""Bearer-token authentication."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

ALGORITHM = "HS256"


class AuthenticationError(Exception):
    """Raised when a bearer credential is missing or invalid."""


def create_access_token(user_id: str, secret: str, expires_in: timedelta = timedelta(hours=24)) -> str:
    expire = datetime.now(timezone.utc) + expires_in
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def user_id_from_header(authorization: Optional[str], secret: Optional[str]) -> str:
    """Resolve the user id from an ``Authorization: Bearer <jwt>`` header."""
    if not secret:
        raise AuthenticationError("Authentication is not configured")
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")

    token = authorization[len("Bearer "):].strip()
    try:
        payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError("Unauthorized") from exc

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Unauthorized")
    return str(user_id)
