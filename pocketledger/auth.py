"""Password hashing, token issuing and bearer-token authentication."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Union

import bcrypt
import jwt

from pocketledger.jwttools import parse_user_id_from_token

EXPIRE_AFTER = timedelta(days=90)
ISSUER = "server"
_BCRYPT_COST = 10
_BEARER = "Bearer "


class AuthError(Exception):
    """Raised when a request cannot be authenticated."""

    status_code = 401

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def hash_password(password: str) -> str:
    """Return a bcrypt hash of ``password``."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_COST))
    return hashed.decode("utf-8")


def check_int(value: Any) -> int:
    """Return ``value`` when it is an int, otherwise 0."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def make_claims(user_id: int) -> dict[str, Any]:
    """Registered claims for a token that identifies ``user_id``."""
    return {
        "jti": str(uuid.uuid4()),
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + EXPIRE_AFTER,
        "iss": ISSUER,
    }


def generate_jwt(claims: dict[str, Any], key: Union[str, bytes]) -> str:
    """Sign ``claims`` with HS256."""
    return jwt.encode(claims, key, algorithm="HS256")


def authenticate(header: str, key: Union[str, bytes]) -> int:
    """Return the user id carried by an ``Authorization`` header value."""
    if not header:
        raise AuthError("Missing authorization header")
    if not header.startswith(_BEARER):
        raise AuthError("Invalid authorization format")
    token = header[len(_BEARER):]
    if not token:
        raise AuthError("Missing token")
    try:
        return parse_user_id_from_token(token, key)
    except Exception as exc:
        raise AuthError(f"Invalid token: {exc}") from exc