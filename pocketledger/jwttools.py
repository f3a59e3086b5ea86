"""Creating and checking HMAC-signed JSON web tokens."""

from __future__ import annotations

import re
from typing import Any, Mapping, Union

import jwt

TOKEN_EXPIRED = "Token is expired"
TOKEN_NOT_VALID_YET = "Token not active yet"
TOKEN_MALFORMED = "That's not even a token"
TOKEN_INVALID = "Couldn't handle this token:"

_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
_UINT_PATTERN = re.compile(r"\+?[0-9]+")

Key = Union[str, bytes]


class TokenError(Exception):
    """Raised when a token cannot be parsed or is not valid."""


def _as_bytes(key: Key) -> bytes:
    return key.encode() if isinstance(key, str) else bytes(key)


def create_token(claims: Mapping[str, Any], key: Key) -> str:
    """Sign ``claims`` with HS256 and return the compact token."""
    return jwt.encode(dict(claims), _as_bytes(key), algorithm="HS256")


def parse_token(token: str, key: Key) -> dict[str, Any]:
    """Verify ``token`` against ``key`` and return its claims."""
    try:
        return jwt.decode(
            token,
            _as_bytes(key),
            algorithms=_HMAC_ALGORITHMS,
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError(TOKEN_EXPIRED) from exc
    except jwt.ImmatureSignatureError as exc:
        raise TokenError(TOKEN_NOT_VALID_YET) from exc
    except jwt.InvalidSignatureError as exc:
        raise TokenError("token signature is invalid") from exc
    except jwt.InvalidAlgorithmError as exc:
        raise TokenError(f"unexpected signing method: {exc}") from exc
    except jwt.DecodeError as exc:
        raise TokenError(TOKEN_MALFORMED) from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError(f"{TOKEN_INVALID} {exc}") from exc


def parse_user_id_from_token(token: str, key: Key) -> int:
    """Return the user id held in the token's subject claim."""
    claims = parse_token(token, key)
    subject = claims.get("sub")
    if not subject:
        raise TokenError("userId(subject) not found in token")
    if not isinstance(subject, str) or not _UINT_PATTERN.fullmatch(subject):
        raise TokenError("userId(subject) not uint")
    return int(subject)