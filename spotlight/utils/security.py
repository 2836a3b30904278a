"""
security helpers:
- JWT creation/verification via PyJWT
- opaque token generation and keyed digests for refresh/reset tokens
- lifetime strings such as "15m" or "7d"
"""
from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from datetime import datetime
from typing import Dict, Any

import jwt

from spotlight.exceptions import Unauthorized

DEFAULT_EXPIRES_IN = 3600

_EXPIRES_IN = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_expires_in(value: str | None) -> int:
    """Convert "30s" / "15m" / "1h" / "7d" to seconds; anything else is one hour."""
    match = _EXPIRES_IN.match((value or "").strip())
    if not match:
        return DEFAULT_EXPIRES_IN
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def generate_opaque_token() -> str:
    """256 random bits, URL-safe. Not a JWT; carries no decodable data."""
    return secrets.token_urlsafe(32)


def digest_token(raw: str, key: str) -> str:
    """HMAC-SHA256 hex digest; the database only ever sees this value."""
    return hmac.new(key.encode("utf-8"), raw.encode("utf-8"), hashlib.sha256).hexdigest()


def create_access_token(subject: str, issued_at: datetime, expires_at: datetime, secret: str, algorithm: str) -> str:
    payload = {
        "sub": str(subject),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "type": "access",
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str) -> Dict[str, Any]:
    """
    Decode and validate an access JWT. Raises Unauthorized on invalid
    signature, expiry, wrong token type or missing subject.
    """
    try:
        decoded = jwt.decode(token, secret, algorithms=[algorithm], options={"require": ["sub", "exp"]})
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token")

    if decoded.get("type") != "access" or not decoded.get("sub"):
        raise Unauthorized("Invalid token")
    return decoded
