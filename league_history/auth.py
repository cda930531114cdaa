"""
Bearer token verification.
Tokens are issued by the identity provider in front of this service; we only
check the signature and read the subject as the authenticated user id.
"""
from __future__ import annotations

import os

from jose import JWTError, jwt

SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "league-history-dev-secret-change-in-production")
ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")


def decode_token(token: str) -> str | None:
    """Return the token subject, or None for a bad signature, expired token or missing sub."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
