"""
JWT helpers. Tokens are issued by the user service; this backend only
needs to read the caller's user_id and role from them.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from jose import jwt, JWTError

from app.config import settings


def create_jwt(
    data: Dict[str, Any],
    secret: Optional[str] = None,
    minutes: int = 60,
    algorithm: Optional[str] = None
) -> str:
    """
    Create a signed token. Used by tooling and tests.

    Args:
        data: Claims to encode (user_id, role, ...)
        secret: JWT secret (defaults to settings.JWT_SECRET)
        minutes: Token expiry in minutes
        algorithm: JWT algorithm (defaults to settings.JWT_ALGORITHM)
    """
    to_encode = data.copy()
    to_encode['exp'] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(
        to_encode,
        secret or settings.JWT_SECRET,
        algorithm=algorithm or settings.JWT_ALGORITHM,
    )


def decode_jwt(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token.

    Returns:
        Decoded token payload or None if invalid
    """
    algorithm = algorithm or settings.JWT_ALGORITHM
    try:
        return jwt.decode(token, secret or settings.JWT_SECRET, algorithms=[algorithm])
    except JWTError:
        return None
