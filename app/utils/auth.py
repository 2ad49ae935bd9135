"""Password hashing and JWT helpers."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from app.config import settings


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Example:
        >>> hash_password("mypassword123").startswith("$2b$")
        True
    """
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain text password against a bcrypt hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(
    user_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed access token whose subject is the user ID.

    Args:
        user_id: Owner of every goal and task the token can reach
        expires_delta: Optional custom lifetime (defaults to the configured one)
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> str:
    """
    Decode an access token and return the user ID.

    Raises:
        JWTError: If the token is invalid, expired or has no subject
    """
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("Token payload missing 'sub' claim")
    return user_id
