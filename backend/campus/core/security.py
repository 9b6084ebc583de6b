from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from campus.core.config import settings


ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
PASSWORD_RESET_TOKEN = "password_reset"

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # malformed or empty hash
        return False


def _secret_for(token_type: str) -> str:
    if token_type == REFRESH_TOKEN:
        return settings.JWT_REFRESH_SECRET_KEY
    return settings.JWT_SECRET_KEY


def _encode(*, subject: str, token_type: str, expires_delta: timedelta, extra: Optional[Dict[str, Any]] = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = {
        "sub": str(subject),
        "type": token_type,
        # unique per token so two tokens minted in the same second still differ
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    if extra:
        to_encode.update(extra)
    return jwt.encode(to_encode, _secret_for(token_type), algorithm=settings.JWT_ALGORITHM)


def create_access_token(*, subject: str, email: str, expires_minutes: Optional[int] = None) -> str:
    minutes = int(expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(
        subject=subject,
        token_type=ACCESS_TOKEN,
        expires_delta=timedelta(minutes=minutes),
        extra={"email": email},
    )


def create_refresh_token(*, subject: str, email: str) -> str:
    return _encode(
        subject=subject,
        token_type=REFRESH_TOKEN,
        expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        extra={"email": email},
    )


def create_password_reset_token(*, subject: str, email: str) -> str:
    return _encode(
        subject=subject,
        token_type=PASSWORD_RESET_TOKEN,
        expires_delta=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        extra={"email": email},
    )


def create_token_pair(*, subject: str, email: str) -> Dict[str, str]:
    return {
        "access_token": create_access_token(subject=subject, email=email),
        "refresh_token": create_refresh_token(subject=subject, email=email),
    }


def decode_token(token: str, *, expected_type: str) -> Dict[str, Any]:
    """Verify signature and expiry, then check the ``type`` claim.

    Raises ``JWTError`` for anything that should not be trusted.
    """
    payload = jwt.decode(token, _secret_for(expected_type), algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != expected_type:
        raise JWTError(f"Expected a {expected_type} token")
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return payload


def safe_decode_token(token: str, *, expected_type: str) -> Optional[Dict[str, Any]]:
    try:
        return decode_token(token, expected_type=expected_type)
    except JWTError:
        return None
