"""Common FastAPI dependencies.

Requests authenticate with ``Authorization: Bearer <access token>``. The token
subject is the user id; refresh and reset tokens are rejected here.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from campus.core.exceptions import PermissionDeniedException, UnauthorizedException
from campus.core.security import ACCESS_TOKEN, decode_token
from campus.db.session import get_db
from campus.infra.cache import CacheService, get_cache
from campus.models.user import Teacher, User
from campus.services.email_service import EmailService, get_email_service

__all__ = [
    "get_db",
    "get_cache",
    "get_email_service",
    "get_current_user",
    "require_teacher",
    "get_current_teacher",
    "CacheService",
    "EmailService",
]

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise UnauthorizedException("Not authenticated")

    try:
        payload = decode_token(credentials.credentials, expected_type=ACCESS_TOKEN)
        user_id = int(payload["sub"])
    except (JWTError, ValueError) as exc:
        raise UnauthorizedException("Invalid or expired token") from exc

    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedException("User no longer exists")
    return user


def require_teacher(user: User = Depends(get_current_user)) -> User:
    if user.teacher is None:
        raise PermissionDeniedException("Teacher role required")
    return user


def get_current_teacher(user: User = Depends(require_teacher)) -> Teacher:
    return user.teacher
