from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus.core.exceptions import BadRequestException, ConflictException, NotFoundException
from campus.core.security import get_password_hash, verify_password
from campus.infra.cache import CacheService
from campus.models.user import User
from campus.schemas.auth import ProfileOut
from campus.schemas.common import MessageOut
from campus.services.auth_service import normalize_email

logger = logging.getLogger(__name__)


def fallback_avatar_url(user: User) -> str:
    query = urlencode({"name": user.full_name or user.email, "background": "random"})
    return f"https://ui-avatars.com/api/?{query}"


def build_profile(user: User) -> Dict[str, Any]:
    return ProfileOut(
        id=int(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        avatar_url=user.avatar_url or fallback_avatar_url(user),
        is_teacher=user.teacher is not None,
        is_student=user.student is not None,
        created_at=user.created_at,
        updated_at=user.updated_at,
    ).model_dump(mode="json")


def get_profile(db: Session, cache: CacheService, *, user_id: int) -> Dict[str, Any]:
    cached = cache.get_user(user_id)
    if cached:
        return cached

    user = db.get(User, int(user_id))
    if user is None:
        raise NotFoundException("User not found")
    out = build_profile(user)
    cache.set_user(user.id, out)
    return out


def update_profile(
    db: Session,
    cache: CacheService,
    *,
    user: User,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> Dict[str, Any]:
    old_email = user.email
    if email is not None:
        email = normalize_email(email)
        if email != user.email:
            taken = db.query(User.id).filter(User.email == email, User.id != user.id).first()
            if taken:
                raise ConflictException("Email is already in use")
            user.email = email
    if first_name is not None:
        user.first_name = first_name.strip()
    if last_name is not None:
        user.last_name = last_name.strip()

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException("Email is already in use") from exc

    cache.invalidate_user(user.id)
    cache.invalidate_login(old_email)
    if user.email != old_email:
        cache.invalidate_login(user.email)
    logger.info("Profile updated for user %s", user.id)
    return build_profile(user)


def update_avatar(db: Session, cache: CacheService, *, user: User, avatar_url: str) -> Dict[str, Any]:
    user.avatar_url = avatar_url
    db.commit()
    cache.invalidate_user(user.id)
    return build_profile(user)


def change_password(
    db: Session,
    cache: CacheService,
    *,
    user: User,
    current_password: str,
    new_password: str,
    new_password_confirm: str,
) -> Dict[str, str]:
    if new_password != new_password_confirm:
        raise BadRequestException("Passwords do not match")
    if not verify_password(current_password, user.password_hash):
        raise BadRequestException("Current password is incorrect")
    if new_password == current_password:
        raise BadRequestException("New password must be different from the current password")

    user.password_hash = get_password_hash(new_password)
    # other devices have to sign in again
    user.refresh_token = None
    db.commit()

    cache.invalidate_login(user.email)
    cache.invalidate_user(user.id)
    cache.delete_session(user.id)
    logger.info("Password changed for user %s", user.id)
    return MessageOut(message="Password changed successfully").model_dump()
