"""Signup, login, refresh-token rotation and password reset.

Refresh tokens follow a single-active-token policy: the latest one issued is
stored on the user row and a refresh must present exactly that token.
Password-reset tokens are signed JWTs, but they are only honoured while their
record exists in Redis, which is what makes them single-use.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Dict, Optional

from jose import JWTError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus.core.config import settings
from campus.core.exceptions import BadRequestException, ConflictException, UnauthorizedException
from campus.core.security import (
    PASSWORD_RESET_TOKEN,
    REFRESH_TOKEN,
    create_password_reset_token,
    create_token_pair,
    decode_token,
    get_password_hash,
    verify_password,
)
from campus.infra.cache import CacheService
from campus.models.user import Student, User
from campus.schemas.common import MessageOut
from campus.services.email_service import EmailDeliveryError, EmailService

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent."
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
INVALID_RESET_TOKEN = "Invalid or expired reset token"


def normalize_email(email: str) -> str:
    return str(email).strip().lower()


def _auth_payload(user: User, tokens: Dict[str, str]) -> Dict[str, Any]:
    return {
        "id": int(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "token_type": "bearer",
    }


def _issue_tokens(user: User) -> Dict[str, str]:
    tokens = create_token_pair(subject=str(user.id), email=user.email)
    user.refresh_token = tokens["refresh_token"]
    return tokens


def signup(
    db: Session,
    cache: CacheService,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> Dict[str, Any]:
    email = normalize_email(email)
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictException("User with this email already exists")

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
    )
    # every new account starts as a student
    user.student = Student()
    db.add(user)
    try:
        db.flush()
        tokens = _issue_tokens(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException("User with this email already exists") from exc

    cache.set_session(user.id, user.email)
    logger.info("User %s signed up", user.id)
    return _auth_payload(user, tokens)


def _lookup_login(db: Session, cache: CacheService, email: str) -> Optional[Dict[str, Any]]:
    cached = cache.get_login(email)
    if cached and cached.get("id") and cached.get("password_hash"):
        return cached

    user = db.query(User).filter(User.email == email).first()
    if not user:
        return None
    entry = {"id": int(user.id), "email": user.email, "password_hash": user.password_hash}
    cache.set_login(email, entry)
    return entry


def login(db: Session, cache: CacheService, *, email: str, password: str) -> Dict[str, Any]:
    email = normalize_email(email)
    entry = _lookup_login(db, cache, email)
    if not entry or not verify_password(password, str(entry["password_hash"])):
        raise UnauthorizedException(INVALID_CREDENTIALS)

    user = db.get(User, int(entry["id"]))
    if user is None or user.email != email:
        cache.invalidate_login(email)
        raise UnauthorizedException(INVALID_CREDENTIALS)
    if user.password_hash != entry["password_hash"]:
        # cached hash went stale without an invalidation; trust the database
        cache.invalidate_login(email)
        if not verify_password(password, user.password_hash):
            raise UnauthorizedException(INVALID_CREDENTIALS)

    tokens = _issue_tokens(user)
    db.commit()

    cache.set_session(user.id, user.email)
    logger.info("User %s logged in", user.id)
    return _auth_payload(user, tokens)


def refresh(db: Session, *, refresh_token: str) -> Dict[str, str]:
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH_TOKEN)
        user_id = int(payload["sub"])
    except (JWTError, ValueError) as exc:
        raise UnauthorizedException(INVALID_REFRESH_TOKEN) from exc

    user = db.get(User, user_id)
    if user is None or not user.refresh_token:
        raise UnauthorizedException(INVALID_REFRESH_TOKEN)
    if not hmac.compare_digest(user.refresh_token, refresh_token):
        logger.warning("Rejected a rotated or foreign refresh token for user %s", user_id)
        raise UnauthorizedException(INVALID_REFRESH_TOKEN)

    tokens = _issue_tokens(user)
    db.commit()
    return {
        "access_token": tokens["access_token"],
        "refresh_token": tokens["refresh_token"],
        "token_type": "bearer",
    }


def logout(db: Session, cache: CacheService, *, user: User) -> Dict[str, str]:
    user.refresh_token = None
    db.commit()
    cache.delete_session(user.id)
    logger.info("User %s logged out", user.id)
    return MessageOut(message="Logged out").model_dump()


def forgot_password(
    db: Session,
    cache: CacheService,
    email_service: EmailService,
    *,
    email: str,
) -> Dict[str, str]:
    """Send a reset link if the account exists. The reply never says which."""
    email = normalize_email(email)
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        logger.info("Password reset requested for an unknown account")
        return MessageOut(message=FORGOT_PASSWORD_MESSAGE).model_dump()

    token = create_password_reset_token(subject=str(user.id), email=user.email)
    cache.store_reset_token(token, user.id, ttl=settings.RESET_TOKEN_EXPIRE_MINUTES * 60)

    reset_link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    try:
        email_service.send_password_reset_email(
            email=user.email,
            first_name=user.first_name,
            reset_link=reset_link,
        )
    except EmailDeliveryError:
        logger.exception("Password reset email for user %s could not be delivered", user.id)

    logger.info("Password reset token issued for user %s", user.id)
    return MessageOut(message=FORGOT_PASSWORD_MESSAGE).model_dump()


def reset_password(
    db: Session,
    cache: CacheService,
    *,
    token: str,
    new_password: str,
    new_password_confirm: str,
) -> Dict[str, str]:
    if new_password != new_password_confirm:
        raise BadRequestException("Passwords do not match")

    try:
        payload = decode_token(token, expected_type=PASSWORD_RESET_TOKEN)
        user_id = int(payload["sub"])
    except (JWTError, ValueError) as exc:
        raise UnauthorizedException(INVALID_RESET_TOKEN) from exc

    # the signature stays valid after use; the stored record is what is consumed
    stored_user_id = cache.consume_reset_token(token)
    if stored_user_id is None:
        raise UnauthorizedException("Reset token has already been used or has expired")
    if stored_user_id != user_id:
        raise UnauthorizedException(INVALID_RESET_TOKEN)

    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedException(INVALID_RESET_TOKEN)

    user.password_hash = get_password_hash(new_password)
    user.refresh_token = None
    db.commit()

    cache.invalidate_login(user.email)
    cache.invalidate_user(user.id)
    logger.info("Password reset completed for user %s", user.id)
    return MessageOut(message="Password has been reset successfully").model_dump()
