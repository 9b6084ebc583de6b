from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from campus.api.deps import get_cache, get_current_user, get_db, get_email_service
from campus.infra.cache import CacheService
from campus.models.user import User
from campus.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenPair,
    UpdateAvatarRequest,
    UpdateProfileRequest,
)
from campus.services import auth_service, user_service
from campus.services.email_service import EmailService


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=201)
def signup(
    request: Request,
    payload: SignupRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    out = auth_service.signup(
        db,
        cache,
        email=str(payload.email),
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    out = AuthResponse(**out).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/login")
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    out = auth_service.login(db, cache, email=str(payload.email), password=payload.password)
    out = AuthResponse(**out).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/refresh")
def refresh(request: Request, payload: RefreshRequest, db: Session = Depends(get_db)):
    out = TokenPair(**auth_service.refresh(db, refresh_token=payload.refresh_token)).model_dump()
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/logout")
def logout(
    request: Request,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    out = auth_service.logout(db, cache, user=user)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/forgot-password")
def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    email_service: EmailService = Depends(get_email_service),
):
    out = auth_service.forgot_password(db, cache, email_service, email=str(payload.email))
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/reset-password")
def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    out = auth_service.reset_password(
        db,
        cache,
        token=payload.token,
        new_password=payload.new_password,
        new_password_confirm=payload.new_password_confirm,
    )
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/profile")
def get_profile(
    request: Request,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    out = user_service.get_profile(db, cache, user_id=user.id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.put("/profile")
def update_profile(
    request: Request,
    payload: UpdateProfileRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    out = user_service.update_profile(
        db,
        cache,
        user=user,
        email=str(payload.email) if payload.email is not None else None,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.put("/avatar")
def update_avatar(
    request: Request,
    payload: UpdateAvatarRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    out = user_service.update_avatar(db, cache, user=user, avatar_url=payload.avatar_url)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.patch("/change-password")
def change_password(
    request: Request,
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    out = user_service.change_password(
        db,
        cache,
        user=user,
        current_password=payload.current_password,
        new_password=payload.new_password,
        new_password_confirm=payload.new_password_confirm,
    )
    return {"request_id": request.state.request_id, "data": out, "error": None}
