from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from campus.api.deps import get_current_user, get_db
from campus.models.user import User
from campus.schemas.enrollments import EnrollRequest
from campus.services import enrollment_service


router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post("", status_code=201)
def enroll(
    request: Request,
    payload: EnrollRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    out = enrollment_service.enroll(db, user=user, course_id=payload.course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/me")
def my_enrollments(request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    out = enrollment_service.list_my_enrollments(db, user=user)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/me/grades")
def my_grades(request: Request, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    out = enrollment_service.list_my_grades(db, user=user)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.delete("/{course_id}")
def unenroll(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    out = enrollment_service.unenroll(db, user=user, course_id=course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}
