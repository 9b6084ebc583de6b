from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from campus.api.deps import get_cache, get_current_user, get_db, require_teacher
from campus.infra.cache import CacheService
from campus.models.user import User
from campus.schemas.teachers import GradeCreateRequest, GradeUpdateRequest, UpdateUserRoleRequest
from campus.services import teacher_service


router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.patch("/users/role")
def update_user_role(
    request: Request,
    payload: UpdateUserRoleRequest,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache),
    user: User = Depends(get_current_user),
):
    # the service decides whether the caller may do this (403 for non-teachers)
    out = teacher_service.update_user_role(
        db,
        cache,
        requester_user_id=user.id,
        target_user_id=payload.user_id,
        is_teacher=payload.is_teacher,
    )
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/me")
def my_teacher_profile(
    request: Request,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.get_my_teacher_profile(db, user=teacher)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/my-courses")
def my_courses(
    request: Request,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.get_my_courses(db, user=teacher, page=page, limit=limit)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/courses/{course_id}/enrollments")
def course_enrollments(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.get_enrollments_by_course(db, user=teacher, course_id=course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/courses/{course_id}/grades")
def course_grades(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.get_grades_by_course(db, user=teacher, course_id=course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/courses/{course_id}/statistics")
def course_grade_statistics(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    _teacher: User = Depends(require_teacher),
):
    out = teacher_service.calculate_course_statistics(db, course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("/grades", status_code=201)
def assign_grade(
    request: Request,
    payload: GradeCreateRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.assign_grade(
        db,
        teacher_user_id=teacher.id,
        student_id=payload.student_id,
        course_id=payload.course_id,
        grade=payload.grade,
    )
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.patch("/grades/{grade_id}")
def update_grade(
    request: Request,
    grade_id: int,
    payload: GradeUpdateRequest,
    db: Session = Depends(get_db),
    teacher: User = Depends(require_teacher),
):
    out = teacher_service.update_grade(db, teacher_user_id=teacher.id, grade_id=grade_id, grade=payload.grade)
    return {"request_id": request.state.request_id, "data": out, "error": None}
