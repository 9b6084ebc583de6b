from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from campus.api.deps import get_current_teacher, get_current_user, get_db
from campus.models.user import Teacher, User
from campus.schemas.courses import CourseCreateRequest, CourseQuery, CourseUpdateRequest, SortField
from campus.services import course_service


router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("")
def list_courses(
    request: Request,
    search: Optional[str] = Query(default=None, max_length=200),
    teacher_id: Optional[int] = Query(default=None),
    code: Optional[str] = Query(default=None, max_length=32),
    start_date_from: Optional[date] = Query(default=None),
    end_date_to: Optional[date] = Query(default=None),
    sort_by: SortField = Query(default="created_at"),
    sort_order: Literal["asc", "desc"] = Query(default="asc"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    query = CourseQuery(
        search=search,
        teacher_id=teacher_id,
        code=code,
        start_date_from=start_date_from,
        end_date_to=end_date_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    out = course_service.list_courses(db, query)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.post("", status_code=201)
def create_course(
    request: Request,
    payload: CourseCreateRequest,
    db: Session = Depends(get_db),
    teacher: Teacher = Depends(get_current_teacher),
):
    course = course_service.create_course(db, teacher=teacher, data=payload)
    out = course_service.course_with_schedule(course)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/{course_id}/enrolled-students")
def enrolled_students(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    out = course_service.get_enrolled_students(db, course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/{course_id}/schedules")
def course_schedules(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    out = course_service.get_course_schedules(db, course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/{course_id}/statistics")
def course_statistics(
    request: Request,
    course_id: int,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    out = course_service.get_course_statistics(db, course_id)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.get("/{code}")
def get_course(
    request: Request,
    code: str,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    course = course_service.get_course_by_code(db, code)
    out = course_service.course_with_schedule(course)
    out["teacher"] = course_service.teacher_summary(course.teacher)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.put("/{code}")
def update_course(
    request: Request,
    code: str,
    payload: CourseUpdateRequest,
    db: Session = Depends(get_db),
    teacher: Teacher = Depends(get_current_teacher),
):
    course = course_service.update_course(db, teacher=teacher, code=code, data=payload)
    out = course_service.course_with_schedule(course)
    return {"request_id": request.state.request_id, "data": out, "error": None}


@router.delete("/{code}")
def delete_course(
    request: Request,
    code: str,
    db: Session = Depends(get_db),
    teacher: Teacher = Depends(get_current_teacher),
):
    out = course_service.delete_course(db, teacher=teacher, code=code)
    return {"request_id": request.state.request_id, "data": out, "error": None}
