from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus.core.exceptions import ConflictException, NotFoundException, PermissionDeniedException
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade
from campus.models.user import Student, User
from campus.schemas.common import MessageOut
from campus.schemas.enrollments import EnrollmentOut, MyGradeOut
from campus.services.course_service import get_course_or_404

logger = logging.getLogger(__name__)


def require_student_profile(user: User) -> Student:
    if user.student is None:
        raise PermissionDeniedException("Only students can enroll in courses")
    return user.student


def _enrollment_out(row: Enrollment) -> Dict[str, Any]:
    return EnrollmentOut(
        id=int(row.id),
        student_id=int(row.student_id),
        course_id=int(row.course_id),
        course_code=row.course.code,
        course_title=row.course.title,
        enrolled_at=row.created_at,
    ).model_dump(mode="json")


def enroll(db: Session, *, user: User, course_id: int) -> Dict[str, Any]:
    student = require_student_profile(user)
    course = get_course_or_404(db, course_id)

    already = (
        db.query(Enrollment.id)
        .filter(Enrollment.student_id == int(student.id), Enrollment.course_id == int(course.id))
        .first()
    )
    if already:
        raise ConflictException("You are already enrolled in this course")

    row = Enrollment(student_id=int(student.id), course_id=int(course.id))
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException("You are already enrolled in this course") from exc
    db.refresh(row)

    logger.info("Student %s enrolled in course %s", student.id, course.code)
    return _enrollment_out(row)


def unenroll(db: Session, *, user: User, course_id: int) -> Dict[str, str]:
    student = require_student_profile(user)
    row = (
        db.query(Enrollment)
        .filter(Enrollment.student_id == int(student.id), Enrollment.course_id == int(course_id))
        .first()
    )
    if row is None:
        raise NotFoundException("You are not enrolled in this course")

    # grades only make sense for an active enrollment
    db.query(Grade).filter(
        Grade.student_id == int(student.id), Grade.course_id == int(course_id)
    ).delete(synchronize_session=False)
    db.delete(row)
    db.commit()

    logger.info("Student %s left course %s", student.id, course_id)
    return MessageOut(message="Unenrolled successfully").model_dump()


def list_my_enrollments(db: Session, *, user: User) -> List[Dict[str, Any]]:
    student = require_student_profile(user)
    rows = (
        db.query(Enrollment)
        .options(selectinload(Enrollment.course))
        .filter(Enrollment.student_id == int(student.id))
        .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        .all()
    )
    return [_enrollment_out(r) for r in rows]


def list_my_grades(db: Session, *, user: User) -> List[Dict[str, Any]]:
    student = require_student_profile(user)
    rows = (
        db.query(Grade)
        .options(selectinload(Grade.course))
        .filter(Grade.student_id == int(student.id))
        .order_by(Grade.id.asc())
        .all()
    )
    return [
        MyGradeOut(
            id=int(g.id),
            course_id=int(g.course_id),
            course_code=g.course.code,
            course_title=g.course.title,
            grade=float(g.grade),
            updated_at=g.updated_at,
        ).model_dump(mode="json")
        for g in rows
    ]
