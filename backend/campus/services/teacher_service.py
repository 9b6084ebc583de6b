"""Teacher workspace: role toggling, owned courses, grading and grade statistics."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from campus.core.exceptions import (
    BadRequestException,
    ConflictException,
    NotFoundException,
    PermissionDeniedException,
)
from campus.infra.cache import CacheService
from campus.models.course import Course
from campus.models.enrollment import Enrollment
from campus.models.grade import GRADE_MAX, GRADE_MIN, Grade
from campus.models.user import Student, Teacher, User
from campus.schemas.common import Page
from campus.schemas.teachers import (
    CourseGradesOut,
    GradeOut,
    GradeStatistics,
    RoleChangeOut,
    RoleUserOut,
    TeacherProfileOut,
)
from campus.services.course_service import course_with_schedule, enrolled_students_out, ensure_owner, get_course_or_404

logger = logging.getLogger(__name__)

# (label, lower, upper): a grade g falls in the bucket when lower < g <= upper
GRADE_BUCKETS = (
    ("1-2", 1.0, 2.0),
    ("2-3", 2.0, 3.0),
    ("3-4", 3.0, 4.0),
    ("4-5", 4.0, 5.0),
)


def get_teacher_by_user_id(db: Session, user_id: int) -> Teacher | None:
    return db.query(Teacher).filter(Teacher.user_id == int(user_id)).first()


def require_teacher_profile(db: Session, user_id: int) -> Teacher:
    teacher = get_teacher_by_user_id(db, user_id)
    if teacher is None:
        raise NotFoundException("Teacher profile not found")
    return teacher


def _role_user(user: User) -> RoleUserOut:
    return RoleUserOut(
        id=int(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        is_teacher=user.teacher is not None,
        is_student=user.student is not None,
    )


def update_user_role(
    db: Session,
    cache: CacheService,
    *,
    requester_user_id: int,
    target_user_id: int,
    is_teacher: bool,
) -> Dict[str, Any]:
    """Grant or revoke the teacher role of another user.

    Granting removes the target's student profile, revoking recreates it. Both
    profile changes are committed together or not at all. Revoking deletes the
    teacher row, and with it the courses and grades it owns.
    """
    if get_teacher_by_user_id(db, requester_user_id) is None:
        raise PermissionDeniedException("Only teachers can assign teacher roles")
    if int(requester_user_id) == int(target_user_id):
        raise BadRequestException("You cannot modify your own teacher role")

    target = db.get(User, int(target_user_id))
    if target is None:
        raise NotFoundException("User not found")

    if is_teacher and target.teacher is not None:
        raise ConflictException("User is already a teacher")
    if not is_teacher and target.teacher is None:
        raise ConflictException("User is not a teacher")

    try:
        if is_teacher:
            target.teacher = Teacher()
            target.student = None
        else:
            target.teacher = None
            if target.student is None:
                target.student = Student()
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException("The role of this user changed concurrently, try again") from exc
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(target)
    # cached profiles carry the role flags
    cache.invalidate_user(target.id)
    action = "granted" if is_teacher else "revoked"
    logger.info("User %s %s the teacher role of user %s", requester_user_id, action, target.id)
    message = (
        f"{target.full_name} is now a teacher"
        if is_teacher
        else f"{target.full_name} is no longer a teacher"
    )
    return RoleChangeOut(message=message, user=_role_user(target)).model_dump()


def get_my_teacher_profile(db: Session, *, user: User) -> Dict[str, Any]:
    teacher = require_teacher_profile(db, user.id)
    return TeacherProfileOut(
        id=int(teacher.id),
        user_id=int(user.id),
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        avatar_url=user.avatar_url,
        created_at=teacher.created_at,
    ).model_dump(mode="json")


def get_my_courses(db: Session, *, user: User, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    teacher = require_teacher_profile(db, user.id)
    base = db.query(Course).filter(Course.teacher_id == int(teacher.id))
    total = base.with_entities(func.count(Course.id)).scalar() or 0
    rows = (
        base.options(selectinload(Course.schedules))
        .order_by(Course.created_at.desc(), Course.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    items = [course_with_schedule(c) for c in rows]
    return Page[Dict[str, Any]].build(items, total=int(total), page=page, limit=limit).model_dump()


def _owned_course(db: Session, teacher: Teacher, course_id: int) -> Course:
    course = get_course_or_404(db, course_id)
    ensure_owner(course, teacher)
    return course


def get_enrollments_by_course(db: Session, *, user: User, course_id: int) -> Dict[str, Any]:
    teacher = require_teacher_profile(db, user.id)
    course = _owned_course(db, teacher, course_id)
    return enrolled_students_out(db, course)


def _grade_model(row: Grade) -> GradeOut:
    student_user = row.student.user if row.student is not None else None
    return GradeOut(
        id=int(row.id),
        student_id=int(row.student_id),
        course_id=int(row.course_id),
        teacher_id=int(row.teacher_id),
        grade=float(row.grade),
        student_name=student_user.full_name if student_user else None,
        student_email=student_user.email if student_user else None,
        course_code=row.course.code if row.course is not None else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def grade_out(row: Grade) -> Dict[str, Any]:
    return _grade_model(row).model_dump(mode="json")


def _check_grade_range(value: float) -> float:
    value = float(value)
    if not GRADE_MIN <= value <= GRADE_MAX:
        raise BadRequestException(f"Grade must be between {GRADE_MIN:g} and {GRADE_MAX:g}")
    return value


def assign_grade(db: Session, *, teacher_user_id: int, student_id: int, course_id: int, grade: float) -> Dict[str, Any]:
    value = _check_grade_range(grade)
    teacher = require_teacher_profile(db, teacher_user_id)
    course = get_course_or_404(db, course_id)
    if int(course.teacher_id) != int(teacher.id):
        raise PermissionDeniedException("You can only grade students in your own courses")

    if db.get(Student, int(student_id)) is None:
        raise NotFoundException("Student not found")

    enrolled = (
        db.query(Enrollment.id)
        .filter(Enrollment.student_id == int(student_id), Enrollment.course_id == int(course.id))
        .first()
    )
    if not enrolled:
        raise BadRequestException("Student is not enrolled in this course")

    existing = (
        db.query(Grade.id)
        .filter(
            Grade.student_id == int(student_id),
            Grade.course_id == int(course.id),
            Grade.teacher_id == int(teacher.id),
        )
        .first()
    )
    if existing:
        raise ConflictException("A grade already exists for this student in this course, update it instead")

    row = Grade(student_id=int(student_id), course_id=int(course.id), teacher_id=int(teacher.id), grade=value)
    db.add(row)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException("A grade already exists for this student in this course, update it instead") from exc
    db.refresh(row)

    logger.info("Teacher %s graded student %s in course %s", teacher.id, student_id, course.id)
    return grade_out(row)


def update_grade(db: Session, *, teacher_user_id: int, grade_id: int, grade: float) -> Dict[str, Any]:
    value = _check_grade_range(grade)
    teacher = require_teacher_profile(db, teacher_user_id)

    row = db.get(Grade, int(grade_id))
    if row is None:
        raise NotFoundException("Grade not found")
    if int(row.course.teacher_id) != int(teacher.id):
        raise PermissionDeniedException("You can only update grades in your own courses")

    row.grade = value
    db.commit()
    db.refresh(row)
    logger.info("Teacher %s updated grade %s", teacher.id, row.id)
    return grade_out(row)


def _grade_statistics(values: Iterable[float]) -> GradeStatistics:
    grades = [float(v) for v in values]
    distribution = {label: 0 for label, _, _ in GRADE_BUCKETS}
    if not grades:
        return GradeStatistics(
            total_students=0,
            average_grade=0,
            highest_grade=0,
            lowest_grade=0,
            distribution=distribution,
        )

    for g in grades:
        for label, lower, upper in GRADE_BUCKETS:
            if lower < g <= upper:
                distribution[label] += 1
                break

    return GradeStatistics(
        total_students=len(grades),
        average_grade=round(sum(grades) / len(grades), 2),
        highest_grade=max(grades),
        lowest_grade=min(grades),
        distribution=distribution,
    )


def summarize_grades(values: Iterable[float]) -> Dict[str, Any]:
    return _grade_statistics(values).model_dump()


def calculate_course_statistics(db: Session, course_id: int) -> Dict[str, Any]:
    get_course_or_404(db, course_id)
    values: List[float] = [g for (g,) in db.query(Grade.grade).filter(Grade.course_id == int(course_id)).all()]
    return summarize_grades(values)


def get_grades_by_course(db: Session, *, user: User, course_id: int) -> Dict[str, Any]:
    teacher = require_teacher_profile(db, user.id)
    course = _owned_course(db, teacher, course_id)
    rows = (
        db.query(Grade)
        .options(selectinload(Grade.student).selectinload(Student.user), selectinload(Grade.course))
        .filter(Grade.course_id == int(course.id))
        .order_by(Grade.id.asc())
        .all()
    )
    return CourseGradesOut(
        grades=[_grade_model(r) for r in rows],
        statistics=_grade_statistics(r.grade for r in rows),
    ).model_dump(mode="json")
