from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from campus.core.exceptions import BadRequestException, ConflictException, NotFoundException, PermissionDeniedException
from campus.models.course import Course, Schedule
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade
from campus.models.user import Student, Teacher
from campus.schemas.common import Page
from campus.schemas.courses import (
    CourseCreateRequest,
    CourseListItem,
    CourseOut,
    CourseQuery,
    CourseSchedulesOut,
    CourseStatisticsOut,
    CourseUpdateRequest,
    CourseWithSchedule,
    EnrolledStudentOut,
    EnrolledStudentsOut,
    EnrollmentStats,
    GradeStats,
    ScheduleIn,
    ScheduleOut,
    TeacherSummary,
    normalize_course_code,
)

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "title": Course.title,
    "code": Course.code,
    "start_date": Course.start_date,
    "end_date": Course.end_date,
    "created_at": Course.created_at,
}


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def course_out(course: Course) -> Dict[str, Any]:
    return CourseOut.model_validate(course).model_dump(mode="json")


def course_with_schedule(course: Course) -> Dict[str, Any]:
    return CourseWithSchedule.model_validate(course).model_dump(mode="json")


def teacher_summary(teacher: Teacher | None) -> Dict[str, Any] | None:
    if teacher is None or teacher.user is None:
        return None
    return TeacherSummary(
        id=int(teacher.id),
        first_name=teacher.user.first_name,
        last_name=teacher.user.last_name,
        email=teacher.user.email,
    ).model_dump()


def _schedule_rows(items: List[ScheduleIn]) -> List[Schedule]:
    return [
        Schedule(day_of_week=s.day_of_week, start_time=s.start_time, end_time=s.end_time, room=s.room)
        for s in items
    ]


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.get(Course, int(course_id))
    if course is None:
        raise NotFoundException("Course not found")
    return course


def get_course_by_code(db: Session, code: str) -> Course:
    course = db.query(Course).filter(Course.code == normalize_course_code(code)).first()
    if course is None:
        raise NotFoundException("Course not found")
    return course


def ensure_owner(course: Course, teacher: Teacher) -> None:
    if int(course.teacher_id) != int(teacher.id):
        raise PermissionDeniedException("You do not own this course")


def _commit_course(db: Session, course: Course) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictException(f"Course code '{course.code}' already exists") from exc


def create_course(db: Session, *, teacher: Teacher, data: CourseCreateRequest) -> Course:
    if db.query(Course.id).filter(Course.code == data.code).first():
        raise ConflictException(f"Course code '{data.code}' already exists")

    course = Course(
        title=data.title.strip(),
        description=data.description,
        code=data.code,
        teacher_id=int(teacher.id),
        start_date=data.start_date,
        end_date=data.end_date,
        room=data.room,
    )
    course.schedules = _schedule_rows(data.schedule)
    db.add(course)
    _commit_course(db, course)
    db.refresh(course)
    # reload sessions in display order
    db.expire(course, ["schedules"])
    logger.info("Teacher %s created course %s", teacher.id, course.code)
    return course


def update_course(db: Session, *, teacher: Teacher, code: str, data: CourseUpdateRequest) -> Course:
    course = get_course_by_code(db, code)
    ensure_owner(course, teacher)

    changes = data.model_dump(exclude_unset=True, exclude={"schedule"})
    new_code = changes.get("code")
    if new_code and new_code != course.code:
        if db.query(Course.id).filter(Course.code == new_code).first():
            raise ConflictException(f"Course code '{new_code}' already exists")

    start_date = changes.get("start_date") or course.start_date
    end_date = changes.get("end_date") or course.end_date
    if end_date < start_date:
        raise BadRequestException("end_date must not be before start_date")

    for field, value in changes.items():
        if value is None and field in {"title", "code", "start_date", "end_date"}:
            continue
        setattr(course, field, value)

    if data.schedule is not None:
        # delete-orphan removes the replaced rows in the same flush
        course.schedules = _schedule_rows(data.schedule)

    _commit_course(db, course)
    db.refresh(course)
    # reload sessions in display order
    db.expire(course, ["schedules"])
    logger.info("Teacher %s updated course %s", teacher.id, course.code)
    return course


def delete_course(db: Session, *, teacher: Teacher, code: str) -> Dict[str, Any]:
    course = get_course_by_code(db, code)
    ensure_owner(course, teacher)

    out = course_out(course)
    db.delete(course)
    db.commit()
    logger.info("Teacher %s deleted course %s", teacher.id, out["code"])
    return out


def list_courses(db: Session, query: CourseQuery) -> Dict[str, Any]:
    filters = []
    if query.search and query.search.strip():
        pattern = _like_pattern(query.search.strip())
        filters.append(
            or_(
                Course.title.ilike(pattern, escape="\\"),
                Course.code.ilike(pattern, escape="\\"),
                Course.description.ilike(pattern, escape="\\"),
            )
        )
    if query.teacher_id is not None:
        filters.append(Course.teacher_id == int(query.teacher_id))
    if query.code:
        filters.append(Course.code == normalize_course_code(query.code))
    if query.start_date_from is not None:
        filters.append(Course.start_date >= query.start_date_from)
    if query.end_date_to is not None:
        filters.append(Course.end_date <= query.end_date_to)

    total = db.query(func.count(Course.id)).filter(*filters).scalar() or 0

    column = SORT_COLUMNS[query.sort_by]
    ordering = column.desc() if query.sort_order == "desc" else column.asc()
    rows = (
        db.query(Course)
        .options(selectinload(Course.teacher).selectinload(Teacher.user))
        .filter(*filters)
        .order_by(ordering, Course.id.asc())
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
        .all()
    )

    items = []
    for c in rows:
        item = CourseListItem(**CourseOut.model_validate(c).model_dump(), teacher=teacher_summary(c.teacher))
        items.append(item.model_dump(mode="json"))
    return Page[Dict[str, Any]].build(items, total=int(total), page=query.page, limit=query.limit).model_dump()


def enrolled_student_rows(db: Session, course_id: int) -> List[EnrolledStudentOut]:
    rows = (
        db.query(Enrollment)
        .options(selectinload(Enrollment.student).selectinload(Student.user))
        .filter(Enrollment.course_id == int(course_id))
        .order_by(Enrollment.created_at.asc(), Enrollment.id.asc())
        .all()
    )
    return [
        EnrolledStudentOut(
            enrollment_id=int(e.id),
            student_id=int(e.student_id),
            user_id=int(e.student.user_id),
            email=e.student.user.email,
            first_name=e.student.user.first_name,
            last_name=e.student.user.last_name,
            enrolled_at=e.created_at,
        )
        for e in rows
    ]


def enrolled_students_out(db: Session, course: Course) -> Dict[str, Any]:
    students = enrolled_student_rows(db, course.id)
    return EnrolledStudentsOut(
        course_id=int(course.id),
        course_title=course.title,
        total_enrolled=len(students),
        students=students,
    ).model_dump(mode="json")


def get_enrolled_students(db: Session, course_id: int) -> Dict[str, Any]:
    return enrolled_students_out(db, get_course_or_404(db, course_id))


def get_course_schedules(db: Session, course_id: int) -> Dict[str, Any]:
    course = get_course_or_404(db, course_id)
    return CourseSchedulesOut(
        course=CourseOut.model_validate(course),
        schedules=[ScheduleOut.model_validate(s) for s in course.schedules],
    ).model_dump(mode="json")


def get_course_statistics(db: Session, course_id: int) -> Dict[str, Any]:
    course = get_course_or_404(db, course_id)

    total_enrolled = (
        db.query(func.count(Enrollment.id)).filter(Enrollment.course_id == int(course.id)).scalar() or 0
    )
    graded_students = (
        db.query(func.count(func.distinct(Grade.student_id)))
        .join(
            Enrollment,
            (Enrollment.student_id == Grade.student_id) & (Enrollment.course_id == Grade.course_id),
        )
        .filter(Grade.course_id == int(course.id))
        .scalar()
        or 0
    )
    count, avg, highest, lowest = (
        db.query(func.count(Grade.id), func.avg(Grade.grade), func.max(Grade.grade), func.min(Grade.grade))
        .filter(Grade.course_id == int(course.id))
        .one()
    )

    grade_stats = GradeStats(total_graded=int(count or 0))
    if count:
        grade_stats.average_grade = round(float(avg), 2)
        grade_stats.highest_grade = float(highest)
        grade_stats.lowest_grade = float(lowest)

    return CourseStatisticsOut(
        course_id=int(course.id),
        course_title=course.title,
        course_code=course.code,
        enrollment_stats=EnrollmentStats(
            total_enrolled=int(total_enrolled),
            ungraded=max(int(total_enrolled) - int(graded_students), 0),
        ),
        grade_stats=grade_stats,
    ).model_dump(mode="json")
