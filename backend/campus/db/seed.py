"""Demo data for local development (safe to run repeatedly).

Creates one teacher, one student, the CS101 course with two weekly sessions,
an enrollment and a grade. Existing rows are reused, never duplicated.

    python -m campus.db.seed
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict

from sqlalchemy.orm import Session

from campus.core.security import get_password_hash
from campus.models.course import Course, Schedule
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade
from campus.models.user import Student, Teacher, User

logger = logging.getLogger(__name__)

DEMO_TEACHER = {
    "email": "julia.nguyen@example.com",
    "password": "Teacher123!",
    "first_name": "Julia",
    "last_name": "Nguyen",
    "avatar_url": "https://api.example.com/avatars/julia-nguyen.jpg",
}
DEMO_STUDENT = {
    "email": "triesnha.ameilya@example.com",
    "password": "Student123!",
    "first_name": "Triesnha",
    "last_name": "Ameilya",
    "avatar_url": "https://api.example.com/avatars/triesnha-ameilya.jpg",
}
DEMO_COURSE_CODE = "CS101"
DEMO_GRADE = 4.5


def _ensure_user(db: Session, data: Dict[str, str]) -> User:
    user = db.query(User).filter(User.email == data["email"]).first()
    if user:
        return user
    user = User(
        email=data["email"],
        password_hash=get_password_hash(data["password"]),
        first_name=data["first_name"],
        last_name=data["last_name"],
        avatar_url=data["avatar_url"],
    )
    db.add(user)
    db.flush()
    return user


def seed_demo_data(db: Session) -> Dict[str, int]:
    teacher_user = _ensure_user(db, DEMO_TEACHER)
    if teacher_user.teacher is None:
        teacher_user.teacher = Teacher()

    student_user = _ensure_user(db, DEMO_STUDENT)
    if student_user.student is None:
        student_user.student = Student()
    db.flush()

    teacher = teacher_user.teacher
    student = student_user.student

    course = db.query(Course).filter(Course.code == DEMO_COURSE_CODE).first()
    if course is None:
        course = Course(
            title="Introduction to Computer Science",
            description="Learn the fundamentals of computer science",
            code=DEMO_COURSE_CODE,
            teacher_id=int(teacher.id),
            start_date=date(2025, 10, 1),
            end_date=date(2026, 3, 31),
            room="Room 101",
        )
        course.schedules = [
            Schedule(day_of_week=1, start_time="10:00", end_time="12:00", room="Room 101"),
            Schedule(day_of_week=3, start_time="10:00", end_time="12:00", room="Room 101"),
        ]
        db.add(course)
        db.flush()

    enrolled = (
        db.query(Enrollment)
        .filter(Enrollment.student_id == int(student.id), Enrollment.course_id == int(course.id))
        .first()
    )
    if enrolled is None:
        db.add(Enrollment(student_id=int(student.id), course_id=int(course.id)))

    graded = (
        db.query(Grade)
        .filter(
            Grade.student_id == int(student.id),
            Grade.course_id == int(course.id),
            Grade.teacher_id == int(course.teacher_id),
        )
        .first()
    )
    if graded is None:
        db.add(
            Grade(
                student_id=int(student.id),
                course_id=int(course.id),
                teacher_id=int(course.teacher_id),
                grade=DEMO_GRADE,
            )
        )

    db.commit()
    logger.info("Demo data ready (course %s)", course.code)
    return {
        "teacher_user_id": int(teacher_user.id),
        "student_user_id": int(student_user.id),
        "course_id": int(course.id),
    }


if __name__ == "__main__":
    from campus.core.logging import setup_logging
    from campus.db.base import Base
    from campus.db.session import SessionLocal, engine

    setup_logging()
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_demo_data(session)
    finally:
        session.close()
