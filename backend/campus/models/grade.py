from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus.db.base_class import Base

if TYPE_CHECKING:
    from campus.models.course import Course
    from campus.models.user import Student, Teacher


GRADE_MIN = 0.0
GRADE_MAX = 5.0


class Grade(Base):
    __tablename__ = "grades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"), index=True, nullable=False)
    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), index=True, nullable=False)
    teacher_id: Mapped[int] = mapped_column(ForeignKey("teachers.id", ondelete="CASCADE"), index=True, nullable=False)
    grade: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    student: Mapped[Student] = relationship(back_populates="grades")
    course: Mapped[Course] = relationship(back_populates="grades")
    teacher: Mapped[Teacher] = relationship(back_populates="grades")

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", "teacher_id", name="uq_grade_student_course_teacher"),
        CheckConstraint(f"grade >= {GRADE_MIN} AND grade <= {GRADE_MAX}", name="ck_grade_range"),
    )
