from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class EnrollRequest(BaseModel):
    course_id: int


class EnrollmentOut(BaseModel):
    id: int
    student_id: int
    course_id: int
    course_code: str
    course_title: str
    enrolled_at: Optional[datetime] = None


class MyGradeOut(BaseModel):
    id: int
    course_id: int
    course_code: str
    course_title: str
    grade: float
    updated_at: Optional[datetime] = None
