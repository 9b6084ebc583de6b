from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from campus.models.grade import GRADE_MAX, GRADE_MIN


class UpdateUserRoleRequest(BaseModel):
    user_id: int
    is_teacher: bool


class RoleUserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    is_teacher: bool
    is_student: bool


class RoleChangeOut(BaseModel):
    message: str
    user: RoleUserOut


class TeacherProfileOut(BaseModel):
    id: int
    user_id: int
    email: str
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None


class GradeCreateRequest(BaseModel):
    student_id: int
    course_id: int
    grade: float = Field(ge=GRADE_MIN, le=GRADE_MAX)


class GradeUpdateRequest(BaseModel):
    grade: float = Field(ge=GRADE_MIN, le=GRADE_MAX)


class GradeOut(BaseModel):
    id: int
    student_id: int
    course_id: int
    teacher_id: int
    grade: float
    student_name: Optional[str] = None
    student_email: Optional[str] = None
    course_code: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GradeStatistics(BaseModel):
    total_students: int
    average_grade: float
    highest_grade: float
    lowest_grade: float
    distribution: Dict[str, int]


class CourseGradesOut(BaseModel):
    grades: List[GradeOut]
    statistics: GradeStatistics
