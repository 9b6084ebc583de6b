from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def normalize_course_code(code: str) -> str:
    return code.strip().upper()


class ScheduleIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    room: Optional[str] = Field(default=None, max_length=64)

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        v = v.strip()
        if not _HHMM.match(v):
            raise ValueError("time must use HH:MM (24h)")
        return v

    @model_validator(mode="after")
    def _ordered(self):
        # zero-padded HH:MM compares correctly as text
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleOut(BaseModel):
    id: int
    course_id: int
    day_of_week: int
    start_time: str
    end_time: str
    room: Optional[str] = None

    model_config = {"from_attributes": True}


class CourseCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    code: str = Field(min_length=2, max_length=32)
    start_date: date
    end_date: date
    room: Optional[str] = Field(default=None, max_length=64)
    schedule: List[ScheduleIn] = Field(default_factory=list)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        return normalize_course_code(v)

    @model_validator(mode="after")
    def _date_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CourseUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    code: Optional[str] = Field(default=None, min_length=2, max_length=32)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    room: Optional[str] = Field(default=None, max_length=64)
    # None keeps the current sessions, [] removes them all
    schedule: Optional[List[ScheduleIn]] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: Optional[str]) -> Optional[str]:
        return normalize_course_code(v) if v is not None else None


class TeacherSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str


class CourseOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    code: str
    teacher_id: int
    start_date: date
    end_date: date
    room: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CourseListItem(CourseOut):
    teacher: Optional[TeacherSummary] = None


class CourseWithSchedule(CourseOut):
    schedules: List[ScheduleOut] = Field(default_factory=list)


SortField = Literal["title", "code", "start_date", "end_date", "created_at"]


class CourseQuery(BaseModel):
    search: Optional[str] = None
    teacher_id: Optional[int] = None
    code: Optional[str] = None
    start_date_from: Optional[date] = None
    end_date_to: Optional[date] = None
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "asc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)


class EnrolledStudentOut(BaseModel):
    enrollment_id: int
    student_id: int
    user_id: int
    email: str
    first_name: str
    last_name: str
    enrolled_at: Optional[datetime] = None


class EnrolledStudentsOut(BaseModel):
    course_id: int
    course_title: str
    total_enrolled: int
    students: List[EnrolledStudentOut]


class CourseSchedulesOut(BaseModel):
    course: CourseOut
    schedules: List[ScheduleOut]


class EnrollmentStats(BaseModel):
    total_enrolled: int
    ungraded: int


class GradeStats(BaseModel):
    total_graded: int = 0
    average_grade: float = 0
    highest_grade: float = 0
    lowest_grade: float = 0


class CourseStatisticsOut(BaseModel):
    course_id: int
    course_title: str
    course_code: str
    enrollment_stats: EnrollmentStats
    grade_stats: GradeStats
