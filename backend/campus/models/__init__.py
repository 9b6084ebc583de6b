from campus.models.user import User, Student, Teacher
from campus.models.course import Course, Schedule
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade

__all__ = [
    "User",
    "Student",
    "Teacher",
    "Course",
    "Schedule",
    "Enrollment",
    "Grade",
]
