from campus.db.base_class import Base

# Import every model so Base.metadata knows all tables
from campus.models.user import User, Student, Teacher
from campus.models.course import Course, Schedule
from campus.models.enrollment import Enrollment
from campus.models.grade import Grade
