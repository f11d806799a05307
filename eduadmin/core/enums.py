from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class StudentRole(str, Enum):
    """Roles accepted when registering a student record."""

    STUDENT = "student"
    ADMIN = "admin"


class BatchSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    START_DATE_ASC = "start_date_asc"
    START_DATE_DESC = "start_date_desc"
