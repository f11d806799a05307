from eduadmin.auth.models import User
from eduadmin.core.models.board import Board
from eduadmin.core.models.class_model import SchoolClass
from eduadmin.core.models.subject import Subject
from eduadmin.core.models.package import Package, package_subjects
from eduadmin.core.models.teacher import Teacher
from eduadmin.core.models.student import Student, StudentBatchMarker, student_subjects
from eduadmin.core.models.batch import Batch, batch_students

__all__ = [
    "Batch",
    "Board",
    "Package",
    "SchoolClass",
    "Student",
    "StudentBatchMarker",
    "Subject",
    "Teacher",
    "User",
    "batch_students",
    "package_subjects",
    "student_subjects",
]
