"""Course and lecture read model."""

from .models import COURSES_TABLES_CQL, Course, Lecture
from .service import CourseCatalog, CourseNotFoundError, LectureNotFoundError


__all__ = [
    "COURSES_TABLES_CQL",
    "Course",
    "CourseCatalog",
    "CourseNotFoundError",
    "Lecture",
    "LectureNotFoundError",
]
