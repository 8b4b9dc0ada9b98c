"""SQLAlchemy repositories; callers own the session."""

from .catalog import CourseCatalogRepository, course_catalog
from .student_profiles import StudentProfileRepository, student_profiles

__all__ = [
    "CourseCatalogRepository",
    "StudentProfileRepository",
    "course_catalog",
    "student_profiles",
]
