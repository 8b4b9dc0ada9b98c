"""Read-only queries against the course catalog and enrollment tables."""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import CategoryModel, CourseModel, EnrollmentModel

ACTIVE_STATUS = "active"
COUNTED_ENROLLMENT_STATUSES = ("enrolled", "completed")


class CourseCatalogRepository:
    def list_active_courses(self, session: Session) -> List[CourseModel]:
        stmt = (
            select(CourseModel)
            .where(CourseModel.status == ACTIVE_STATUS)
            .order_by(CourseModel.created_at.asc(), CourseModel.id.asc())
        )
        return list(session.execute(stmt).scalars().all())

    def enrolled_course_ids(self, session: Session, student_id: str) -> Set[str]:
        stmt = select(EnrollmentModel.course_id).where(
            EnrollmentModel.student_id == student_id,
            EnrollmentModel.status.in_(COUNTED_ENROLLMENT_STATUSES),
        )
        return {str(course_id) for course_id in session.execute(stmt).scalars().all()}

    def courses_by_ids(self, session: Session, course_ids: Iterable[str]) -> Dict[str, CourseModel]:
        """Fetch courses regardless of status; ids with no row are simply absent."""
        ids = sorted({course_id for course_id in course_ids if course_id})
        if not ids:
            return {}
        stmt = select(CourseModel).where(CourseModel.id.in_(ids))
        return {model.id: model for model in session.execute(stmt).scalars().all()}

    def categories_by_ids(self, session: Session, category_ids: Iterable[str]) -> Dict[str, CategoryModel]:
        ids = sorted({category_id for category_id in category_ids if category_id})
        if not ids:
            return {}
        stmt = select(CategoryModel).where(CategoryModel.id.in_(ids))
        return {model.id: model for model in session.execute(stmt).scalars().all()}

    def category_ids_for(self, courses: Sequence[CourseModel]) -> Set[str]:
        collected: Set[str] = set()
        for course in courses:
            collected.update(str(category_id) for category_id in course.category_ids or [])
        return collected


course_catalog = CourseCatalogRepository()

__all__ = ["CourseCatalogRepository", "course_catalog"]
