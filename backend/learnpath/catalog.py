"""Catalog view used by the generation pipeline and by response hydration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Protocol

from .db.models import CategoryModel, CourseModel
from .db.session import session_scope
from .learning_path import CategoryRef, CourseCandidate, CourseSnapshot, round_half_up
from .repositories.catalog import CourseCatalogRepository, course_catalog

logger = logging.getLogger(__name__)

_HOURS_PATTERN = re.compile(r"(\d+)\s*h", re.IGNORECASE)
_MINUTES_PATTERN = re.compile(r"(\d+)\s*m", re.IGNORECASE)
RICH_DESCRIPTION_MIN_LENGTH = 100


def parse_duration(value: Optional[str]) -> float:
    """Convert strings such as ``"10h 30m"`` into hours, rounded to one decimal."""
    if not value:
        return 0.0
    total = 0.0
    hours = _HOURS_PATTERN.search(value)
    minutes = _MINUTES_PATTERN.search(value)
    if hours:
        total += int(hours.group(1))
    if minutes:
        total += int(minutes.group(1)) / 60
    return round_half_up(total, 1)


@dataclass(frozen=True)
class CatalogSelection:
    active_count: int
    enrolled_ids: FrozenSet[str]
    candidates: List[CourseCandidate] = field(default_factory=list)


class CatalogView(Protocol):
    """What the pipeline needs from the catalog and enrollment store."""

    def load_candidates(self, student_id: str) -> CatalogSelection:  # pragma: no cover - protocol
        ...

    def category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:  # pragma: no cover - protocol
        ...

    def category_refs(self, category_ids: Iterable[str]) -> Dict[str, CategoryRef]:  # pragma: no cover - protocol
        ...

    def snapshots(self, course_ids: Iterable[str]) -> Dict[str, CourseSnapshot]:  # pragma: no cover - protocol
        ...


def _category_ref(model: CategoryModel) -> CategoryRef:
    return CategoryRef(id=model.id, name=model.name, icon=model.icon)


def build_candidate(course: CourseModel, categories: Mapping[str, CategoryModel]) -> CourseCandidate:
    category_ids = tuple(str(category_id) for category_id in course.category_ids or [])
    names = tuple(categories[cid].name for cid in category_ids if cid in categories)
    description = course.description or ""
    will_learn = [item for item in course.will_learn or [] if isinstance(item, str) and item.strip()]
    return CourseCandidate(
        course_id=course.id,
        title=course.title,
        level=course.level,
        category_ids=category_ids,
        category_names=names,
        rating=course.rating,
        content_hours=parse_duration(course.duration),
        sub_title=course.sub_title,
        description=description,
        has_rich_description=len(description) > RICH_DESCRIPTION_MIN_LENGTH,
        has_will_learn=bool(will_learn),
    )


def build_snapshot(course: CourseModel, categories: Mapping[str, CategoryModel]) -> CourseSnapshot:
    return CourseSnapshot(
        id=course.id,
        title=course.title,
        sub_title=course.sub_title,
        thumbnail=course.thumbnail,
        level=course.level,
        duration=course.duration,
        price=course.price,
        rating=course.rating,
        categories=[
            _category_ref(categories[cid])
            for cid in (str(value) for value in course.category_ids or [])
            if cid in categories
        ],
    )


class CatalogStore:
    """Session-scoped facade over :class:`CourseCatalogRepository`."""

    def __init__(self, repository: Optional[CourseCatalogRepository] = None) -> None:
        self._repository = repository or course_catalog

    def load_candidates(self, student_id: str) -> CatalogSelection:
        with session_scope(commit=False) as session:
            courses = self._repository.list_active_courses(session)
            enrolled = self._repository.enrolled_course_ids(session, student_id)
            categories = self._repository.categories_by_ids(
                session, self._repository.category_ids_for(courses)
            )
            candidates = [
                build_candidate(course, categories) for course in courses if course.id not in enrolled
            ]
        logger.info(
            "Catalog for %s: %d active, %d enrolled, %d available",
            student_id,
            len(courses),
            len(enrolled),
            len(candidates),
        )
        return CatalogSelection(
            active_count=len(courses),
            enrolled_ids=frozenset(enrolled),
            candidates=candidates,
        )

    def category_names(self, category_ids: Iterable[str]) -> Dict[str, str]:
        return {key: ref.name for key, ref in self.category_refs(category_ids).items()}

    def category_refs(self, category_ids: Iterable[str]) -> Dict[str, CategoryRef]:
        with session_scope(commit=False) as session:
            models = self._repository.categories_by_ids(session, category_ids)
            return {key: _category_ref(model) for key, model in models.items()}

    def snapshots(self, course_ids: Iterable[str]) -> Dict[str, CourseSnapshot]:
        with session_scope(commit=False) as session:
            courses = self._repository.courses_by_ids(session, course_ids)
            categories = self._repository.categories_by_ids(
                session, self._repository.category_ids_for(list(courses.values()))
            )
            return {course_id: build_snapshot(course, categories) for course_id, course in courses.items()}


__all__ = [
    "CatalogSelection",
    "CatalogStore",
    "CatalogView",
    "build_candidate",
    "build_snapshot",
    "parse_duration",
]
