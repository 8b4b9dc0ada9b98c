from __future__ import annotations

import logging

from learnpath.learning_path import CourseCandidate
from learnpath.level_filter import allowed_levels, filter_by_level, filter_candidates

from conftest import make_profile


def _course(course_id: str, level: str, *categories: str) -> CourseCandidate:
    return CourseCandidate(course_id=course_id, title=course_id, level=level, category_ids=tuple(categories))


CATALOG = [
    _course("b1", "beginner", "web"),
    _course("i1", "intermediate", "web"),
    _course("a1", "advanced", "data"),
    _course("e1", "expert", "data"),
]


def test_adjacency_per_level() -> None:
    assert allowed_levels("beginner") == {"beginner"}
    assert allowed_levels("intermediate") == {"beginner", "intermediate"}
    assert allowed_levels("advanced") == {"intermediate", "advanced"}
    assert allowed_levels("expert") == {"advanced"}


def test_unknown_level_defaults_to_beginner() -> None:
    assert allowed_levels("guru") == {"beginner"}
    assert [course.course_id for course in filter_by_level(CATALOG, "guru")] == ["b1"]


def test_expert_students_never_see_expert_courses() -> None:
    kept = filter_by_level(CATALOG, "expert")
    assert [course.course_id for course in kept] == ["a1"]


def test_skill_constraint_narrows_level_matches() -> None:
    profile = make_profile(current_level="advanced", interested_skills=["data"])
    kept = filter_candidates(CATALOG, profile)
    assert [course.course_id for course in kept] == ["a1"]


def test_skill_constraint_dropped_when_nothing_matches(caplog) -> None:
    profile = make_profile(current_level="intermediate", interested_skills=["data"])
    with caplog.at_level(logging.INFO, logger="learnpath.level_filter"):
        kept = filter_candidates(CATALOG, profile)
    assert [course.course_id for course in kept] == ["b1", "i1"]
    assert "falling back to level-only" in caplog.text


def test_empty_catalog_stays_empty() -> None:
    assert filter_candidates([], make_profile(interested_skills=["web"])) == []
