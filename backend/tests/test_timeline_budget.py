from __future__ import annotations

from learnpath.learning_path import CourseCandidate, ScoredCandidate
from learnpath.timeline_budget import DEFAULT_MAX_COURSES, max_courses, select_top


def _scored(course_id: str, score: int, rank: int) -> ScoredCandidate:
    return ScoredCandidate(
        candidate=CourseCandidate(course_id=course_id, title=course_id, level="beginner"),
        match_score=score,
        rank=rank,
    )


def test_budget_table_corners() -> None:
    assert max_courses("1-month", "1-3") == 1
    assert max_courses("3-months", "4-7") == 3
    assert max_courses("1-year+", "15+") == 15


def test_unknown_combination_uses_default() -> None:
    assert max_courses("2-weeks", "4-7") == DEFAULT_MAX_COURSES
    assert max_courses("3-months", "40+") == DEFAULT_MAX_COURSES


def test_select_top_keeps_best_within_budget() -> None:
    scored = [_scored("a", 60, 1), _scored("b", 60, 2), _scored("c", 55, 3), _scored("d", 40, 4)]
    chosen = select_top(scored, "3-months", "4-7")
    assert [item.candidate.course_id for item in chosen] == ["a", "b", "c"]


def test_select_top_returns_everything_when_under_budget() -> None:
    scored = [_scored("a", 80, 1)]
    assert select_top(scored, "1-year+", "15+") == scored
    assert select_top([], "1-month", "1-3") == []
