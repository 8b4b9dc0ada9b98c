"""How many courses fit the student's completion timeline and weekly pace."""

from __future__ import annotations

from typing import Dict, List, Sequence

from .learning_path import ScoredCandidate

MAX_COURSES_BY_TIMELINE: Dict[str, Dict[str, int]] = {
    "1-month": {"1-3": 1, "4-7": 2, "8-15": 3, "15+": 4},
    "3-months": {"1-3": 2, "4-7": 3, "8-15": 5, "15+": 6},
    "6-months": {"1-3": 3, "4-7": 5, "8-15": 7, "15+": 10},
    "1-year+": {"1-3": 5, "4-7": 8, "8-15": 12, "15+": 15},
}
DEFAULT_MAX_COURSES = 5


def max_courses(target_completion_time: str, weekly_study_hours: str) -> int:
    return MAX_COURSES_BY_TIMELINE.get(target_completion_time, {}).get(weekly_study_hours, DEFAULT_MAX_COURSES)


def select_top(
    scored: Sequence[ScoredCandidate],
    target_completion_time: str,
    weekly_study_hours: str,
) -> List[ScoredCandidate]:
    """Keep the best-scoring candidates the timeline budget allows."""
    budget = max_courses(target_completion_time, weekly_study_hours)
    ranked = sorted(scored, key=lambda item: (-item.match_score, item.rank))
    return ranked[: min(budget, len(ranked))]


__all__ = ["DEFAULT_MAX_COURSES", "MAX_COURSES_BY_TIMELINE", "max_courses", "select_top"]
