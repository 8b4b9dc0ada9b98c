"""Fit score (0-100) of a candidate course for a student profile."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .learning_path import CourseCandidate, ScoredCandidate, round_half_up
from .preferences import PreferenceProfile

LEVEL_EXACT_POINTS = 30
# (student level, course level) pairs that earn partial credit.
LEVEL_PARTIAL_POINTS: Dict[Tuple[str, str], int] = {
    ("intermediate", "beginner"): 20,
    ("advanced", "intermediate"): 25,
}
CATEGORY_POINTS = 40
RATING_POINTS = 20
RATING_SCALE = 5.0
DESCRIPTION_POINTS = 5
WILL_LEARN_POINTS = 5
MAX_SCORE = 100


def level_points(candidate: CourseCandidate, profile: PreferenceProfile) -> int:
    if candidate.level == profile.current_level:
        return LEVEL_EXACT_POINTS
    return LEVEL_PARTIAL_POINTS.get((profile.current_level, candidate.level or ""), 0)


def category_points(candidate: CourseCandidate, profile: PreferenceProfile) -> int:
    skills = profile.skill_ids
    if not skills:
        return 0
    matching = sum(1 for category_id in set(candidate.category_ids) if category_id in skills)
    return int(round_half_up(matching / len(skills) * CATEGORY_POINTS))


def rating_points(candidate: CourseCandidate) -> int:
    if not candidate.rating:
        return 0
    rating = min(max(candidate.rating, 0.0), RATING_SCALE)
    return int(round_half_up(rating / RATING_SCALE * RATING_POINTS))


def quality_points(candidate: CourseCandidate) -> int:
    points = 0
    if candidate.has_rich_description:
        points += DESCRIPTION_POINTS
    if candidate.has_will_learn:
        points += WILL_LEARN_POINTS
    return points


def match_score(candidate: CourseCandidate, profile: PreferenceProfile) -> int:
    """Weighted sum clamped to [0, 100]; pure in (candidate, profile)."""
    total = (
        level_points(candidate, profile)
        + category_points(candidate, profile)
        + rating_points(candidate)
        + quality_points(candidate)
    )
    return max(0, min(total, MAX_SCORE))


def score_candidates(
    candidates: Sequence[CourseCandidate],
    profile: PreferenceProfile,
) -> List[ScoredCandidate]:
    """Score and rank candidates, best first; ties keep catalog order."""
    scored = [(match_score(candidate, profile), index, candidate) for index, candidate in enumerate(candidates)]
    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [
        ScoredCandidate(candidate=candidate, match_score=score, rank=rank)
        for rank, (score, _, candidate) in enumerate(scored, start=1)
    ]


__all__ = [
    "match_score",
    "score_candidates",
]
