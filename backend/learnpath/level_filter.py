"""Narrow the catalog to courses whose level is relevant to the student."""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Sequence

from .learning_path import CourseCandidate
from .preferences import PreferenceProfile

logger = logging.getLogger(__name__)

LEVEL_ADJACENCY: Dict[str, FrozenSet[str]] = {
    "beginner": frozenset({"beginner"}),
    "intermediate": frozenset({"beginner", "intermediate"}),
    "advanced": frozenset({"intermediate", "advanced"}),
    "expert": frozenset({"advanced"}),
}
DEFAULT_ALLOWED_LEVELS = frozenset({"beginner"})


def allowed_levels(current_level: str) -> FrozenSet[str]:
    return LEVEL_ADJACENCY.get(current_level, DEFAULT_ALLOWED_LEVELS)


def filter_by_level(candidates: Sequence[CourseCandidate], current_level: str) -> List[CourseCandidate]:
    levels = allowed_levels(current_level)
    return [candidate for candidate in candidates if candidate.level in levels]


def filter_candidates(
    candidates: Sequence[CourseCandidate],
    profile: PreferenceProfile,
) -> List[CourseCandidate]:
    """Apply level adjacency and, when declared, the interested-skill constraint.

    If both constraints together leave nothing, the skill constraint is dropped
    so a student always sees courses at their level when any exist.
    """
    by_level = filter_by_level(candidates, profile.current_level)
    skills = profile.skill_ids
    if not skills:
        return by_level

    by_skill = [candidate for candidate in by_level if skills.intersection(candidate.category_ids)]
    if by_skill:
        return by_skill

    logger.info(
        "No %s course matches interested skills %s; falling back to level-only candidates (%d)",
        profile.current_level,
        sorted(skills),
        len(by_level),
    )
    return by_level


__all__ = [
    "LEVEL_ADJACENCY",
    "allowed_levels",
    "filter_by_level",
    "filter_candidates",
]
