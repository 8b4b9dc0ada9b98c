"""Compose, persist and hydrate the learning path aggregate."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .catalog import CatalogView
from .learning_path import (
    AnnotatedCourse,
    CourseSnapshot,
    HydratedCourse,
    HydratedLearningPath,
    HydratedPhase,
    HydratedSummary,
    LearningPath,
    PathSummary,
    Phase,
    Recommendation,
    round_half_up,
)
from .preferences import PreferenceProfile
from .profile_store import ProfileView

logger = logging.getLogger(__name__)

PATH_LEVEL_LABELS: Dict[str, str] = {
    "beginner": "Cơ Bản",
    "intermediate": "Trung Cấp",
    "advanced": "Nâng Cao",
}
DEFAULT_PATH_LEVEL_LABEL = "Chuyên Gia"
DEFAULT_PATH_SKILLS = "General Learning"

# course id -> (level, category ids)
CourseFacts = Mapping[str, Tuple[Optional[str], Sequence[str]]]


def path_title(profile: PreferenceProfile, skill_names: Sequence[str]) -> str:
    skills = ", ".join(skill_names) or DEFAULT_PATH_SKILLS
    level = PATH_LEVEL_LABELS.get(profile.current_level, DEFAULT_PATH_LEVEL_LABEL)
    return f"Lộ Trình {skills} - Cấp Độ {level}"


def level_progression(levels: Iterable[str]) -> str:
    present = set(levels)
    if len(present) == 1:
        return f"{next(iter(present))}-only"
    if {"beginner", "intermediate"} <= present:
        return "beginner-to-intermediate"
    if {"intermediate", "advanced"} <= present:
        return "intermediate-to-advanced"
    return "mixed"


def summarize(
    recommendations: Sequence[Recommendation],
    facts: CourseFacts,
    total_phases: int,
) -> PathSummary:
    """Aggregate totals; courses missing from ``facts`` still count toward hours."""
    skills: List[str] = []
    levels: List[str] = []
    for recommendation in recommendations:
        level, category_ids = facts.get(recommendation.course_id, (None, ()))
        if level:
            levels.append(level)
        for category_id in category_ids:
            if category_id not in skills:
                skills.append(category_id)
    total_hours = sum(recommendation.estimated_hours for recommendation in recommendations)
    return PathSummary(
        total_courses=len(recommendations),
        total_estimated_hours=int(round_half_up(total_hours)),
        total_phases=total_phases,
        skills_covered=skills,
        level_progression=level_progression(levels),
    )


class PathAssembler:
    """Builds the stored plan, writes it in one overwrite and renders the response view."""

    def __init__(self, catalog: CatalogView, profiles: ProfileView) -> None:
        self._catalog = catalog
        self._profiles = profiles

    def assemble(
        self,
        profile: PreferenceProfile,
        courses: Sequence[AnnotatedCourse],
        phases: Sequence[Phase],
        *,
        skill_names: Sequence[str] = (),
        generated_at: Optional[datetime] = None,
    ) -> LearningPath:
        recommendations = [course.to_recommendation() for course in courses]
        facts = {
            course.candidate.course_id: (course.candidate.level, course.candidate.category_ids)
            for course in courses
        }
        return LearningPath(
            path_title=path_title(profile, skill_names),
            learning_goal=profile.learning_goal,
            phases=list(phases),
            recommended_courses=recommendations,
            path_summary=summarize(recommendations, facts, len(phases)),
            source="generated",
            last_generated_at=generated_at or datetime.now(timezone.utc),
        )

    def save(self, student_id: str, path: LearningPath) -> LearningPath:
        stored = self._profiles.replace_learning_path(student_id, path)
        logger.info(
            "Stored %s learning path for %s (%d phases, %d courses, regeneration %d)",
            stored.source,
            student_id,
            len(stored.phases),
            len(stored.recommended_courses),
            stored.regeneration_count,
        )
        return stored

    def hydrate(self, path: LearningPath) -> HydratedLearningPath:
        """Replace course ids with catalog snapshots, skipping ids that no longer resolve."""
        snapshots = self._catalog.snapshots(path.course_ids())
        skill_refs = self._catalog.category_refs(path.path_summary.skills_covered)
        stale = [course_id for course_id in path.course_ids() if course_id not in snapshots]
        if stale:
            logger.info("Dropping %d stale course ids from hydrated path: %s", len(stale), stale)

        recommended = [
            HydratedCourse(
                course=snapshots[item.course_id],
                reason=item.reason,
                order=item.priority,
                match_score=item.match_score,
                estimated_hours=item.estimated_hours,
            )
            for item in path.recommended_courses
            if item.course_id in snapshots
        ]
        phases = [self._hydrate_phase(phase, snapshots) for phase in path.phases]
        summary = path.path_summary
        return HydratedLearningPath(
            path_title=path.path_title,
            learning_goal=path.learning_goal,
            phases=phases,
            recommended_courses=recommended,
            path_summary=HydratedSummary(
                total_courses=summary.total_courses,
                total_estimated_hours=summary.total_estimated_hours,
                total_phases=summary.total_phases,
                skills_covered=[
                    skill_refs[skill_id] for skill_id in summary.skills_covered if skill_id in skill_refs
                ],
                level_progression=summary.level_progression,
            ),
            source=path.source,
            last_generated_at=path.last_generated_at,
            regeneration_count=path.regeneration_count,
        )

    @staticmethod
    def _hydrate_phase(phase: Phase, snapshots: Mapping[str, CourseSnapshot]) -> HydratedPhase:
        return HydratedPhase(
            title=phase.title,
            description=phase.description,
            phase_rationale=phase.phase_rationale,
            order=phase.order,
            estimated_weeks=phase.estimated_weeks,
            estimated_days=phase.estimated_days,
            estimated_time=phase.estimated_time,
            total_hours=phase.total_hours,
            courses=[
                HydratedCourse(
                    course=snapshots[course.course_id],
                    reason=course.reason,
                    order=course.order,
                    match_score=course.match_score,
                    estimated_hours=course.estimated_hours,
                )
                for course in phase.courses
                if course.course_id in snapshots
            ],
            steps=list(phase.steps),
        )


__all__ = ["PathAssembler", "level_progression", "path_title", "summarize"]
