"""Generation pipeline plus the read and custom-plan operations behind the HTTP routes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Awaitable, Callable, List, Mapping, Optional

from .catalog import CatalogStore, CatalogView
from .config import Settings, get_settings
from .errors import PlanNotFoundError, PlanValidationError
from .learning_path import HydratedLearningPath
from .level_filter import filter_candidates
from .match_scorer import score_candidates
from .path_assembler import PathAssembler
from .payload_ingestor import PayloadIngestor
from .phase_narrator import PhaseNarrator
from .phase_planner import plan_phases
from .preferences import PreferenceProfile
from .profile_store import ProfileView, profile_store
from .rationale_generator import RationaleGenerator
from .telemetry import emit_event, timed_event
from .text_generation import RetryPolicy, TextGenerationPort, get_text_generator
from .timeline_budget import select_top

logger = logging.getLogger(__name__)

SURVEY_REQUIRED_MESSAGE = "Please complete the learning preferences survey first"
NO_ACTIVE_COURSES_MESSAGE = "No active courses found"
NO_SUITABLE_COURSES_MESSAGE = "No suitable courses found matching your preferences"
NO_PATH_MESSAGE = "No learning path found. Please generate one first."


@dataclass
class GenerationResult:
    learning_path: HydratedLearningPath
    warnings: List[str] = field(default_factory=list)


class LearningPathService:
    """Runs filter, score, budget, rationale, phases, narration, then assembly for one student."""

    def __init__(
        self,
        *,
        catalog: CatalogView,
        profiles: ProfileView,
        text_generator: TextGenerationPort,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._catalog = catalog
        self._profiles = profiles
        self._rationale = RationaleGenerator(text_generator, policy=policy, sleep=sleep)
        self._narrator = PhaseNarrator(text_generator, policy=policy, sleep=sleep)
        self._assembler = PathAssembler(catalog, profiles)
        self._ingestor = PayloadIngestor(catalog)

    def _completed_profile(self, student_id: str) -> PreferenceProfile:
        profile = self._profiles.get_preferences(student_id)
        if profile is None or not profile.survey_completed:
            raise PlanValidationError(SURVEY_REQUIRED_MESSAGE, requires_survey=True)
        return profile

    def _skill_names(self, profile: PreferenceProfile) -> List[str]:
        if not profile.interested_skills:
            return []
        names = self._catalog.category_names(profile.interested_skills)
        return [names[skill_id] for skill_id in profile.interested_skills if skill_id in names]

    async def generate(self, student_id: str) -> GenerationResult:
        profile = self._completed_profile(student_id)

        with timed_event("learning_path_generated", student_id=student_id) as extra:
            selection = self._catalog.load_candidates(student_id)
            if selection.active_count == 0:
                raise PlanNotFoundError(NO_ACTIVE_COURSES_MESSAGE)

            candidates = filter_candidates(selection.candidates, profile)
            if not candidates:
                raise PlanNotFoundError(NO_SUITABLE_COURSES_MESSAGE)

            selected = select_top(
                score_candidates(candidates, profile),
                profile.target_completion_time,
                profile.weekly_study_hours,
            )
            logger.info(
                "Selected %d of %d candidates for %s",
                len(selected),
                len(candidates),
                student_id,
            )

            student_name = self._profiles.display_name(student_id)
            skill_names = self._skill_names(profile)
            rationale = await self._rationale.annotate(
                selected,
                profile,
                student_name=student_name,
                skill_names=skill_names,
            )
            planned = plan_phases(
                rationale.courses,
                target_completion_time=profile.target_completion_time,
                weekly_study_hours=profile.weekly_study_hours,
            )
            narration = await self._narrator.narrate(planned, profile, student_name=student_name)

            path = self._assembler.assemble(
                profile,
                rationale.courses,
                narration.phases,
                skill_names=skill_names,
            )
            stored = self._assembler.save(student_id, path)
            extra.update(
                course_count=len(stored.recommended_courses),
                phase_count=len(stored.phases),
                regeneration_count=stored.regeneration_count,
                rationale_source=rationale.source,
                narration_source=narration.source,
            )

        return GenerationResult(learning_path=self._assembler.hydrate(stored))

    def ingest(self, student_id: str, payload: Mapping[str, Any]) -> GenerationResult:
        profile = self._profiles.get_preferences(student_id)
        path, warnings = self._ingestor.build(payload, profile)
        stored = self._assembler.save(student_id, path)
        emit_event(
            "learning_path_ingested",
            student_id=student_id,
            phase_count=len(stored.phases),
            course_count=len(stored.recommended_courses),
            warning_count=len(warnings),
            regeneration_count=stored.regeneration_count,
        )
        return GenerationResult(learning_path=self._assembler.hydrate(stored), warnings=warnings)

    def read(self, student_id: str) -> HydratedLearningPath:
        path = self._profiles.get_learning_path(student_id)
        if path is None or path.is_empty():
            profile = self._profiles.get_preferences(student_id)
            if profile is None or not profile.survey_completed:
                raise PlanNotFoundError(SURVEY_REQUIRED_MESSAGE, requires_survey=True)
            raise PlanNotFoundError(NO_PATH_MESSAGE, requires_generation=True)
        return self._assembler.hydrate(path)


def build_learning_path_service(settings: Optional[Settings] = None) -> LearningPathService:
    resolved = settings or get_settings()
    return LearningPathService(
        catalog=CatalogStore(),
        profiles=profile_store,
        text_generator=get_text_generator(resolved),
        policy=RetryPolicy.from_settings(resolved),
    )


@lru_cache
def get_learning_path_service() -> LearningPathService:
    return build_learning_path_service()


__all__ = [
    "GenerationResult",
    "LearningPathService",
    "build_learning_path_service",
    "get_learning_path_service",
]
