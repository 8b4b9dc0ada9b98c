"""Validate and normalize a caller-built learning path.

Custom plans skip filtering, scoring and text generation entirely: the
caller's structure is trusted once it passes the checks below.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .catalog import CatalogView, parse_duration
from .errors import PlanValidationError
from .learning_path import LearningPath, Phase, PhaseCourse, PhaseStep, Recommendation, round_half_up
from .path_assembler import summarize
from .phase_planner import days_for_weeks, format_estimated_time, weeks_for_hours
from .preferences import PreferenceProfile

logger = logging.getLogger(__name__)

INVALID_PAYLOAD_MESSAGE = "Invalid learning path payload"
NO_PHASES_WARNING = "No phases provided: result will contain empty phases array."


def _pick(mapping: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _order(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    # json.loads yields inf for 1e400 and nan for NaN.
    if not math.isfinite(value):
        return fallback
    return int(value)


def is_valid_course_id(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError):
        return False
    return True


def is_custom_plan(payload: Optional[Mapping[str, Any]]) -> bool:
    """A body with a title or at least one phase is a custom plan; anything else asks for generation."""
    if not payload:
        return False
    if _pick(payload, "pathTitle", "path_title"):
        return True
    phases = payload.get("phases")
    return isinstance(phases, list) and len(phases) > 0


@dataclass
class NormalizedPlan:
    path_title: str
    learning_goal: str
    phases: List[Phase] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _normalize_steps(
    raw_steps: Any,
    phase_index: int,
    errors: List[Dict[str, str]],
    warnings: List[str],
) -> List[PhaseStep]:
    steps: List[Tuple[int, int, PhaseStep]] = []
    for step_index, raw in enumerate(raw_steps if isinstance(raw_steps, list) else []):
        step = raw if isinstance(raw, Mapping) else {}
        title = _text(step.get("title"))
        if not title:
            errors.append({"field": f"phases[{phase_index}].steps[{step_index}].title", "message": "required"})

        course_id = _pick(step, "courseId", "course_id")
        if course_id is not None and not is_valid_course_id(course_id):
            warnings.append(
                f"phases[{phase_index}].steps[{step_index}].courseId is not a valid id and will be ignored"
            )
            course_id = None

        order = _order(step.get("order"), step_index + 1)
        steps.append(
            (
                order,
                step_index,
                PhaseStep(
                    title=title,
                    description=_text(step.get("description")),
                    course_id=str(uuid.UUID(str(course_id))) if course_id is not None else None,
                    order=1,
                ),
            )
        )
    steps.sort(key=lambda item: (item[0], item[1]))
    return [step.model_copy(update={"order": position}) for position, (_, _, step) in enumerate(steps, start=1)]


def normalize_payload(payload: Mapping[str, Any]) -> NormalizedPlan:
    """Check required titles and clean up ids and orders.

    Raises :class:`PlanValidationError` listing every problem found. A course
    id with the wrong format only produces a warning and is dropped.
    """
    errors: List[Dict[str, str]] = []
    warnings: List[str] = []

    path_title = _pick(payload, "pathTitle", "path_title")
    if path_title is not None and not isinstance(path_title, str):
        errors.append({"field": "pathTitle", "message": "must be a string"})
    learning_goal = _pick(payload, "learningGoal", "learning_goal")
    if learning_goal is not None and not isinstance(learning_goal, str):
        errors.append({"field": "learningGoal", "message": "must be a string"})

    raw_phases = payload.get("phases")
    if raw_phases is not None and not isinstance(raw_phases, list):
        errors.append({"field": "phases", "message": "must be an array"})
        raw_phases = []
    raw_phases = raw_phases or []
    if not raw_phases:
        warnings.append(NO_PHASES_WARNING)

    ordered: List[Tuple[int, int, Phase]] = []
    for phase_index, raw in enumerate(raw_phases):
        entry = raw if isinstance(raw, Mapping) else {}
        title = _text(_pick(entry, "title", "phaseName", "phase_name"))
        if not title:
            errors.append({"field": f"phases[{phase_index}].title", "message": "required"})
        steps = _normalize_steps(entry.get("steps"), phase_index, errors, warnings)
        ordered.append(
            (
                _order(entry.get("order"), phase_index + 1),
                phase_index,
                Phase(
                    title=title,
                    description=_text(_pick(entry, "description", "phaseDescription", "phase_description")),
                    phase_rationale=_text(_pick(entry, "phaseRationale", "phase_rationale")),
                    order=1,
                    steps=steps,
                ),
            )
        )

    if errors:
        raise PlanValidationError(INVALID_PAYLOAD_MESSAGE, errors)

    ordered.sort(key=lambda item: (item[0], item[1]))
    phases = [phase.model_copy(update={"order": position}) for position, (_, _, phase) in enumerate(ordered, start=1)]
    return NormalizedPlan(
        path_title=_text(path_title),
        learning_goal=_text(learning_goal),
        phases=phases,
        warnings=warnings,
    )


def referenced_course_ids(phases: Sequence[Phase]) -> List[str]:
    seen: List[str] = []
    for phase in phases:
        for step in phase.steps:
            if step.course_id and step.course_id not in seen:
                seen.append(step.course_id)
    return seen


class PayloadIngestor:
    """Turns a custom plan payload into the same stored shape as a generated path."""

    def __init__(self, catalog: CatalogView) -> None:
        self._catalog = catalog

    def build(
        self,
        payload: Mapping[str, Any],
        profile: Optional[PreferenceProfile] = None,
        *,
        generated_at: Optional[datetime] = None,
    ) -> Tuple[LearningPath, List[str]]:
        plan = normalize_payload(payload)
        course_ids = referenced_course_ids(plan.phases)
        snapshots = self._catalog.snapshots(course_ids)
        hours = {course_id: parse_duration(snapshot.duration) for course_id, snapshot in snapshots.items()}
        weekly_study_hours = profile.weekly_study_hours if profile else ""

        phases = [self._with_courses(phase, hours, weekly_study_hours) for phase in plan.phases]
        first_reason: Dict[str, str] = {}
        for phase in phases:
            for step in phase.steps:
                if step.course_id and step.course_id not in first_reason:
                    first_reason[step.course_id] = step.description
        recommendations = [
            Recommendation(
                course_id=course_id,
                reason=first_reason.get(course_id, ""),
                priority=priority,
                match_score=0,
                estimated_hours=hours.get(course_id, 0.0),
            )
            for priority, course_id in enumerate(course_ids, start=1)
        ]
        facts = {
            course_id: (snapshot.level, [category.id for category in snapshot.categories])
            for course_id, snapshot in snapshots.items()
        }
        learning_goal = plan.learning_goal or (profile.learning_goal if profile else "")
        path = LearningPath(
            path_title=plan.path_title,
            learning_goal=learning_goal,
            phases=phases,
            recommended_courses=recommendations,
            path_summary=summarize(recommendations, facts, len(phases)),
            source="custom",
            last_generated_at=generated_at or datetime.now(timezone.utc),
        )
        if plan.warnings:
            logger.info("Custom learning path accepted with %d warning(s)", len(plan.warnings))
        return path, plan.warnings

    @staticmethod
    def _with_courses(phase: Phase, hours: Mapping[str, float], weekly_study_hours: str) -> Phase:
        courses = [
            PhaseCourse(
                course_id=step.course_id,
                reason=step.description,
                order=position,
                match_score=0,
                estimated_hours=hours.get(step.course_id, 0.0),
            )
            for position, step in enumerate([step for step in phase.steps if step.course_id], start=1)
        ]
        total_hours = round_half_up(sum(course.estimated_hours for course in courses), 1)
        weeks = weeks_for_hours(total_hours, weekly_study_hours)
        return phase.model_copy(
            update={
                "courses": courses,
                "total_hours": total_hours,
                "estimated_weeks": weeks,
                "estimated_days": days_for_weeks(weeks),
                "estimated_time": format_estimated_time(weeks),
            }
        )


__all__ = [
    "NormalizedPlan",
    "PayloadIngestor",
    "is_custom_plan",
    "is_valid_course_id",
    "normalize_payload",
    "referenced_course_ids",
]
