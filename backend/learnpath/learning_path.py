"""Learning path models shared by the generation pipeline, storage, and HTTP layer."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a spreadsheet would: halves always go up."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class CourseCandidate:
    """Scoring-ready projection of one active catalog course (lives for a single run)."""

    course_id: str
    title: str
    level: Optional[str]
    category_ids: Tuple[str, ...] = ()
    category_names: Tuple[str, ...] = ()
    rating: Optional[float] = None
    content_hours: float = 0.0
    sub_title: Optional[str] = None
    description: str = ""
    has_rich_description: bool = False
    has_will_learn: bool = False


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: CourseCandidate
    match_score: int
    rank: int = 0


@dataclass(frozen=True)
class AnnotatedCourse:
    """A selected candidate together with its justification."""

    scored: ScoredCandidate
    reason: str
    priority: int

    @property
    def candidate(self) -> CourseCandidate:
        return self.scored.candidate

    def to_recommendation(self) -> "Recommendation":
        return Recommendation(
            course_id=self.candidate.course_id,
            reason=self.reason,
            priority=self.priority,
            match_score=self.scored.match_score,
            estimated_hours=self.candidate.content_hours,
        )


class Recommendation(BaseModel):
    course_id: str
    reason: str = ""
    priority: int = Field(default=1, ge=1)
    match_score: int = Field(default=0, ge=0, le=100)
    estimated_hours: float = Field(default=0.0, ge=0.0)


class PhaseCourse(BaseModel):
    course_id: str
    reason: str = ""
    order: int = Field(default=1, ge=1)
    match_score: int = Field(default=0, ge=0, le=100)
    estimated_hours: float = Field(default=0.0, ge=0.0)


class PhaseStep(BaseModel):
    """Caller-authored step kept verbatim from a custom plan."""

    title: str
    description: str = ""
    course_id: Optional[str] = None
    order: int = Field(default=1, ge=1)


class Phase(BaseModel):
    title: str = ""
    description: str = ""
    phase_rationale: str = ""
    order: int = Field(ge=1)
    estimated_weeks: int = Field(default=1, ge=1)
    estimated_days: int = Field(default=7, ge=0)
    estimated_time: str = ""
    total_hours: float = Field(default=0.0, ge=0.0)
    courses: List[PhaseCourse] = Field(default_factory=list)
    steps: List[PhaseStep] = Field(default_factory=list)


@dataclass
class PlannedPhase:
    """Phase composition plus the facts narration needs but storage does not."""

    phase: Phase
    primary_level: str
    skill_names: List[str] = field(default_factory=list)


class PathSummary(BaseModel):
    total_courses: int = Field(default=0, ge=0)
    total_estimated_hours: int = Field(default=0, ge=0)
    total_phases: int = Field(default=0, ge=0)
    skills_covered: List[str] = Field(default_factory=list)
    level_progression: str = "mixed"


class LearningPath(BaseModel):
    """Stored plan; overwritten wholesale on every regeneration."""

    path_title: str = ""
    learning_goal: str = ""
    phases: List[Phase] = Field(default_factory=list)
    recommended_courses: List[Recommendation] = Field(default_factory=list)
    path_summary: PathSummary = Field(default_factory=PathSummary)
    source: Literal["generated", "custom"] = "generated"
    last_generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    regeneration_count: int = Field(default=0, ge=0)

    def is_empty(self) -> bool:
        return not self.phases and not self.recommended_courses

    def course_ids(self) -> List[str]:
        """Every referenced course id, first-seen order."""
        seen: set[str] = set()
        ordered: List[str] = []
        candidates = [rec.course_id for rec in self.recommended_courses]
        for phase in self.phases:
            candidates.extend(course.course_id for course in phase.courses)
            candidates.extend(step.course_id for step in phase.steps if step.course_id)
        for course_id in candidates:
            if course_id not in seen:
                seen.add(course_id)
                ordered.append(course_id)
        return ordered


class CategoryRef(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None


class CourseSnapshot(BaseModel):
    """Display fields of a course, resolved at read time."""

    id: str
    title: str
    sub_title: Optional[str] = None
    thumbnail: Optional[str] = None
    level: Optional[str] = None
    duration: Optional[str] = None
    price: Optional[float] = None
    rating: Optional[float] = None
    categories: List[CategoryRef] = Field(default_factory=list)


class HydratedCourse(BaseModel):
    course: CourseSnapshot
    reason: str = ""
    order: int = 1
    match_score: int = 0
    estimated_hours: float = 0.0


class HydratedPhase(BaseModel):
    title: str
    description: str = ""
    phase_rationale: str = ""
    order: int
    estimated_weeks: int
    estimated_days: int
    estimated_time: str
    total_hours: float
    courses: List[HydratedCourse] = Field(default_factory=list)
    steps: List[PhaseStep] = Field(default_factory=list)


class HydratedSummary(BaseModel):
    total_courses: int
    total_estimated_hours: int
    total_phases: int
    skills_covered: List[CategoryRef] = Field(default_factory=list)
    level_progression: str


class HydratedLearningPath(BaseModel):
    path_title: str
    learning_goal: str
    phases: List[HydratedPhase] = Field(default_factory=list)
    recommended_courses: List[HydratedCourse] = Field(default_factory=list)
    path_summary: HydratedSummary
    source: str
    last_generated_at: datetime
    regeneration_count: int


__all__ = [
    "AnnotatedCourse",
    "CategoryRef",
    "CourseCandidate",
    "CourseSnapshot",
    "HydratedCourse",
    "HydratedLearningPath",
    "HydratedPhase",
    "HydratedSummary",
    "LearningPath",
    "PathSummary",
    "Phase",
    "PhaseCourse",
    "PhaseStep",
    "PlannedPhase",
    "Recommendation",
    "ScoredCandidate",
    "round_half_up",
]
