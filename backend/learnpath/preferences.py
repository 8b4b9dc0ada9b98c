"""Student learning preferences captured by the onboarding survey."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import PlanValidationError

logger = logging.getLogger(__name__)

CourseLevel = Literal["beginner", "intermediate", "advanced", "expert"]
WeeklyStudyHours = Literal["1-3", "4-7", "8-15", "15+"]
TargetCompletionTime = Literal["1-month", "3-months", "6-months", "1-year+"]

LEVELS: tuple[str, ...] = ("beginner", "intermediate", "advanced", "expert")
WEEKLY_STUDY_HOURS: tuple[str, ...] = ("1-3", "4-7", "8-15", "15+")
TARGET_COMPLETION_TIMES: tuple[str, ...] = ("1-month", "3-months", "6-months", "1-year+")

LEVEL_RANK: Dict[str, int] = {level: index + 1 for index, level in enumerate(LEVELS)}

TIMELINE_LABELS: Dict[str, str] = {
    "1-month": "1 tháng",
    "3-months": "3 tháng",
    "6-months": "6 tháng",
    "1-year+": "1 năm",
}


class PreferenceProfile(BaseModel):
    """Survey answers a learning path is generated from.

    Written only by survey submission and treated as immutable until the
    student resubmits.
    """

    model_config = ConfigDict(frozen=True)

    learning_goal: str = ""
    objectives: List[str] = Field(default_factory=list)
    interested_skills: List[str] = Field(default_factory=list)
    current_level: CourseLevel
    weekly_study_hours: WeeklyStudyHours
    target_completion_time: TargetCompletionTime
    survey_completed: bool = False
    survey_completed_at: Optional[datetime] = None

    @field_validator("interested_skills")
    @classmethod
    def _dedupe_skills(cls, value: List[str]) -> List[str]:
        seen: set[str] = set()
        ordered: List[str] = []
        for skill in value:
            key = str(skill).strip()
            if key and key not in seen:
                seen.add(key)
                ordered.append(key)
        return ordered

    @field_validator("objectives")
    @classmethod
    def _strip_objectives(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @property
    def skill_ids(self) -> FrozenSet[str]:
        return frozenset(self.interested_skills)


class SurveySubmission(BaseModel):
    """Raw survey body; every field is optional so validation can report all problems at once."""

    model_config = ConfigDict(populate_by_name=True)

    learning_goal: Optional[str] = Field(default=None, alias="learningGoal")
    learning_objectives: List[str] = Field(default_factory=list, alias="learningObjectives")
    interested_skills: List[str] = Field(default_factory=list, alias="interestedSkills")
    current_level: Optional[str] = Field(default=None, alias="currentLevel")
    weekly_study_hours: Optional[str] = Field(default=None, alias="weeklyStudyHours")
    target_completion_time: Optional[str] = Field(default=None, alias="targetCompletionTime")


def build_preference_profile(
    submission: SurveySubmission,
    *,
    completed_at: Optional[datetime] = None,
) -> PreferenceProfile:
    """Validate a survey submission and turn it into a completed profile."""
    errors: List[Dict[str, str]] = []
    goal = (submission.learning_goal or "").strip()

    required = {
        "learning_goal": goal,
        "current_level": submission.current_level,
        "weekly_study_hours": submission.weekly_study_hours,
        "target_completion_time": submission.target_completion_time,
    }
    for field, value in required.items():
        if not value:
            errors.append({"field": field, "message": "required"})
    if errors:
        raise PlanValidationError("Vui lòng điền đầy đủ các thông tin bắt buộc", errors)

    if submission.current_level not in LEVELS:
        errors.append({"field": "current_level", "message": "Trình độ không hợp lệ"})
    if submission.weekly_study_hours not in WEEKLY_STUDY_HOURS:
        errors.append({"field": "weekly_study_hours", "message": "Thời gian học tập không hợp lệ"})
    if submission.target_completion_time not in TARGET_COMPLETION_TIMES:
        errors.append({"field": "target_completion_time", "message": "Thời gian hoàn thành không hợp lệ"})
    if errors:
        raise PlanValidationError(errors[0]["message"], errors)

    return PreferenceProfile(
        learning_goal=goal,
        objectives=list(submission.learning_objectives),
        interested_skills=list(submission.interested_skills),
        current_level=submission.current_level,  # type: ignore[arg-type]
        weekly_study_hours=submission.weekly_study_hours,  # type: ignore[arg-type]
        target_completion_time=submission.target_completion_time,  # type: ignore[arg-type]
        survey_completed=True,
        survey_completed_at=completed_at or datetime.now(timezone.utc),
    )


def profile_from_storage(payload: Optional[Dict[str, Any]]) -> Optional[PreferenceProfile]:
    """Rebuild a profile from its JSON column, ignoring rows written before validation existed."""
    if not payload:
        return None
    try:
        return PreferenceProfile.model_validate(payload)
    except ValueError as exc:
        logger.warning("Ignoring stored learning preferences that no longer validate: %s", exc)
        return None


__all__ = [
    "CourseLevel",
    "LEVELS",
    "LEVEL_RANK",
    "PreferenceProfile",
    "SurveySubmission",
    "TARGET_COMPLETION_TIMES",
    "TIMELINE_LABELS",
    "TargetCompletionTime",
    "WEEKLY_STUDY_HOURS",
    "WeeklyStudyHours",
    "build_preference_profile",
    "profile_from_storage",
]
