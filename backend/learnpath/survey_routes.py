"""Learning preferences survey endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from .catalog import CatalogStore
from .dependencies import current_student_id, http_error
from .errors import LearningPathError
from .learning_path import CategoryRef
from .preferences import PreferenceProfile, SurveySubmission, build_preference_profile
from .profile_store import profile_store
from .telemetry import emit_event

router = APIRouter(prefix="/api/survey", tags=["survey"])
logger = logging.getLogger(__name__)

_catalog = CatalogStore()


class LearningPreferencesPayload(BaseModel):
    learning_goal: str = ""
    learning_objectives: List[str] = Field(default_factory=list)
    interested_skills: List[CategoryRef] = Field(default_factory=list)
    current_level: Optional[str] = None
    weekly_study_hours: Optional[str] = None
    target_completion_time: Optional[str] = None
    survey_completed: bool = False
    survey_completed_at: Optional[datetime] = None


class SurveyResponse(BaseModel):
    success: bool = True
    learning_preferences: Optional[LearningPreferencesPayload] = None


def _preferences_payload(profile: PreferenceProfile) -> LearningPreferencesPayload:
    refs = _catalog.category_refs(profile.interested_skills)
    return LearningPreferencesPayload(
        learning_goal=profile.learning_goal,
        learning_objectives=list(profile.objectives),
        interested_skills=[
            refs.get(skill_id) or CategoryRef(id=skill_id, name=skill_id) for skill_id in profile.interested_skills
        ],
        current_level=profile.current_level,
        weekly_study_hours=profile.weekly_study_hours,
        target_completion_time=profile.target_completion_time,
        survey_completed=profile.survey_completed,
        survey_completed_at=profile.survey_completed_at,
    )


@router.post("/submit", response_model=SurveyResponse)
def submit_survey(
    submission: SurveySubmission,
    student_id: str = Depends(current_student_id),
) -> SurveyResponse:
    try:
        profile = build_preference_profile(submission)
        saved = profile_store.save_preferences(student_id, profile)
    except LearningPathError as exc:
        raise http_error(exc) from exc

    emit_event(
        "survey_submitted",
        student_id=student_id,
        current_level=saved.current_level,
        weekly_study_hours=saved.weekly_study_hours,
        target_completion_time=saved.target_completion_time,
        skill_count=len(saved.interested_skills),
    )
    return SurveyResponse(learning_preferences=_preferences_payload(saved))


@router.get("", response_model=SurveyResponse)
def get_survey(student_id: str = Depends(current_student_id)) -> SurveyResponse:
    if not profile_store.exists(student_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Student not found"},
        )
    profile = profile_store.get_preferences(student_id)
    if profile is None:
        return SurveyResponse(learning_preferences=None)
    return SurveyResponse(learning_preferences=_preferences_payload(profile))


__all__ = ["router"]
