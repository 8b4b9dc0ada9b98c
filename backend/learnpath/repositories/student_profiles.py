"""Database-backed student profile repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db.models import StudentProfileModel
from ..learning_path import LearningPath
from ..preferences import PreferenceProfile, profile_from_storage


def _normalize_student_id(student_id: str) -> str:
    normalized = (student_id or "").strip()
    if not normalized:
        raise ValueError("Student id cannot be empty.")
    return normalized


class StudentProfileRepository:
    """Reads survey answers and reads/overwrites the stored learning path."""

    def get(self, session: Session, student_id: str) -> StudentProfileModel | None:
        return session.get(StudentProfileModel, _normalize_student_id(student_id))

    def get_preferences(self, session: Session, student_id: str) -> Optional[PreferenceProfile]:
        model = self.get(session, student_id)
        if model is None:
            return None
        return profile_from_storage(model.learning_preferences)

    def save_preferences(
        self,
        session: Session,
        student_id: str,
        preferences: PreferenceProfile,
    ) -> PreferenceProfile:
        model = self._require_model(session, student_id)
        model.learning_preferences = preferences.model_dump(mode="json")
        model.survey_completed = preferences.survey_completed
        model.survey_completed_at = preferences.survey_completed_at
        session.flush()
        return preferences

    def get_learning_path(self, session: Session, student_id: str) -> Optional[LearningPath]:
        model = self.get(session, student_id)
        if model is None or not model.learning_path:
            return None
        return self._to_domain(model.learning_path, model.regeneration_count)

    def replace_learning_path(self, session: Session, student_id: str, path: LearningPath) -> LearningPath:
        """Overwrite the stored plan in one statement and bump the regeneration counter.

        The counter is incremented in SQL so concurrent regenerations can only
        ever move it forward; the plan itself is last-write-wins.
        """
        normalized = _normalize_student_id(student_id)
        self._require_model(session, normalized)
        generated_at = path.last_generated_at or datetime.now(timezone.utc)
        document = path.model_dump(mode="json", exclude={"regeneration_count"})
        stmt = (
            update(StudentProfileModel)
            .where(StudentProfileModel.id == normalized)
            .values(
                learning_path=document,
                last_generated_at=generated_at,
                regeneration_count=StudentProfileModel.regeneration_count + 1,
            )
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)
        count_stmt = select(StudentProfileModel.regeneration_count).where(StudentProfileModel.id == normalized)
        regeneration_count = session.execute(count_stmt).scalar_one()
        return self._to_domain(document, regeneration_count)

    def _require_model(self, session: Session, student_id: str) -> StudentProfileModel:
        normalized = _normalize_student_id(student_id)
        model = session.get(StudentProfileModel, normalized)
        if model is None:
            model = StudentProfileModel(id=normalized, regeneration_count=0, survey_completed=False)
            session.add(model)
            session.flush()
        return model

    @staticmethod
    def _to_domain(document: dict, regeneration_count: int) -> LearningPath:
        return LearningPath.model_validate({**document, "regeneration_count": regeneration_count})


student_profiles = StudentProfileRepository()

__all__ = ["StudentProfileRepository", "student_profiles"]
