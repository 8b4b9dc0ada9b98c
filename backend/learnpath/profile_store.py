"""Session-scoped student profile store used by routes and the pipeline."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from .db.session import session_scope
from .errors import PlanPersistenceError
from .learning_path import LearningPath
from .preferences import PreferenceProfile
from .repositories.student_profiles import StudentProfileRepository, student_profiles

logger = logging.getLogger(__name__)


class ProfileView(Protocol):
    def get_preferences(self, student_id: str) -> Optional[PreferenceProfile]:  # pragma: no cover - protocol
        ...

    def display_name(self, student_id: str) -> Optional[str]:  # pragma: no cover - protocol
        ...

    def get_learning_path(self, student_id: str) -> Optional[LearningPath]:  # pragma: no cover - protocol
        ...

    def replace_learning_path(self, student_id: str, path: LearningPath) -> LearningPath:  # pragma: no cover - protocol
        ...


class StudentProfileStore:
    def __init__(self, repository: Optional[StudentProfileRepository] = None) -> None:
        self._repository = repository or student_profiles

    def exists(self, student_id: str) -> bool:
        with session_scope(commit=False) as session:
            return self._repository.get(session, student_id) is not None

    def display_name(self, student_id: str) -> Optional[str]:
        with session_scope(commit=False) as session:
            model = self._repository.get(session, student_id)
            return model.display_name if model else None

    def get_preferences(self, student_id: str) -> Optional[PreferenceProfile]:
        with session_scope(commit=False) as session:
            return self._repository.get_preferences(session, student_id)

    def save_preferences(self, student_id: str, preferences: PreferenceProfile) -> PreferenceProfile:
        with session_scope() as session:
            return self._repository.save_preferences(session, student_id, preferences)

    def get_learning_path(self, student_id: str) -> Optional[LearningPath]:
        with session_scope(commit=False) as session:
            return self._repository.get_learning_path(session, student_id)

    def replace_learning_path(self, student_id: str, path: LearningPath) -> LearningPath:
        try:
            with session_scope() as session:
                return self._repository.replace_learning_path(session, student_id, path)
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist learning path for %s", student_id)
            raise PlanPersistenceError("Failed to save learning path") from exc


profile_store = StudentProfileStore()

__all__ = ["ProfileView", "StudentProfileStore", "profile_store"]
