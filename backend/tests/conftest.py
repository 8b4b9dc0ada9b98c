from __future__ import annotations

import os
import uuid
from typing import Any, Callable, Iterator, List, Optional, Sequence, Union

import pytest

os.environ.setdefault("LEARNPATH_DATABASE_URL", "sqlite://")
os.environ.setdefault("LEARNPATH_TEXT_GENERATION_MODE", "off")

from learnpath.config import get_settings  # noqa: E402
from learnpath.db.models import CategoryModel, CourseModel, EnrollmentModel, StudentProfileModel  # noqa: E402
from learnpath.db.session import create_all, dispose_engine, session_scope  # noqa: E402
from learnpath.learning_path import AnnotatedCourse, CourseCandidate, ScoredCandidate  # noqa: E402
from learnpath.preferences import PreferenceProfile  # noqa: E402
from learnpath.telemetry import TelemetryEvent, clear_listeners, register_listener  # noqa: E402
from learnpath.text_generation import TextGenerationError, TextGenerationRequest  # noqa: E402

ScriptedItem = Union[str, Exception, Callable[[TextGenerationRequest], str]]


class ScriptedTextGenerator:
    """Text generation double that replays scripted outputs in order."""

    def __init__(self, responses: Sequence[ScriptedItem] = ()) -> None:
        self.responses: List[ScriptedItem] = list(responses)
        self.requests: List[TextGenerationRequest] = []

    async def generate(self, request: TextGenerationRequest) -> str:
        self.requests.append(request)
        if not self.responses:
            raise TextGenerationError("No scripted response left", code="INVALID_RESPONSE")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class CatalogSeeder:
    """Writes categories, courses, students and enrollments into the test database."""

    def category(self, name: str, icon: Optional[str] = None) -> str:
        category_id = str(uuid.uuid4())
        with session_scope() as session:
            session.add(CategoryModel(id=category_id, name=name, icon=icon))
        return category_id

    def course(
        self,
        title: str,
        *,
        level: str = "beginner",
        categories: Sequence[str] = (),
        rating: Optional[float] = 4.0,
        duration: Optional[str] = "5h",
        status: str = "active",
        description: str = "",
        will_learn: Sequence[str] = (),
        price: Optional[float] = 0.0,
    ) -> str:
        course_id = str(uuid.uuid4())
        with session_scope() as session:
            session.add(
                CourseModel(
                    id=course_id,
                    title=title,
                    sub_title=f"{title} subtitle",
                    level=level,
                    category_ids=list(categories),
                    rating=rating,
                    duration=duration,
                    status=status,
                    description=description,
                    will_learn=list(will_learn),
                    price=price,
                )
            )
        return course_id

    def student(
        self,
        student_id: str,
        *,
        display_name: Optional[str] = None,
        preferences: Optional[PreferenceProfile] = None,
    ) -> str:
        with session_scope() as session:
            session.add(
                StudentProfileModel(
                    id=student_id,
                    display_name=display_name,
                    learning_preferences=preferences.model_dump(mode="json") if preferences else None,
                    survey_completed=bool(preferences and preferences.survey_completed),
                    regeneration_count=0,
                )
            )
        return student_id

    def enroll(self, student_id: str, course_id: str, status: str = "enrolled") -> None:
        with session_scope() as session:
            session.add(EnrollmentModel(student_id=student_id, course_id=course_id, status=status))


@pytest.fixture
def database(tmp_path, monkeypatch) -> Iterator[None]:
    monkeypatch.setenv("LEARNPATH_DATABASE_URL", f"sqlite:///{tmp_path / 'learnpath.db'}")
    monkeypatch.setenv("LEARNPATH_TEXT_GENERATION_MODE", "off")
    get_settings.cache_clear()
    dispose_engine()
    create_all()
    yield
    dispose_engine()
    get_settings.cache_clear()


@pytest.fixture
def seed(database) -> CatalogSeeder:
    return CatalogSeeder()


@pytest.fixture
def text_generator() -> ScriptedTextGenerator:
    return ScriptedTextGenerator()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def telemetry_events() -> Iterator[List[TelemetryEvent]]:
    events: List[TelemetryEvent] = []
    clear_listeners()
    register_listener(events.append)
    yield events
    clear_listeners()


def make_profile(**overrides: Any) -> PreferenceProfile:
    values: dict[str, Any] = {
        "learning_goal": "Trở thành lập trình viên web",
        "objectives": ["Xây dựng website"],
        "interested_skills": [],
        "current_level": "beginner",
        "weekly_study_hours": "4-7",
        "target_completion_time": "3-months",
        "survey_completed": True,
    }
    values.update(overrides)
    return PreferenceProfile(**values)


@pytest.fixture
def profile_factory() -> Callable[..., PreferenceProfile]:
    return make_profile


def make_candidate(course_id: str, level: str = "beginner", **overrides: Any) -> CourseCandidate:
    values: dict[str, Any] = {"course_id": course_id, "title": f"Course {course_id}", "level": level}
    values.update(overrides)
    return CourseCandidate(**values)


def make_annotated(
    course_id: str,
    level: str = "beginner",
    *,
    score: int = 50,
    priority: int = 1,
    hours: float = 4.0,
    reason: str = "",
    **overrides: Any,
) -> AnnotatedCourse:
    candidate = make_candidate(course_id, level, content_hours=hours, **overrides)
    return AnnotatedCourse(
        scored=ScoredCandidate(candidate=candidate, match_score=score, rank=priority),
        reason=reason or f"Reason for {course_id}",
        priority=priority,
    )
