from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable

import pytest

from learnpath.errors import PlanValidationError
from learnpath.learning_path import CategoryRef, CourseSnapshot
from learnpath.payload_ingestor import (
    NO_PHASES_WARNING,
    PayloadIngestor,
    is_custom_plan,
    normalize_payload,
)

from conftest import make_profile

COURSE_A = str(uuid.uuid4())
COURSE_B = str(uuid.uuid4())


class FakeCatalog:
    def __init__(self, snapshots: Dict[str, CourseSnapshot]) -> None:
        self._snapshots = snapshots

    def snapshots(self, course_ids: Iterable[str]) -> Dict[str, CourseSnapshot]:
        return {course_id: self._snapshots[course_id] for course_id in course_ids if course_id in self._snapshots}


CATALOG = FakeCatalog(
    {
        COURSE_A: CourseSnapshot(
            id=COURSE_A,
            title="HTML & CSS",
            level="beginner",
            duration="2h 30m",
            categories=[CategoryRef(id="web", name="Web")],
        ),
        COURSE_B: CourseSnapshot(id=COURSE_B, title="JavaScript", level="intermediate", duration="6h"),
    }
)


@pytest.mark.parametrize(
    "payload, expected",
    [
        (None, False),
        ({}, False),
        ({"learningGoal": "Web"}, False),
        ({"phases": []}, False),
        ({"pathTitle": "Lộ trình riêng"}, True),
        ({"path_title": "Lộ trình riêng"}, True),
        ({"phases": [{"title": "Giai đoạn 1"}]}, True),
    ],
)
def test_custom_plan_detection(payload, expected) -> None:
    assert is_custom_plan(payload) is expected


def test_missing_titles_are_reported_together() -> None:
    payload = {"phases": [{"steps": [{"description": "no title"}]}, {"title": "ok"}]}
    with pytest.raises(PlanValidationError) as excinfo:
        normalize_payload(payload)
    assert str(excinfo.value) == "Invalid learning path payload"
    assert [error["field"] for error in excinfo.value.errors] == [
        "phases[0].title",
        "phases[0].steps[0].title",
    ]


def test_phases_must_be_a_list() -> None:
    with pytest.raises(PlanValidationError) as excinfo:
        normalize_payload({"pathTitle": "x", "phases": {"title": "not a list"}})
    assert excinfo.value.errors == [{"field": "phases", "message": "must be an array"}]


def test_invalid_course_id_becomes_warning() -> None:
    payload = {
        "pathTitle": "Lộ trình",
        "phases": [{"title": "P1", "steps": [{"title": "S1", "courseId": "not-an-id"}]}],
    }
    plan = normalize_payload(payload)
    assert plan.phases[0].steps[0].course_id is None
    assert plan.warnings == ["phases[0].steps[0].courseId is not a valid id and will be ignored"]


def test_orders_are_sorted_and_renumbered() -> None:
    payload = {
        "pathTitle": "Lộ trình",
        "phases": [
            {"phaseName": "Second", "order": 7, "steps": [{"title": "b", "order": 5}, {"title": "a", "order": 2}]},
            {"title": "First", "order": 3, "phaseDescription": "Mô tả"},
        ],
    }
    plan = normalize_payload(payload)
    assert [(phase.title, phase.order) for phase in plan.phases] == [("First", 1), ("Second", 2)]
    assert plan.phases[0].description == "Mô tả"
    assert [(step.title, step.order) for step in plan.phases[1].steps] == [("a", 1), ("b", 2)]


def test_no_phases_is_allowed_with_warning() -> None:
    plan = normalize_payload({"pathTitle": "Chỉ có tiêu đề"})
    assert plan.phases == []
    assert plan.warnings == [NO_PHASES_WARNING]


def test_build_derives_courses_hours_and_summary() -> None:
    generated_at = datetime(2026, 10, 18, tzinfo=timezone.utc)
    payload = {
        "pathTitle": "Front-end của tôi",
        "phases": [
            {
                "title": "Nền tảng",
                "steps": [
                    {"title": "Học HTML", "description": "Bắt đầu từ HTML", "courseId": COURSE_A.upper()},
                    {"title": "Đọc tài liệu"},
                ],
            },
            {
                "title": "JavaScript",
                "steps": [
                    {"title": "Ôn lại HTML", "courseId": COURSE_A},
                    {"title": "Học JS", "description": "Ngôn ngữ của web", "course_id": COURSE_B},
                ],
            },
        ],
    }
    path, warnings = PayloadIngestor(CATALOG).build(
        payload,
        make_profile(weekly_study_hours="1-3"),
        generated_at=generated_at,
    )

    assert warnings == []
    assert path.source == "custom"
    assert path.path_title == "Front-end của tôi"
    assert path.learning_goal == make_profile().learning_goal
    first, second = path.phases
    assert first.steps[0].course_id == COURSE_A
    assert first.steps[1].course_id is None
    assert [course.course_id for course in first.courses] == [COURSE_A]
    assert first.total_hours == 2.5
    assert first.estimated_weeks == 2
    assert second.total_hours == 8.5
    assert second.estimated_weeks == 5
    assert second.estimated_time == "1 tháng"

    assert [(rec.course_id, rec.priority, rec.reason) for rec in path.recommended_courses] == [
        (COURSE_A, 1, "Bắt đầu từ HTML"),
        (COURSE_B, 2, "Ngôn ngữ của web"),
    ]
    assert path.path_summary.total_courses == 2
    assert path.path_summary.total_estimated_hours == 9
    assert path.path_summary.total_phases == 2
    assert path.path_summary.skills_covered == ["web"]
    assert path.path_summary.level_progression == "beginner-to-intermediate"
    assert path.last_generated_at == generated_at


def test_build_without_profile_uses_default_pace() -> None:
    payload = {
        "pathTitle": "x",
        "learningGoal": "Học JS",
        "phases": [{"title": "P", "steps": [{"title": "JS", "courseId": COURSE_B}]}],
    }
    path, _ = PayloadIngestor(CATALOG).build(payload)
    assert path.learning_goal == "Học JS"
    assert path.phases[0].estimated_weeks == 2


@pytest.mark.parametrize("raw_order", ["1e400", "-1e400", "NaN"])
def test_non_finite_orders_fall_back_to_position(raw_order) -> None:
    payload = json.loads(
        '{"pathTitle": "x", "phases": ['
        f'{{"title": "second", "order": {raw_order}, "steps": [{{"title": "s", "order": {raw_order}}}, {{"title": "t", "order": 2}}]}},'
        '{"title": "third", "order": 3}]}'
    )
    plan = normalize_payload(payload)
    assert [phase.title for phase in plan.phases] == ["second", "third"]
    assert [(step.title, step.order) for step in plan.phases[0].steps] == [("s", 1), ("t", 2)]
