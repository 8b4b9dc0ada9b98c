from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from learnpath.catalog import CatalogStore
from learnpath.learning_path_service import LearningPathService, get_learning_path_service
from learnpath.main import app
from learnpath.profile_store import StudentProfileStore
from learnpath.text_generation import DisabledTextGenerator, RetryPolicy

from conftest import make_profile

HEADERS = {"X-Student-Id": "student-7"}


@pytest.fixture
def client(database, no_sleep) -> Iterator[TestClient]:
    service = LearningPathService(
        catalog=CatalogStore(),
        profiles=StudentProfileStore(),
        text_generator=DisabledTextGenerator(),
        policy=RetryPolicy(max_attempts=1, backoff_seconds=0.0, timeout_seconds=5.0),
        sleep=no_sleep,
    )
    app.dependency_overrides[get_learning_path_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_learning_path_service, None)


def test_generate_requires_authentication(client) -> None:
    response = client.post("/api/recommendations/generate")
    assert response.status_code == 401


def test_generate_without_survey(client, seed) -> None:
    seed.student("student-7")
    response = client.post("/api/recommendations/generate", headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["detail"] == {
        "message": "Please complete the learning preferences survey first",
        "requires_survey": True,
    }


def test_generate_and_read(client, seed) -> None:
    seed.student("student-7", preferences=make_profile(weekly_study_hours="1-3", target_completion_time="1-month"))
    seed.course("Python nhập môn", rating=4.8, duration="6h")
    seed.course("Git cơ bản", rating=4.2, duration="2h")

    response = client.post("/api/recommendations/generate", headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["warnings"] is None
    path = body["learning_path"]
    assert [item["course"]["title"] for item in path["recommended_courses"]] == ["Python nhập môn"]
    assert path["regeneration_count"] == 1
    assert path["phases"][0]["estimated_time"] == "3 tuần"

    response = client.get("/api/recommendations/learning-path", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["learning_path"]["path_title"] == path["path_title"]


def test_read_before_generation(client, seed) -> None:
    seed.student("student-7", preferences=make_profile())
    response = client.get("/api/recommendations/learning-path", headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["detail"]["requires_generation"] is True


def test_no_courses_is_not_found(client, seed) -> None:
    seed.student("student-7", preferences=make_profile())
    response = client.post("/api/recommendations/generate", headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["detail"] == {"message": "No active courses found"}


def test_custom_plan_round_trip(client, seed) -> None:
    seed.student("student-7", preferences=make_profile())
    course_id = seed.course("SQL thực hành", duration="3h")
    payload = {
        "pathTitle": "Lộ trình tự chọn",
        "learningGoal": "Phân tích dữ liệu",
        "phases": [
            {
                "title": "SQL",
                "description": "Truy vấn dữ liệu",
                "steps": [
                    {"title": "Khóa SQL", "description": "Nền tảng", "courseId": course_id},
                    {"title": "Đọc blog", "courseId": "not-an-id"},
                ],
            }
        ],
    }
    response = client.post("/api/recommendations/generate", json=payload, headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["warnings"] == ["phases[0].steps[1].courseId is not a valid id and will be ignored"]
    path = body["learning_path"]
    assert path["source"] == "custom"
    assert path["learning_goal"] == "Phân tích dữ liệu"
    steps = path["phases"][0]["steps"]
    assert [step["course_id"] for step in steps] == [course_id, None]
    assert [course["course"]["title"] for course in path["phases"][0]["courses"]] == ["SQL thực hành"]


def test_invalid_custom_plan_is_rejected(client, seed) -> None:
    seed.student("student-7", preferences=make_profile())
    response = client.post(
        "/api/recommendations/generate",
        json={"pathTitle": "Thiếu tiêu đề", "phases": [{"steps": []}]},
        headers=HEADERS,
    )
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["message"] == "Invalid learning path payload"
    assert detail["errors"] == [{"field": "phases[0].title", "message": "required"}]


def test_custom_plan_with_out_of_range_order(client, seed) -> None:
    seed.student("student-7", preferences=make_profile())
    body = (
        '{"pathTitle": "x", "phases": [{"title": "p", "order": NaN,'
        ' "steps": [{"title": "s", "order": 1e400}, {"title": "t", "order": 2}]}]}'
    )
    response = client.post(
        "/api/recommendations/generate",
        content=body,
        headers={**HEADERS, "Content-Type": "application/json"},
    )
    assert response.status_code == 200
    phase = response.json()["learning_path"]["phases"][0]
    assert phase["order"] == 1
    assert [(step["title"], step["order"]) for step in phase["steps"]] == [("s", 1), ("t", 2)]
