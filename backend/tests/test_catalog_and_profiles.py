from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from learnpath.catalog import CatalogStore, parse_duration
from learnpath.errors import PlanPersistenceError
from learnpath.learning_path import LearningPath
from learnpath.profile_store import StudentProfileStore

from conftest import make_profile


@pytest.mark.parametrize(
    "value, hours",
    [(None, 0.0), ("", 0.0), ("10h", 10.0), ("10h 30m", 10.5), ("45m", 0.8), ("1H 20M", 1.3), ("soon", 0.0)],
)
def test_parse_duration(value, hours) -> None:
    assert parse_duration(value) == hours


def test_load_candidates_excludes_inactive_and_enrolled(seed) -> None:
    web_id = seed.category("Web")
    seed.student("s1")
    open_id = seed.course(
        "Open",
        categories=[web_id, "missing-category"],
        duration="2h 15m",
        description="x" * 120,
        will_learn=["HTML", " "],
    )
    enrolled_id = seed.course("Enrolled")
    completed_id = seed.course("Completed")
    dropped_id = seed.course("Dropped")
    seed.course("Draft", status="draft")
    seed.enroll("s1", enrolled_id)
    seed.enroll("s1", completed_id, status="completed")
    seed.enroll("s1", dropped_id, status="dropped")

    selection = CatalogStore().load_candidates("s1")

    assert selection.active_count == 4
    assert selection.enrolled_ids == {enrolled_id, completed_id}
    assert [candidate.title for candidate in selection.candidates] == ["Open", "Dropped"]
    candidate = selection.candidates[0]
    assert candidate.course_id == open_id
    assert candidate.category_ids == (web_id, "missing-category")
    assert candidate.category_names == ("Web",)
    assert candidate.content_hours == 2.3
    assert candidate.has_rich_description is True
    assert candidate.has_will_learn is True


def test_snapshots_resolve_any_status(seed) -> None:
    web_id = seed.category("Web", icon="globe")
    draft_id = seed.course("Retired", status="draft", categories=[web_id])
    snapshots = CatalogStore().snapshots([draft_id, "unknown"])
    assert list(snapshots) == [draft_id]
    assert snapshots[draft_id].categories[0].icon == "globe"


def test_replace_learning_path_counts_and_overwrites(seed) -> None:
    store = StudentProfileStore()
    seed.student("s1", display_name="Lan", preferences=make_profile())

    first = store.replace_learning_path("s1", LearningPath(path_title="First", regeneration_count=99))
    second = store.replace_learning_path("s1", LearningPath(path_title="Second"))

    assert first.regeneration_count == 1
    assert second.regeneration_count == 2
    stored = store.get_learning_path("s1")
    assert stored is not None
    assert stored.path_title == "Second"
    assert stored.regeneration_count == 2
    assert store.display_name("s1") == "Lan"
    assert store.get_preferences("s1") == make_profile()


def test_replace_learning_path_creates_missing_profile(database) -> None:
    store = StudentProfileStore()
    stored = store.replace_learning_path("new-student", LearningPath(path_title="Hello"))
    assert stored.regeneration_count == 1
    assert store.exists("new-student")


def test_persistence_failures_are_wrapped(database, monkeypatch) -> None:
    store = StudentProfileStore()

    def explode(session, student_id, path):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(store._repository, "replace_learning_path", explode)
    with pytest.raises(PlanPersistenceError):
        store.replace_learning_path("s1", LearningPath())
