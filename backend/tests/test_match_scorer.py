from __future__ import annotations

from learnpath.learning_path import CourseCandidate
from learnpath.match_scorer import match_score, score_candidates

from conftest import make_profile


def _course(course_id: str = "c1", **overrides) -> CourseCandidate:
    values = {"course_id": course_id, "title": course_id, "level": "beginner"}
    values.update(overrides)
    return CourseCandidate(**values)


def test_full_weighted_score() -> None:
    profile = make_profile(current_level="beginner", interested_skills=["web", "data"])
    course = _course(
        category_ids=("web",),
        rating=4.5,
        has_rich_description=True,
        has_will_learn=True,
    )
    # 30 level + 20 category + 18 rating + 10 quality
    assert match_score(course, profile) == 78


def test_partial_level_credit() -> None:
    intermediate = make_profile(current_level="intermediate")
    advanced = make_profile(current_level="advanced")
    assert match_score(_course(level="beginner"), intermediate) == 20
    assert match_score(_course(level="intermediate"), advanced) == 25
    assert match_score(_course(level="advanced"), intermediate) == 0


def test_category_share_rounds_half_up() -> None:
    profile = make_profile(current_level="expert", interested_skills=["a", "b", "c"])
    assert match_score(_course(level="beginner", category_ids=("a",)), profile) == 13
    assert match_score(_course(level="beginner", category_ids=("a", "b")), profile) == 27


def test_rating_is_clamped_and_missing_rating_scores_zero() -> None:
    profile = make_profile(current_level="expert")
    assert match_score(_course(level="beginner", rating=7.0), profile) == 20
    assert match_score(_course(level="beginner", rating=-1.0), profile) == 0
    assert match_score(_course(level="beginner", rating=None), profile) == 0


def test_score_never_exceeds_one_hundred() -> None:
    profile = make_profile(current_level="advanced", interested_skills=["data"])
    course = _course(
        level="advanced",
        category_ids=("data", "data"),
        rating=5.0,
        has_rich_description=True,
        has_will_learn=True,
    )
    assert match_score(course, profile) == 100


def test_ranking_is_descending_and_stable_on_ties() -> None:
    profile = make_profile(current_level="beginner")
    courses = [
        _course("low", rating=1.0),
        _course("tie-a", rating=4.0),
        _course("top", rating=5.0),
        _course("tie-b", rating=4.0),
    ]
    ranked = score_candidates(courses, profile)
    assert [item.candidate.course_id for item in ranked] == ["top", "tie-a", "tie-b", "low"]
    assert [item.rank for item in ranked] == [1, 2, 3, 4]
    assert [item.match_score for item in ranked] == [50, 46, 46, 34]
