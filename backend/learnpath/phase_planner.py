"""Group annotated courses into ordered, time-boxed phases of rising difficulty."""

from __future__ import annotations

import math
from collections import deque
from typing import Deque, Dict, List, Sequence

from .learning_path import AnnotatedCourse, Phase, PhaseCourse, PlannedPhase, round_half_up
from .preferences import LEVEL_RANK, LEVELS

HOURS_PER_WEEK: Dict[str, float] = {"1-3": 2.0, "4-7": 5.5, "8-15": 11.5, "15+": 20.0}
DEFAULT_HOURS_PER_WEEK = 5.0
DEFAULT_PHASE_COUNT = 3
MAX_PHASES_BY_TIMELINE: Dict[str, int] = {"3-months": 3, "6-months": 4, "1-year+": 5}

# Share of a middle phase reserved for the easier level before filling with the harder one.
EARLY_MIDDLE_BEGINNER_SHARE = 0.3
LATE_MIDDLE_INTERMEDIATE_SHARE = 0.6

DESCRIPTION_SKILL_LIMIT = 3
DEFAULT_SKILLS_TEXT = "các kỹ năng quan trọng"


def hours_per_week(weekly_study_hours: str) -> float:
    return HOURS_PER_WEEK.get(weekly_study_hours, DEFAULT_HOURS_PER_WEEK)


def phase_count(target_completion_time: str, course_count: int) -> int:
    """Timeline-driven phase count, kept to about two courses per phase."""
    if course_count <= 0:
        return 0
    if target_completion_time == "1-month":
        return min(2, course_count)
    limit = MAX_PHASES_BY_TIMELINE.get(target_completion_time)
    if limit is None:
        return min(DEFAULT_PHASE_COUNT, course_count)
    return min(limit, math.ceil(course_count / 2))


def weeks_for_hours(total_hours: float, weekly_study_hours: str) -> int:
    return max(1, math.ceil(total_hours / hours_per_week(weekly_study_hours)))


def days_for_weeks(weeks: float) -> int:
    return math.ceil(weeks * 7)


def format_estimated_time(weeks: float) -> str:
    """Human-readable duration: days under a week, weeks under a month, then months."""
    if weeks < 1:
        return f"{days_for_weeks(weeks)} ngày"
    if weeks == 1:
        return "1 tuần"
    if weeks < 4:
        return f"{int(weeks)} tuần"
    months = int(round_half_up(weeks / 4))
    return f"{months} tháng"


def _level_key(course: AnnotatedCourse) -> str:
    level = course.candidate.level
    return level if level in LEVEL_RANK else "beginner"


def sort_by_progression(courses: Sequence[AnnotatedCourse]) -> List[AnnotatedCourse]:
    return sorted(
        courses,
        key=lambda course: (
            LEVEL_RANK.get(course.candidate.level or "", 0),
            -course.scored.match_score,
            course.priority,
        ),
    )


class _LevelBuckets:
    def __init__(self, ordered: Sequence[AnnotatedCourse]) -> None:
        self._buckets: Dict[str, Deque[AnnotatedCourse]] = {level: deque() for level in LEVELS}
        for course in ordered:
            self._buckets[_level_key(course)].append(course)

    def take(self, level: str, limit: int) -> List[AnnotatedCourse]:
        bucket = self._buckets[level]
        taken: List[AnnotatedCourse] = []
        while bucket and len(taken) < limit:
            taken.append(bucket.popleft())
        return taken

    def take_all(self, level: str) -> List[AnnotatedCourse]:
        return self.take(level, len(self._buckets[level]))

    def fill_lowest(self, phase: List[AnnotatedCourse], size: int) -> None:
        for level in LEVELS:
            if len(phase) >= size:
                return
            phase.extend(self.take(level, size - len(phase)))


def partition(courses: Sequence[AnnotatedCourse], count: int) -> List[List[AnnotatedCourse]]:
    """Split courses into ``count`` groups moving from beginner toward advanced.

    Every course lands in exactly one group: non-last groups are topped up from
    the lowest remaining level and the last group absorbs whatever is left.
    Groups may come back empty when earlier ones consumed everything.
    """
    ordered = sort_by_progression(courses)
    if count <= 0 or not ordered:
        return []
    if count == 1:
        return [ordered]

    size = math.ceil(len(ordered) / count)
    buckets = _LevelBuckets(ordered)
    groups: List[List[AnnotatedCourse]] = []

    for index in range(count):
        group: List[AnnotatedCourse] = []
        if index == count - 1:
            for level in ("advanced", "expert", "intermediate", "beginner"):
                group.extend(buckets.take_all(level))
        elif index == 0:
            group.extend(buckets.take("beginner", size))
            buckets.fill_lowest(group, size)
        else:
            progress = index / (count - 1)
            if progress < 0.5:
                group.extend(buckets.take("beginner", math.floor(size * EARLY_MIDDLE_BEGINNER_SHARE)))
                group.extend(buckets.take("intermediate", size - len(group)))
            else:
                group.extend(buckets.take("intermediate", math.floor(size * LATE_MIDDLE_INTERMEDIATE_SHARE)))
                group.extend(buckets.take("advanced", size - len(group)))
            buckets.fill_lowest(group, size)
        groups.append(group)
    return groups


def skill_names_for(courses: Sequence[AnnotatedCourse]) -> List[str]:
    seen: List[str] = []
    for course in courses:
        for name in course.candidate.category_names:
            if name and name not in seen:
                seen.append(name)
    return seen


def skills_summary(skill_names: Sequence[str]) -> str:
    if not skill_names:
        return DEFAULT_SKILLS_TEXT
    text = ", ".join(skill_names[:DESCRIPTION_SKILL_LIMIT])
    if len(skill_names) > DESCRIPTION_SKILL_LIMIT:
        text += " và nhiều hơn nữa"
    return text


def phase_description(skill_names: Sequence[str], course_count: int) -> str:
    return (
        f"Tập trung vào {skills_summary(skill_names)}. "
        f"Hoàn thành {course_count} khóa học để tiến lên giai đoạn tiếp theo."
    )


def plan_phases(
    courses: Sequence[AnnotatedCourse],
    *,
    target_completion_time: str,
    weekly_study_hours: str,
) -> List[PlannedPhase]:
    """Build untitled phases; the narrator fills titles and rationales afterwards."""
    groups = [
        group
        for group in partition(courses, phase_count(target_completion_time, len(courses)))
        if group
    ]
    planned: List[PlannedPhase] = []
    for order, group in enumerate(groups, start=1):
        total_hours = round_half_up(sum(course.candidate.content_hours for course in group), 1)
        weeks = weeks_for_hours(total_hours, weekly_study_hours)
        skills = skill_names_for(group)
        phase = Phase(
            title="",
            description=phase_description(skills, len(group)),
            phase_rationale="",
            order=order,
            estimated_weeks=weeks,
            estimated_days=days_for_weeks(weeks),
            estimated_time=format_estimated_time(weeks),
            total_hours=total_hours,
            courses=[
                PhaseCourse(
                    course_id=course.candidate.course_id,
                    reason=course.reason,
                    order=position,
                    match_score=course.scored.match_score,
                    estimated_hours=course.candidate.content_hours,
                )
                for position, course in enumerate(group, start=1)
            ],
        )
        planned.append(PlannedPhase(phase=phase, primary_level=_level_key(group[0]), skill_names=skills))
    return planned


__all__ = [
    "HOURS_PER_WEEK",
    "days_for_weeks",
    "format_estimated_time",
    "hours_per_week",
    "partition",
    "phase_count",
    "phase_description",
    "plan_phases",
    "skills_summary",
    "weeks_for_hours",
]
