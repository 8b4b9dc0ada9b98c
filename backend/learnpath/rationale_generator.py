"""Per-course recommendation reasons, written by the text model with a template fallback."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from .learning_path import AnnotatedCourse, CourseCandidate, ScoredCandidate
from .preferences import PreferenceProfile
from .response_parser import align_by_index, validate_entries
from .telemetry import emit_event
from .text_generation import (
    RetryPolicy,
    TextGenerationError,
    TextGenerationPort,
    TextGenerationRequest,
    request_structured_array,
)

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 100
RATIONALE_TEMPERATURE = 0.5
RATIONALE_MAX_TOKENS = 8192
DESCRIPTION_PREVIEW_LENGTH = 200

REASON_LEVEL_LABELS: Dict[str, str] = {
    "beginner": "Cơ bản",
    "intermediate": "Trung cấp",
    "advanced": "Nâng cao",
}
DEFAULT_REASON_LEVEL_LABEL = "Chuyên sâu"

RATIONALE_INSTRUCTIONS = (
    "You are an expert educational advisor. Your role is to explain why specific courses are recommended "
    "for a student based on their learning goals, current level, and interests.\n\n"
    "For each course, provide:\n"
    "1. A clear, personalized reason (1-2 sentences) explaining why this course is suitable\n"
    "2. Focus on how it matches their goals, level, and interests\n"
    "3. Use encouraging and motivating language\n"
    "4. Be specific about what skills or knowledge they'll gain\n\n"
    "CRITICAL: You MUST return ONLY a valid JSON array. No markdown formatting. No code blocks. "
    f"No text outside the JSON array. Each reason should be concise (max {MAX_REASON_LENGTH} characters)."
)


def _truncate_reason(value: str) -> str:
    return value.strip()[:MAX_REASON_LENGTH].strip()


def fallback_reason(candidate: CourseCandidate) -> str:
    level = REASON_LEVEL_LABELS.get(candidate.level or "", DEFAULT_REASON_LEVEL_LABEL)
    categories = ", ".join(candidate.category_names) or "chủ đề này"
    return _truncate_reason(f"Phù hợp với cấp độ {level} & kỹ năng {categories}")


def build_rationale_prompt(
    selected: Sequence[ScoredCandidate],
    profile: PreferenceProfile,
    *,
    student_name: Optional[str] = None,
    skill_names: Sequence[str] = (),
) -> str:
    courses = []
    for index, item in enumerate(selected, start=1):
        candidate = item.candidate
        description = candidate.description[:DESCRIPTION_PREVIEW_LENGTH] or "N/A"
        courses.append(
            f"Course {index}:\n"
            f"- Title: {candidate.title}\n"
            f"- Subtitle: {candidate.sub_title or 'N/A'}\n"
            f"- Level: {candidate.level}\n"
            f"- Description: {description}\n"
            f"- Match Score: {item.match_score}/100"
        )

    return (
        "Thông tin học viên:\n"
        f"Tên: {student_name or 'bạn'}\n"
        f"Trình độ hiện tại: {profile.current_level}\n"
        f"Mục tiêu học tập: {profile.learning_goal or 'nâng cao kỹ năng'}\n"
        f"Mục tiêu cụ thể: {', '.join(profile.objectives) or 'N/A'}\n"
        f"Kỹ năng quan tâm: {', '.join(skill_names) or 'N/A'}\n"
        f"Thời gian học mỗi tuần: {profile.weekly_study_hours} giờ\n"
        f"Thời gian mục tiêu: {profile.target_completion_time}\n\n"
        "Các khóa học được gợi ý:\n"
        + "\n\n".join(courses)
        + "\n\n"
        f"YÊU CẦU: Với mỗi khóa học trên, hãy tạo lý do gợi ý ngắn gọn (tối đa {MAX_REASON_LENGTH} ký tự) "
        "giải thích tại sao khóa học này phù hợp với học viên.\n\n"
        "Trả về CHÍNH XÁC một JSON array với cấu trúc:\n"
        '[\n  {\n    "courseIndex": 0,\n    "reason": "Lý do gợi ý cá nhân hóa ở đây"\n  }\n]\n\n'
        "Quan trọng: Chỉ trả về JSON array, không có markdown, không có code block, "
        "không có text nào khác ngoài JSON array."
    )


class RationaleEntry(BaseModel):
    """One course reason as returned by the model."""

    model_config = ConfigDict(populate_by_name=True)

    course_index: Optional[StrictInt] = Field(default=None, alias="courseIndex")
    reason: StrictStr = ""

    @field_validator("reason")
    @classmethod
    def _limit_reason(cls, value: str) -> str:
        return _truncate_reason(value)


@dataclass(frozen=True)
class RationaleOutcome:
    courses: List[AnnotatedCourse] = field(default_factory=list)
    source: str = "fallback"


class RationaleGenerator:
    """Annotates selected courses with a reason, in selection order."""

    def __init__(
        self,
        port: TextGenerationPort,
        *,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._port = port
        self._policy = policy
        self._sleep = sleep

    async def annotate(
        self,
        selected: Sequence[ScoredCandidate],
        profile: PreferenceProfile,
        *,
        student_name: Optional[str] = None,
        skill_names: Sequence[str] = (),
    ) -> RationaleOutcome:
        if not selected:
            return RationaleOutcome(courses=[], source="fallback")

        request = TextGenerationRequest(
            instructions=RATIONALE_INSTRUCTIONS,
            prompt=build_rationale_prompt(
                selected, profile, student_name=student_name, skill_names=skill_names
            ),
            temperature=RATIONALE_TEMPERATURE,
            max_output_tokens=RATIONALE_MAX_TOKENS,
            stage="rationale",
        )
        try:
            entries = await request_structured_array(
                self._port,
                request,
                expected_length=len(selected),
                policy=self._policy,
                sleep=self._sleep,
            )
        except TextGenerationError as exc:
            logger.warning("Using fallback course reasons (%s): %s", exc.code, exc)
            emit_event("text_generation_fallback", stage="rationale", code=exc.code)
            return RationaleOutcome(courses=self._fallback(selected), source="fallback")

        reasons = align_by_index(validate_entries(RationaleEntry, entries), lambda entry: entry.course_index)
        courses: List[AnnotatedCourse] = []
        for priority, (item, entry) in enumerate(zip(selected, reasons), start=1):
            reason = entry.reason or fallback_reason(item.candidate)
            courses.append(AnnotatedCourse(scored=item, reason=reason, priority=priority))
        return RationaleOutcome(courses=courses, source="ai")

    @staticmethod
    def _fallback(selected: Sequence[ScoredCandidate]) -> List[AnnotatedCourse]:
        return [
            AnnotatedCourse(scored=item, reason=fallback_reason(item.candidate), priority=priority)
            for priority, item in enumerate(selected, start=1)
        ]


__all__ = [
    "RATIONALE_INSTRUCTIONS",
    "RationaleEntry",
    "RationaleGenerator",
    "RationaleOutcome",
    "build_rationale_prompt",
    "fallback_reason",
]
