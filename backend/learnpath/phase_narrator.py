"""Phase titles, rationales and durations from the text model, with template fallbacks."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Annotated, Any, Awaitable, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator

from .learning_path import Phase, PlannedPhase
from .phase_planner import days_for_weeks, format_estimated_time, skills_summary
from .preferences import PreferenceProfile, TIMELINE_LABELS
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

NARRATION_TEMPERATURE = 0.7
NARRATION_MAX_TOKENS = 4096
MAX_TITLE_LENGTH = 120
MAX_RATIONALE_LENGTH = 300

PHASE_TITLE_LABELS: Dict[str, str] = {
    "beginner": "Nền Tảng Cơ Bản",
    "intermediate": "Phát Triển Kỹ Năng",
    "advanced": "Nâng Cao Chuyên Môn",
    "expert": "Chuyên Gia",
}
WEEKLY_HOURS_DETAIL: Dict[str, str] = {
    "1-3": "~2 giờ",
    "4-7": "~5.5 giờ",
    "8-15": "~11.5 giờ",
    "15+": "~20 giờ",
}
PROMPT_TIMELINE_DETAIL: Dict[str, str] = {**TIMELINE_LABELS, "1-year+": "1 năm hoặc lâu hơn"}

NARRATION_INSTRUCTIONS = (
    "You are an expert educational advisor. Your role is to create meaningful phase titles, explain WHY each "
    "learning phase is suitable for a student, and recommend realistic TIME DURATION based on their learning "
    "goals, current level, weekly study commitment, and the phase's content.\n\n"
    "For each phase, provide:\n"
    "1. A descriptive, engaging TITLE (4-6 words in Vietnamese) that captures the essence of this learning stage\n"
    "2. A clear, personalized RATIONALE (1-2 sentences, max 150 characters) explaining WHY this phase is "
    "appropriate NOW\n"
    "3. A realistic ESTIMATED_WEEKS (integer) for completing this phase based on the student's weekly study "
    "hours, the total content hours in the phase, their current level and their overall target timeline\n\n"
    "Write titles and rationales in Vietnamese, with encouraging language that makes the stages feel "
    "progressive (foundation, development, mastery).\n\n"
    "CRITICAL: You MUST return ONLY a valid JSON array. No markdown formatting. No code blocks. "
    "No text outside the JSON array.\n"
    'Response format: [{"phaseIndex": 0, "title": "...", "rationale": "...", "estimatedWeeks": 4}, ...]'
)


def fallback_title(order: int, primary_level: str) -> str:
    return f"Giai Đoạn {order}: {PHASE_TITLE_LABELS.get(primary_level, 'Học Tập')}"


def fallback_rationale(
    index: int,
    total: int,
    profile: PreferenceProfile,
    skill_names: Sequence[str] = (),
) -> str:
    """Template rationale keyed on the phase's position in the path."""
    skills = skills_summary(skill_names)
    if index == 0:
        if profile.current_level == "beginner":
            return (
                f"Bạn đang ở trình độ beginner nên cần xây dựng nền tảng vững chắc về {skills} "
                "trước khi học nâng cao."
            )
        if profile.current_level == "intermediate":
            timeline = TIMELINE_LABELS.get(profile.target_completion_time, profile.target_completion_time)
            return f"Bạn đã có nền tảng, giai đoạn này giúp bạn làm chủ {skills} để đạt mục tiêu trong {timeline}."
        return (
            f"Với trình độ {profile.current_level}, bạn sẽ nhanh chóng nắm vững {skills} "
            "và tiến lên giai đoạn nâng cao."
        )
    if index == total - 1:
        if profile.learning_goal:
            return (
                "Giai đoạn cuối hoàn thiện kỹ năng chuyên môn. "
                f'Sau đây bạn đã sẵn sàng cho "{profile.learning_goal}".'
            )
        return "Giai đoạn cuối hoàn thiện kỹ năng chuyên môn, giúp bạn đạt được mục tiêu nghề nghiệp."
    return f"Sau khi nắm vững cơ bản, bạn sẵn sàng phát triển kỹ năng {skills} để tiến gần hơn đến mục tiêu."


def build_narration_prompt(
    planned: Sequence[PlannedPhase],
    profile: PreferenceProfile,
    *,
    student_name: Optional[str] = None,
) -> str:
    weekly_detail = WEEKLY_HOURS_DETAIL.get(profile.weekly_study_hours, f"{profile.weekly_study_hours} giờ")
    timeline_detail = PROMPT_TIMELINE_DETAIL.get(profile.target_completion_time, profile.target_completion_time)
    blocks = []
    for index, item in enumerate(planned, start=1):
        phase = item.phase
        blocks.append(
            f"Phase {index}:\n"
            f"- Description: {phase.description}\n"
            f"- Total Content Hours: {phase.total_hours:g}h\n"
            f"- Number of Courses: {len(phase.courses)}\n"
            f"- Primary Level: {item.primary_level}\n"
            f"- Order: {phase.order} of {len(planned)}\n"
            f"- Current Estimated Time: {phase.estimated_time} (có thể điều chỉnh)"
        )

    return (
        "Thông tin học viên:\n"
        f"Tên: {student_name or 'bạn'}\n"
        f"Trình độ hiện tại: {profile.current_level}\n"
        f"Mục tiêu học tập: {profile.learning_goal or 'nâng cao kỹ năng'}\n"
        f"Thời gian học mỗi tuần: {profile.weekly_study_hours} giờ ({weekly_detail})\n"
        f"Thời gian mục tiêu hoàn thành TOÀN BỘ lộ trình: {timeline_detail}\n"
        f"Tổng số giai đoạn: {len(planned)}\n\n"
        "Các giai đoạn học tập:\n"
        + "\n\n".join(blocks)
        + "\n\n"
        "YÊU CẦU: Với mỗi giai đoạn trên, hãy tạo TITLE (4-6 từ tiếng Việt), RATIONALE (1-2 câu, tối đa "
        "150 ký tự, giải thích TẠI SAO giai đoạn này phù hợp NGAY BÂY GIỜ) và ESTIMATED_WEEKS (số tuần "
        f"thực tế, số nguyên) dựa trên số giờ nội dung, thời gian học mỗi tuần ({weekly_detail}), trình độ "
        f"hiện tại ({profile.current_level}) và mục tiêu tổng thể ({timeline_detail}).\n\n"
        "Trả về CHÍNH XÁC một JSON array với cấu trúc:\n"
        '[\n  {\n    "phaseIndex": 0,\n    "title": "Tiêu đề giai đoạn (4-6 từ)",\n'
        '    "rationale": "Lý do cá nhân hóa (max 150 chars)",\n    "estimatedWeeks": 4\n  }\n]'
    )


class NarrationEntry(BaseModel):
    """One phase narration as returned by the model."""

    model_config = ConfigDict(populate_by_name=True)

    phase_index: Optional[StrictInt] = Field(default=None, alias="phaseIndex")
    title: StrictStr = ""
    rationale: StrictStr = ""
    estimated_weeks: Optional[Annotated[float, Field(gt=0, allow_inf_nan=False)]] = Field(
        default=None, alias="estimatedWeeks"
    )

    @field_validator("title")
    @classmethod
    def _limit_title(cls, value: str) -> str:
        return value.strip()[:MAX_TITLE_LENGTH].strip()

    @field_validator("rationale")
    @classmethod
    def _limit_rationale(cls, value: str) -> str:
        return value.strip()[:MAX_RATIONALE_LENGTH].strip()

    @field_validator("estimated_weeks", mode="before")
    @classmethod
    def _reject_booleans(cls, value: Any) -> Any:
        # JSON true/false would otherwise coerce to 1.0/0.0.
        if isinstance(value, bool):
            raise ValueError("estimatedWeeks must be a number")
        return value

    @property
    def weeks(self) -> Optional[int]:
        if self.estimated_weeks is None:
            return None
        return max(1, math.ceil(self.estimated_weeks))


def _with_weeks(phase: Phase, weeks: int, *, title: str, rationale: str) -> Phase:
    return phase.model_copy(
        update={
            "title": title,
            "phase_rationale": rationale,
            "estimated_weeks": weeks,
            "estimated_days": days_for_weeks(weeks),
            "estimated_time": format_estimated_time(weeks),
        }
    )


@dataclass(frozen=True)
class NarrationOutcome:
    phases: List[Phase] = field(default_factory=list)
    source: str = "fallback"


class PhaseNarrator:
    """Fills in title, rationale and final duration for each planned phase."""

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

    async def narrate(
        self,
        planned: Sequence[PlannedPhase],
        profile: PreferenceProfile,
        *,
        student_name: Optional[str] = None,
    ) -> NarrationOutcome:
        if not planned:
            return NarrationOutcome(phases=[], source="fallback")

        request = TextGenerationRequest(
            instructions=NARRATION_INSTRUCTIONS,
            prompt=build_narration_prompt(planned, profile, student_name=student_name),
            temperature=NARRATION_TEMPERATURE,
            max_output_tokens=NARRATION_MAX_TOKENS,
            stage="narration",
        )
        try:
            entries = await request_structured_array(
                self._port,
                request,
                expected_length=len(planned),
                policy=self._policy,
                sleep=self._sleep,
            )
        except TextGenerationError as exc:
            logger.warning("Using fallback phase narration (%s): %s", exc.code, exc)
            emit_event("text_generation_fallback", stage="narration", code=exc.code)
            return NarrationOutcome(phases=self._fallback(planned, profile), source="fallback")

        narrations = align_by_index(validate_entries(NarrationEntry, entries), lambda entry: entry.phase_index)
        total = len(planned)
        phases: List[Phase] = []
        for index, (item, entry) in enumerate(zip(planned, narrations)):
            weeks = entry.weeks
            if weeks is None:
                weeks = item.phase.estimated_weeks
            elif weeks != item.phase.estimated_weeks:
                logger.debug(
                    "Phase %d duration set to %d weeks by the model (computed %d)",
                    item.phase.order,
                    weeks,
                    item.phase.estimated_weeks,
                )
            phases.append(
                _with_weeks(
                    item.phase,
                    weeks,
                    title=entry.title or fallback_title(item.phase.order, item.primary_level),
                    rationale=entry.rationale or fallback_rationale(index, total, profile, item.skill_names),
                )
            )
        return NarrationOutcome(phases=phases, source="ai")

    @staticmethod
    def _fallback(planned: Sequence[PlannedPhase], profile: PreferenceProfile) -> List[Phase]:
        total = len(planned)
        return [
            _with_weeks(
                item.phase,
                item.phase.estimated_weeks,
                title=fallback_title(item.phase.order, item.primary_level),
                rationale=fallback_rationale(index, total, profile, item.skill_names),
            )
            for index, item in enumerate(planned)
        ]


__all__ = [
    "NARRATION_INSTRUCTIONS",
    "NarrationEntry",
    "NarrationOutcome",
    "PhaseNarrator",
    "build_narration_prompt",
    "fallback_rationale",
    "fallback_title",
]
