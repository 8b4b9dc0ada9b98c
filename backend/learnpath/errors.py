"""Domain errors raised by the learning path pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class LearningPathError(RuntimeError):
    """Base class for errors the HTTP layer knows how to report."""

    def to_detail(self) -> Dict[str, Any]:
        return {"message": str(self)}


class PlanValidationError(LearningPathError):
    """Survey fields or a caller-submitted plan failed validation; nothing was persisted."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Dict[str, str]]] = None,
        *,
        requires_survey: bool = False,
    ) -> None:
        super().__init__(message)
        self.errors = list(errors or [])
        self.requires_survey = requires_survey

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.errors:
            detail["errors"] = self.errors
        if self.requires_survey:
            detail["requires_survey"] = True
        return detail


class PlanNotFoundError(LearningPathError):
    """No usable catalog match or no stored plan, with a remedial-action hint."""

    def __init__(
        self,
        message: str,
        *,
        requires_survey: bool = False,
        requires_generation: bool = False,
    ) -> None:
        super().__init__(message)
        self.requires_survey = requires_survey
        self.requires_generation = requires_generation

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.requires_survey:
            detail["requires_survey"] = True
        if self.requires_generation:
            detail["requires_generation"] = True
        return detail


class PlanPersistenceError(LearningPathError):
    """Writing the learning path aggregate failed; the transaction was rolled back."""


__all__ = [
    "LearningPathError",
    "PlanNotFoundError",
    "PlanPersistenceError",
    "PlanValidationError",
]
