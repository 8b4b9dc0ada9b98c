"""Learning path generation and retrieval endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from .dependencies import current_student_id, http_error
from .errors import LearningPathError
from .learning_path import HydratedLearningPath
from .learning_path_service import LearningPathService, get_learning_path_service
from .payload_ingestor import is_custom_plan

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])
logger = logging.getLogger(__name__)


class LearningPathResponse(BaseModel):
    success: bool = True
    learning_path: HydratedLearningPath
    warnings: Optional[List[str]] = None


@router.post("/generate", response_model=LearningPathResponse)
async def generate_learning_path(
    payload: Optional[Dict[str, Any]] = Body(default=None),
    student_id: str = Depends(current_student_id),
    service: LearningPathService = Depends(get_learning_path_service),
) -> LearningPathResponse:
    try:
        if is_custom_plan(payload):
            result = service.ingest(student_id, payload or {})
        else:
            result = await service.generate(student_id)
    except LearningPathError as exc:
        logger.info("Learning path request for %s rejected: %s", student_id, exc)
        raise http_error(exc) from exc

    return LearningPathResponse(
        learning_path=result.learning_path,
        warnings=result.warnings or None,
    )


@router.get("/learning-path", response_model=LearningPathResponse)
def read_learning_path(
    student_id: str = Depends(current_student_id),
    service: LearningPathService = Depends(get_learning_path_service),
) -> LearningPathResponse:
    try:
        path = service.read(student_id)
    except LearningPathError as exc:
        raise http_error(exc) from exc
    return LearningPathResponse(learning_path=path)


__all__ = ["router"]
