"""Request dependencies shared by the HTTP routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

from .errors import LearningPathError, PlanNotFoundError, PlanValidationError

STUDENT_ID_HEADER = "X-Student-Id"


def current_student_id(x_student_id: Optional[str] = Header(default=None, alias=STUDENT_ID_HEADER)) -> str:
    """The upstream gateway authenticates the student and forwards their id."""
    student_id = (x_student_id or "").strip()
    if not student_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Authentication required."},
        )
    return student_id


def http_error(exc: LearningPathError) -> HTTPException:
    if isinstance(exc, PlanValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, PlanNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=exc.to_detail())


__all__ = ["STUDENT_ID_HEADER", "current_student_id", "http_error"]
