"""ORM models backing the catalog, enrollment, and student-profile stores."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _new_id() -> str:
    return str(uuid.uuid4())


class CategoryModel(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(256), nullable=True)


class CourseModel(TimestampMixin, Base):
    __tablename__ = "courses"
    __table_args__ = (Index("ix_courses_status_level", "status", "level"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    sub_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    duration: Mapped[str | None] = mapped_column(String(32), nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    language: Mapped[str | None] = mapped_column(String(16), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="draft", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    will_learn: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    category_ids: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)


class EnrollmentModel(TimestampMixin, Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_student", "student_id"),
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    student_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False
    )
    course_id: Mapped[str] = mapped_column(String(36), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="enrolled", nullable=False)


class StudentProfileModel(TimestampMixin, Base):
    __tablename__ = "student_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    learning_preferences: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    survey_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    survey_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    learning_path: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    regeneration_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_generated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


__all__ = [
    "CategoryModel",
    "CourseModel",
    "EnrollmentModel",
    "StudentProfileModel",
]
