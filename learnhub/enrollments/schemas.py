"""Pydantic schemas for enrollments and progress."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learnhub.enrollments.models import Enrollment


class EnrollmentResponse(BaseModel):
    """Enrollment with its progress."""

    course_id: UUID
    student_id: UUID
    enrolled_at: datetime
    completed_items: list[UUID] = []
    progress_percent: int = Field(ge=0, le=100)
    is_completed: bool = False
    last_completed_at: datetime | None = None

    @classmethod
    def from_entity(
        cls, enrollment: Enrollment, progress: int | None = None
    ) -> "EnrollmentResponse":
        """Build a response, optionally overriding the cached progress."""
        percent = enrollment.progress_percent if progress is None else progress
        return cls(
            course_id=enrollment.course_id,
            student_id=enrollment.student_id,
            enrolled_at=enrollment.enrolled_at,
            completed_items=sorted(enrollment.completed_items, key=str),
            progress_percent=percent,
            is_completed=percent >= 100,
            last_completed_at=enrollment.last_completed_at,
        )


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int


class ProgressResponse(BaseModel):
    """Freshly computed progress."""

    course_id: UUID
    student_id: UUID
    progress_percent: int = Field(ge=0, le=100)
    completed_count: int = Field(description="Completed items still active")
    total_items: int


class MarkCompleteResponse(BaseModel):
    course_id: UUID
    item_id: UUID
    progress_percent: int = Field(ge=0, le=100)


class RecomputeResponse(BaseModel):
    course_id: UUID
    updated: int = Field(description="Enrollments whose cached progress changed")
    total_enrollments: int
