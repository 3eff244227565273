"""Pydantic schemas for student and creator dashboards."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from learnhub.courses.models import CourseStatus


class StudentCourseSummary(BaseModel):
    course_id: UUID
    title: str
    slug: str
    total_items: int
    progress_percent: int = Field(ge=0, le=100)
    is_completed: bool
    enrolled_at: datetime
    last_completed_at: datetime | None = None


class StudentDashboardResponse(BaseModel):
    """A student's courses with progress computed from current outlines."""

    courses: list[StudentCourseSummary]
    enrolled_count: int
    completed_count: int
    in_progress_count: int
    average_progress: float


class CreatorCourseStats(BaseModel):
    course_id: UUID
    title: str
    status: CourseStatus
    total_items: int
    enrollment_count: int
    completion_count: int
    average_progress: float
    recent_enrollments: int = Field(description="Enrollments within recent_days")


class CreatorDashboardResponse(BaseModel):
    courses: list[CreatorCourseStats]
    total_courses: int
    total_enrollments: int
    total_completions: int
    recent_enrollments: int
    recent_days: int
