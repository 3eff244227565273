"""Dashboard aggregation over courses and enrollments.

Progress figures are always recomputed from each course's current outline,
so dashboards never show stale cached percentages.
"""

from datetime import timedelta
from uuid import UUID

import structlog

from learnhub.courses.models import CourseStatus
from learnhub.courses.service import CourseService
from learnhub.dashboard.schemas import (
    CreatorCourseStats,
    CreatorDashboardResponse,
    StudentCourseSummary,
    StudentDashboardResponse,
)
from learnhub.enrollments.models import MAX_PROGRESS
from learnhub.enrollments.service import EnrollmentService
from learnhub.utils import utcnow


logger = structlog.get_logger(__name__)

DEFAULT_RECENT_DAYS = 30


def _average(values: list[int]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


class DashboardService:
    """Read-only aggregation for the student and creator dashboards."""

    def __init__(
        self, course_service: CourseService, enrollment_service: EnrollmentService
    ):
        self.course_service = course_service
        self.enrollment_service = enrollment_service

    async def get_student_dashboard(self, student_id: UUID) -> StudentDashboardResponse:
        """Per-course progress of a student.

        Built from the authoritative enrollments table; the per-student index
        is repaired as a side effect.
        """
        enrollments = await self.enrollment_service.list_student_enrollments(
            student_id, reconcile=True
        )

        summaries: list[StudentCourseSummary] = []
        for enrollment in enrollments:
            course = await self.course_service.get_course(enrollment.course_id)
            if course is None:
                logger.warning(
                    "dashboard_course_missing",
                    course_id=str(enrollment.course_id),
                    student_id=str(student_id),
                )
                continue

            progress = enrollment.compute_progress(course)
            summaries.append(
                StudentCourseSummary(
                    course_id=course.id,
                    title=course.title,
                    slug=course.slug,
                    total_items=len(course.active_item_ids()),
                    progress_percent=progress,
                    is_completed=progress >= MAX_PROGRESS,
                    enrolled_at=enrollment.enrolled_at,
                    last_completed_at=enrollment.last_completed_at,
                )
            )

        summaries.sort(key=lambda s: s.enrolled_at, reverse=True)
        completed = sum(1 for s in summaries if s.is_completed)
        return StudentDashboardResponse(
            courses=summaries,
            enrolled_count=len(summaries),
            completed_count=completed,
            in_progress_count=len(summaries) - completed,
            average_progress=_average([s.progress_percent for s in summaries]),
        )

    async def get_creator_dashboard(
        self, creator_id: UUID, recent_days: int = DEFAULT_RECENT_DAYS
    ) -> CreatorDashboardResponse:
        since = utcnow() - timedelta(days=recent_days)
        owned = await self.course_service.list_courses_by_creator(creator_id)

        stats: list[CreatorCourseStats] = []
        for summary in owned:
            course = await self.course_service.get_course(summary.id)
            if course is None:
                continue

            enrollments = await self.enrollment_service.list_course_enrollments(course.id)
            progress = [e.compute_progress(course) for e in enrollments]
            stats.append(
                CreatorCourseStats(
                    course_id=course.id,
                    title=course.title,
                    status=CourseStatus(course.status),
                    total_items=len(course.active_item_ids()),
                    enrollment_count=len(enrollments),
                    completion_count=sum(1 for p in progress if p >= MAX_PROGRESS),
                    average_progress=_average(progress),
                    recent_enrollments=sum(
                        1 for e in enrollments if e.enrolled_at >= since
                    ),
                )
            )

        logger.debug(
            "creator_dashboard_built", creator_id=str(creator_id), courses=len(stats)
        )
        return CreatorDashboardResponse(
            courses=stats,
            total_courses=len(stats),
            total_enrollments=sum(s.enrollment_count for s in stats),
            total_completions=sum(s.completion_count for s in stats),
            recent_enrollments=sum(s.recent_enrollments for s in stats),
            recent_days=recent_days,
        )
