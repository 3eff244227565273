"""Enrollment and progress tracking service layer.

Business logic for:
- Enrolling and unenrolling students
- Marking content items complete (idempotent)
- Computing progress against the course's current outline
- Bulk recompute of cached progress after outline changes
- Reconciling the per-student index with the authoritative table

All writes for one course are serialized through the course's aggregate lock.
Enrollment inserts are also guarded by a lightweight transaction so that
concurrent API processes cannot create duplicates.
"""

from typing import TYPE_CHECKING, NamedTuple
from uuid import UUID

import structlog

from learnhub.core.exceptions import DomainError
from learnhub.courses.service import COURSE_LOCK, CourseService, ItemNotFoundError
from learnhub.enrollments.models import Enrollment, calculate_progress


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.core.locks import AggregateLocks

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class EnrollmentError(DomainError):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        super().__init__(message, code)


class AlreadyEnrolledError(EnrollmentError):
    """Student already has an enrollment in this course."""

    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class NotEnrolledError(EnrollmentError):
    """Student has no enrollment in this course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class ProgressSnapshot(NamedTuple):
    """Progress computed from current state."""

    progress_percent: int
    completed_count: int
    total_items: int


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for enrollments and per-student progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        locks: "AggregateLocks",
        course_service: CourseService,
    ):
        """Initialize with Cassandra session, aggregate locks and course access."""
        self.session = session
        self.keyspace = keyspace
        self.locks = locks
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments (authoritative)
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND student_id = ?
        """)
        self._get_course_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._get_enrollments_for_student = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE student_id = ?"
        )
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, student_id, enrolled_at, completed_items, progress_percent,
             last_completed_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._add_completed_item = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET completed_items = completed_items + ?, progress_percent = ?,
                last_completed_at = ?
            WHERE course_id = ? AND student_id = ?
        """)
        self._update_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments SET progress_percent = ?
            WHERE course_id = ? AND student_id = ?
        """)
        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND student_id = ?
        """)

        # Enrollments by student (lookup)
        self._get_student_index = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments_by_student WHERE student_id = ?"
        )
        self._upsert_student_index = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_student
            (student_id, course_id, enrolled_at, progress_percent)
            VALUES (?, ?, ?, ?)
        """)
        self._delete_student_index = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_student
            WHERE student_id = ? AND course_id = ?
        """)

    async def _write_student_index(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._upsert_student_index,
            [
                enrollment.student_id,
                enrollment.course_id,
                enrollment.enrolled_at,
                enrollment.progress_percent,
            ],
        )

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll(self, course_id: UUID, student_id: UUID) -> Enrollment:
        """Enroll a student with an empty completed set and progress 0.

        Raises:
            AggregateNotFoundError: If the course is missing or deleted
            AlreadyEnrolledError: If the student is already enrolled
        """
        async with self.locks.hold(COURSE_LOCK, course_id):
            await self.course_service.require_course(course_id)

            if await self.get_enrollment(course_id, student_id) is not None:
                raise AlreadyEnrolledError

            enrollment = Enrollment(course_id=course_id, student_id=student_id)
            result = await self.session.aexecute(
                self._insert_enrollment,
                [
                    enrollment.course_id,
                    enrollment.student_id,
                    enrollment.enrolled_at,
                    enrollment.completed_items,
                    enrollment.progress_percent,
                    enrollment.last_completed_at,
                ],
            )
            if not result.was_applied:
                # Another process inserted between our read and the LWT
                raise AlreadyEnrolledError

            await self._write_student_index(enrollment)

        logger.info("student_enrolled", course_id=str(course_id), student_id=str(student_id))
        return enrollment

    async def unenroll(self, course_id: UUID, student_id: UUID) -> None:
        """Remove the enrollment record entirely.

        Raises:
            NotEnrolledError: If the student is not enrolled
        """
        async with self.locks.hold(COURSE_LOCK, course_id):
            if await self.get_enrollment(course_id, student_id) is None:
                raise NotEnrolledError

            await self.session.aexecute(self._delete_enrollment, [course_id, student_id])
            await self.session.aexecute(
                self._delete_student_index, [student_id, course_id]
            )

        logger.info(
            "student_unenrolled", course_id=str(course_id), student_id=str(student_id)
        )

    async def get_enrollment(self, course_id: UUID, student_id: UUID) -> Enrollment | None:
        """Get enrollment by course and student."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, student_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def require_enrollment(self, course_id: UUID, student_id: UUID) -> Enrollment:
        enrollment = await self.get_enrollment(course_id, student_id)
        if enrollment is None:
            raise NotEnrolledError
        return enrollment

    # ==========================================================================
    # Progress Operations
    # ==========================================================================

    async def mark_item_complete(
        self, course_id: UUID, student_id: UUID, item_id: UUID
    ) -> int:
        """Mark an item complete and return the recomputed progress.

        Re-marking an already completed item is not an error; progress is
        still recomputed against the current outline.

        Raises:
            AggregateNotFoundError: If the course is missing or deleted
            NotEnrolledError: If the student is not enrolled
            ItemNotFoundError: If the item is not active in an active section
        """
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.course_service.require_course(course_id)
            enrollment = await self.require_enrollment(course_id, student_id)

            if course.find_active_item(item_id) is None:
                raise ItemNotFoundError

            previous = enrollment.progress_percent
            newly_completed = enrollment.mark_item_complete(item_id)
            progress = enrollment.refresh_progress(course)

            if newly_completed or progress != previous:
                await self.session.aexecute(
                    self._add_completed_item,
                    [
                        {item_id},
                        progress,
                        enrollment.last_completed_at,
                        course_id,
                        student_id,
                    ],
                )
                await self._write_student_index(enrollment)

        logger.info(
            "item_completed",
            course_id=str(course_id),
            student_id=str(student_id),
            item_id=str(item_id),
            newly_completed=newly_completed,
            progress=progress,
        )
        return progress

    async def get_progress_snapshot(
        self, course_id: UUID, student_id: UUID
    ) -> ProgressSnapshot:
        """Recompute progress from the current outline without writing.

        Raises:
            AggregateNotFoundError: If the course is missing or deleted
            NotEnrolledError: If the student is not enrolled
        """
        course = await self.course_service.require_course(course_id)
        enrollment = await self.require_enrollment(course_id, student_id)

        active_ids = course.active_item_ids()
        completed = len(enrollment.completed_items & active_ids)
        return ProgressSnapshot(
            progress_percent=calculate_progress(completed, len(active_ids)),
            completed_count=completed,
            total_items=len(active_ids),
        )

    async def compute_progress(self, course_id: UUID, student_id: UUID) -> int:
        """Fresh progress percentage; the cached value is ignored."""
        snapshot = await self.get_progress_snapshot(course_id, student_id)
        return snapshot.progress_percent

    async def recompute_course_progress(self, course_id: UUID) -> tuple[int, int]:
        """Rewrite cached progress of every enrollment in a course.

        Returns:
            Tuple of (updated, total_enrollments)
        """
        async with self.locks.hold(COURSE_LOCK, course_id):
            course = await self.course_service.require_course(course_id)
            enrollments = await self.list_course_enrollments(course_id)

            updated = 0
            for enrollment in enrollments:
                previous = enrollment.progress_percent
                if enrollment.refresh_progress(course) == previous:
                    continue
                await self.session.aexecute(
                    self._update_progress,
                    [enrollment.progress_percent, course_id, enrollment.student_id],
                )
                await self._write_student_index(enrollment)
                updated += 1

        logger.info(
            "course_progress_recomputed",
            course_id=str(course_id),
            updated=updated,
            total=len(enrollments),
        )
        return updated, len(enrollments)

    # ==========================================================================
    # Listing
    # ==========================================================================

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        """All enrollments of a course (authoritative table)."""
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_student_enrollments(
        self, student_id: UUID, reconcile: bool = False
    ) -> list[Enrollment]:
        """A student's enrollments.

        By default reads the denormalized index, whose rows carry no
        completed-item sets. With ``reconcile`` the authoritative table is
        queried instead and the index is repaired to match it.
        """
        if reconcile:
            return await self.reconcile_student_index(student_id)

        rows = await self.session.aexecute(self._get_student_index, [student_id])
        return [
            Enrollment(
                course_id=row.course_id,
                student_id=row.student_id,
                enrolled_at=row.enrolled_at,
                progress_percent=row.progress_percent or 0,
            )
            for row in rows
        ]

    async def reconcile_student_index(self, student_id: UUID) -> list[Enrollment]:
        """Make ``enrollments_by_student`` match the enrollments table.

        Missing or stale index rows are rewritten; index rows without an
        enrollment behind them are deleted.

        Returns:
            The authoritative enrollments of the student.
        """
        rows = await self.session.aexecute(
            self._get_enrollments_for_student, [student_id]
        )
        enrollments = [Enrollment.from_row(row) for row in rows]

        index_rows = await self.session.aexecute(self._get_student_index, [student_id])
        indexed = {row.course_id: row for row in index_rows}

        repaired = 0
        for enrollment in enrollments:
            row = indexed.pop(enrollment.course_id, None)
            if row is None or (row.progress_percent or 0) != enrollment.progress_percent:
                await self._write_student_index(enrollment)
                repaired += 1

        for orphan_course_id in indexed:
            await self.session.aexecute(
                self._delete_student_index, [student_id, orphan_course_id]
            )

        if repaired or indexed:
            logger.warning(
                "student_index_reconciled",
                student_id=str(student_id),
                repaired=repaired,
                removed=len(indexed),
            )
        return enrollments
