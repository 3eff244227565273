"""Database models for enrollments and progress.

Cassandra table definitions for:
- Enrollments: one row per (course, student), authoritative
- Enrollments by student: denormalized "my courses" index
- Secondary index on enrollments.student_id for reconciliation reads

Architecture: dual-write. The enrollment row is written first; the index row
is a separate write and may lag behind it. Reads that must be exact go to
the enrollments table.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from learnhub.utils import ensure_utc_aware, utcnow


if TYPE_CHECKING:
    from learnhub.courses.models import Course


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by course: "who is enrolled here and how far along?"
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    student_id UUID,
    enrolled_at TIMESTAMP,
    completed_items SET<UUID>,
    progress_percent INT,
    last_completed_at TIMESTAMP,
    PRIMARY KEY (course_id, student_id)
)
"""

# Lookup: "which courses is this student enrolled in?"
ENROLLMENTS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_student (
    student_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    progress_percent INT,
    PRIMARY KEY (student_id, course_id)
)
"""

# Reconciliation reads query the authoritative table by student
ENROLLMENTS_STUDENT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_student_idx
ON {keyspace}.enrollments (student_id)
"""

ENROLLMENTS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_STUDENT_TABLE_CQL,
    ENROLLMENTS_STUDENT_INDEX_CQL,
]


# ==============================================================================
# Progress arithmetic
# ==============================================================================

MAX_PROGRESS = 100


def calculate_progress(completed_count: int, total_items: int) -> int:
    """Percentage of completed items, rounded half up and clamped to [0, 100].

    A course without items has progress 0. More completions than items
    (a stale total) yields exactly 100.

    Examples:
        >>> calculate_progress(2, 4)
        50
        >>> calculate_progress(1, 3)
        33
        >>> calculate_progress(5, 3)
        100
        >>> calculate_progress(0, 0)
        0
    """
    if total_items <= 0 or completed_count <= 0:
        return 0
    ratio = Decimal(completed_count * 100) / Decimal(total_items)
    percent = int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return min(MAX_PROGRESS, percent)


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """One student's enrollment in one course.

    Attributes:
        course_id: Course UUID (partition key)
        student_id: Student UUID
        enrolled_at: Enrollment timestamp
        completed_items: IDs of items the student marked complete. May contain
            items that were later removed from the course.
        progress_percent: Cached progress as of the last write
        last_completed_at: Timestamp of the last completion
    """

    def __init__(
        self,
        course_id: UUID,
        student_id: UUID,
        enrolled_at: datetime | None = None,
        completed_items: set[UUID] | None = None,
        progress_percent: int = 0,
        last_completed_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.student_id = student_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utcnow()
        self.completed_items: set[UUID] = set(completed_items or ())
        self.progress_percent = progress_percent
        self.last_completed_at = ensure_utc_aware(last_completed_at)

    @property
    def is_completed(self) -> bool:
        return self.progress_percent >= MAX_PROGRESS

    def mark_item_complete(self, item_id: UUID) -> bool:
        """Add an item to the completed set.

        Returns:
            True if the item was newly added, False if already complete.
        """
        if item_id in self.completed_items:
            return False
        self.completed_items.add(item_id)
        self.last_completed_at = utcnow()
        return True

    def compute_progress(self, course: "Course") -> int:
        """Progress against the course's current active items.

        Completions of removed items are ignored.
        """
        active_ids = course.active_item_ids()
        return calculate_progress(len(self.completed_items & active_ids), len(active_ids))

    def refresh_progress(self, course: "Course") -> int:
        """Recompute and cache progress; returns the new value."""
        self.progress_percent = self.compute_progress(course)
        return self.progress_percent

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            student_id=row.student_id,
            enrolled_at=row.enrolled_at,
            # Cassandra returns None for an empty set
            completed_items=set(row.completed_items or ()),
            progress_percent=row.progress_percent or 0,
            last_completed_at=row.last_completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "student_id": self.student_id,
            "enrolled_at": self.enrolled_at,
            "completed_items": sorted(self.completed_items, key=str),
            "progress_percent": self.progress_percent,
            "last_completed_at": self.last_completed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment course={self.course_id} student={self.student_id} "
            f"{self.progress_percent}%>"
        )
