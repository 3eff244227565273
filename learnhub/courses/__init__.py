"""Course authoring module.

Provides:
- Course CRUD with soft delete and catalog listing
- Ordered sections and content items
- Cached total item count with explicit recount
- Reviews
"""

from .models import (
    COURSES_TABLES_CQL,
    ContentItem,
    Course,
    CourseLevel,
    CourseReview,
    CourseStatus,
    Section,
)


__all__ = [
    "COURSES_TABLES_CQL",
    "ContentItem",
    "Course",
    "CourseLevel",
    "CourseReview",
    "CourseStatus",
    "Section",
]
