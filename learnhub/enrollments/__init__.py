"""Enrollment and progress tracking module.

Provides:
- Enrollment with duplicate protection
- Idempotent item completion
- Progress recomputed against the current course outline
- Per-student index with reconciliation
"""

from .models import ENROLLMENTS_TABLES_CQL, Enrollment, calculate_progress


__all__ = ["ENROLLMENTS_TABLES_CQL", "Enrollment", "calculate_progress"]
