"""Community membership and roles module.

Provides:
- Communities with public/private visibility
- Idempotent membership grants and self-service join
- Creator protection: the creator can never leave
- Explicit admin roles, separate from the creator
"""

from .models import COMMUNITIES_TABLES_CQL, Community, MemberRole, Membership


__all__ = ["COMMUNITIES_TABLES_CQL", "Community", "MemberRole", "Membership"]
