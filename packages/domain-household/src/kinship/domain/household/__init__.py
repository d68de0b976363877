"""Family content owned by one tenant, and the billing guard.

Chores are the reference tenant-owned content type: they are read and
written only through the tenant-scoping enforcer. Billing routes gate every
gateway call on an age-gated ``billing:*`` action.
"""

from kinship.domain.household.chore import ChorePriority, ChoreRecord, ChoreStatus
from kinship.domain.household.chore_service import ChoreService

__all__ = [
    "ChorePriority",
    "ChoreRecord",
    "ChoreService",
    "ChoreStatus",
]
