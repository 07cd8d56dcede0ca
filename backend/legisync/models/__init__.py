from .bill import (
    ActivityType,
    Bill,
    BillCategory,
    BillCommitteeActivity,
    BillSponsor,
    BillTimelineEvent,
    CommitteeChamber,
    LegislativeStatus,
)
from .lock import SystemLock

__all__ = [
    "ActivityType",
    "Bill",
    "BillCategory",
    "BillCommitteeActivity",
    "BillSponsor",
    "BillTimelineEvent",
    "CommitteeChamber",
    "LegislativeStatus",
    "SystemLock",
]
