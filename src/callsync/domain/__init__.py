from callsync.domain.models import (
    AssociationOutcome,
    AssociationPair,
    CallRecord,
    Company,
    Contact,
    EngagementParams,
    EngagementResult,
    SyncFailure,
    SyncStats,
)
from callsync.domain.rules import ValidationError

__all__ = [
    "AssociationOutcome",
    "AssociationPair",
    "CallRecord",
    "Company",
    "Contact",
    "EngagementParams",
    "EngagementResult",
    "SyncFailure",
    "SyncStats",
    "ValidationError",
]
