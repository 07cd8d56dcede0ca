"""
Error Tracker for bill import sweeps.

Collects per-bill and per-listing errors so a sweep can report them
without aborting.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class BillError:
    """A single bill that failed to sync."""
    bill_number: str
    error: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ListingError:
    """A subtype listing that failed for one session."""
    congress: int
    bill_type: str
    error: str


@dataclass
class ErrorSummary:
    """Summary of all errors during a sweep."""
    bill_errors: List[BillError]
    listing_errors: List[ListingError]

    @property
    def total(self) -> int:
        return len(self.bill_errors) + len(self.listing_errors)

    def get_error_messages(self, limit: Optional[int] = None) -> List[str]:
        """
        Formatted error messages for API responses.

        Listing errors come first since each one hides a whole subtype.
        """
        messages = [
            f"{err.bill_type}/{err.congress}: {err.error}" for err in self.listing_errors
        ]
        messages.extend(f"{err.bill_number}: {err.error}" for err in self.bill_errors)
        return messages if limit is None else messages[:limit]


class ErrorTracker:
    """Tracks errors during a bill import sweep."""

    def __init__(self):
        self.bill_errors: List[BillError] = []
        self.listing_errors: List[ListingError] = []

    def track_bill_error(self, bill_number: str, error: Exception, context: Dict[str, Any] = None):
        """
        Track an individual bill error.

        Args:
            bill_number: External bill number (e.g. "HR1")
            error: Exception that occurred
            context: Additional context (session, subtype)
        """
        self.bill_errors.append(BillError(
            bill_number=bill_number,
            error=str(error),
            context=context or {},
        ))
        logger.error(
            f"❌ Error processing bill {bill_number}: {error}",
            extra={"bill_number": bill_number, "context": context},
        )

    def track_listing_error(self, congress: int, bill_type: str, error: Exception):
        """Track a failure to list one subtype of one session."""
        self.listing_errors.append(ListingError(
            congress=congress,
            bill_type=bill_type,
            error=str(error),
        ))
        logger.error(
            f"❌ Error fetching {bill_type} bills for the {congress}th Congress: {error}",
            extra={"congress": congress, "bill_type": bill_type},
        )

    def get_summary(self) -> ErrorSummary:
        return ErrorSummary(
            bill_errors=list(self.bill_errors),
            listing_errors=list(self.listing_errors),
        )

    def has_errors(self) -> bool:
        return bool(self.bill_errors or self.listing_errors)

    def clear(self):
        self.bill_errors.clear()
        self.listing_errors.clear()
