"""
Real-time Import Status Tracking.
Allows monitoring of bill import sweeps via API.
"""

import copy
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict

from legisync.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ImportPhase(str, Enum):
    """Sweep phases."""
    IDLE = "idle"
    STARTING = "starting"
    PREFLIGHT = "preflight"
    FETCHING = "fetching"
    SYNCING = "syncing"
    COMPLETED = "completed"
    ERROR = "error"
    LOCKED = "locked"


COUNTERS = (
    "fetched",
    "created",
    "updated",
    "skipped",
    "failed",
    "dropped_children",
    "status_fallbacks",
)


def _empty_status() -> Dict[str, Any]:
    return {
        "phase": ImportPhase.IDLE,
        "started_at": None,
        "current_step": "Waiting to start...",
        "congress": None,
        "bill_type": None,
        "progress": {name: 0 for name in COUNTERS},
        "errors": [],
        "completed_at": None,
        "duration_seconds": 0,
    }


class ImportStatusTracker:
    """
    Singleton to track import status across requests.
    Allows real-time monitoring via API.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance.reset()
        return cls._instance

    def reset(self):
        """Return to the idle state."""
        self.status = _empty_status()

    def start(self):
        """Mark a sweep as started. Call only once the sweep lock is held."""
        self.status = _empty_status()
        self.status["phase"] = ImportPhase.STARTING
        self.status["started_at"] = utcnow().isoformat()
        self.status["current_step"] = "Sweep lock acquired"
        logger.info("🚀 IMPORT STARTED - Status tracking enabled")

    def update_phase(self, phase: ImportPhase, step: str):
        """Update current phase."""
        self.status["phase"] = phase
        self.status["current_step"] = step
        logger.info(f"📍 PHASE: {phase.value.upper()} - {step}")

    def update_scope(self, congress: int, bill_type: str):
        """Record the session and subtype currently being swept."""
        self.status["congress"] = congress
        self.status["bill_type"] = bill_type

    def increment(self, counter: str, amount: int = 1):
        """Add to one of the progress counters."""
        if amount:
            self.status["progress"][counter] += amount

    def add_error(self, error: str):
        """Add error to tracking."""
        self.status["errors"].append({
            "timestamp": utcnow().isoformat(),
            "error": error,
        })

    def mark_locked(self):
        """The sweep lock was held elsewhere."""
        self.status["phase"] = ImportPhase.LOCKED
        self.status["current_step"] = "Another import is running"
        self.status["completed_at"] = utcnow().isoformat()
        logger.info("🔒 IMPORT SKIPPED - sweep lock held elsewhere")

    def complete(self, success: bool = True):
        """Mark sweep as completed."""
        self.status["phase"] = ImportPhase.COMPLETED if success else ImportPhase.ERROR
        self.status["completed_at"] = utcnow().isoformat()

        if self.status["started_at"]:
            start = self.status["started_at"]
            end = self.status["completed_at"]
            self.status["duration_seconds"] = (
                datetime.fromisoformat(end) - datetime.fromisoformat(start)
            ).total_seconds()

        progress = self.status["progress"]
        if success:
            self.status["current_step"] = "✅ Import completed"
            logger.info(f"✅ IMPORT COMPLETED - Duration: {self.status['duration_seconds']:.1f}s")
            logger.info(
                f"📊 FINAL STATS: {progress['created']} created, {progress['updated']} updated, "
                f"{progress['skipped']} skipped, {progress['failed']} failed"
            )
        else:
            self.status["current_step"] = "❌ Import failed"
            logger.error("❌ IMPORT FAILED")

    def get_status(self) -> Dict[str, Any]:
        """Get current status."""
        return copy.deepcopy(self.status)

    def is_running(self) -> bool:
        """Check if a sweep is currently running."""
        return self.status["phase"] not in (
            ImportPhase.IDLE,
            ImportPhase.COMPLETED,
            ImportPhase.ERROR,
            ImportPhase.LOCKED,
        )


# Singleton instance
import_status = ImportStatusTracker()
