"""
Import Status API Endpoint.
Provides real-time sweep progress monitoring.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from legisync.services.sync_status import import_status

router = APIRouter()
logger = logging.getLogger(__name__)


class SyncStatusResponse(BaseModel):
    """Import status response."""
    phase: str
    started_at: str | None
    current_step: str
    congress: int | None
    bill_type: str | None
    progress: Dict[str, int]
    errors: list
    completed_at: str | None
    duration_seconds: float
    is_running: bool


@router.get("/sync-status", response_model=SyncStatusResponse)
async def get_sync_status() -> SyncStatusResponse:
    """
    Get current import status.

    Poll every few seconds while a sweep runs.
    """
    current: Dict[str, Any] = import_status.get_status()
    return SyncStatusResponse(
        phase=current["phase"].value,
        started_at=current["started_at"],
        current_step=current["current_step"],
        congress=current["congress"],
        bill_type=current["bill_type"],
        progress=current["progress"],
        errors=current["errors"],
        completed_at=current["completed_at"],
        duration_seconds=current["duration_seconds"],
        is_running=import_status.is_running(),
    )
