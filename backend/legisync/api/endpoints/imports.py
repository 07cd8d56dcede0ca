"""
Bill Import API Endpoints.

Entry points for ad hoc sweeps and for the external scheduler.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legisync.core.config import get_settings
from legisync.db.session import async_session_maker
from legisync.services.bill_sync.import_orchestrator import BillImportOrchestrator
from legisync.services.bill_sync.scheduled import run_scheduled_import
from legisync.services.factory import get_import_orchestrator, get_lock_manager
from legisync.services.locks.manager import LockManager

router = APIRouter()
logger = logging.getLogger(__name__)

STATUS_CODES = {
    "success": status.HTTP_200_OK,
    "locked": status.HTTP_423_LOCKED,
    "error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


class ImportResponse(BaseModel):
    """Sweep summary."""
    status: str
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    fetched: int = 0
    failed: int = 0
    dropped_children: int = 0
    status_fallbacks: int = 0
    errors: List[str] = []
    message: Optional[str] = None


@router.post("/imports", response_model=ImportResponse)
async def trigger_import(
    start_congress: Optional[int] = Query(None, ge=1),
    end_congress: Optional[int] = Query(None, ge=1),
    bill_types: Optional[List[str]] = Query(None),
    orchestrator: BillImportOrchestrator = Depends(get_import_orchestrator),
):
    """
    Run a bill import sweep.

    Returns 423 when another sweep holds the same lease. Runs
    synchronously; poll ``/sync-status`` from another client for progress.
    """
    settings = get_settings()
    start = start_congress or settings.default_start_congress
    end = end_congress or settings.default_end_congress

    try:
        result = await orchestrator.import_bills(start, end, bill_types=bill_types)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    body = ImportResponse(**result.to_dict())
    if result.status == "success":
        return body
    return JSONResponse(status_code=STATUS_CODES[result.status], content=body.model_dump())


@router.post("/imports/scheduled")
async def trigger_scheduled_import(
    orchestrator: BillImportOrchestrator = Depends(get_import_orchestrator),
    lock_manager: LockManager = Depends(get_lock_manager),
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> JSONResponse:
    """
    Entry point for the external scheduler (sessions 119 down to 118).

    Returns 423 while a recent sweep still runs, 500 on error.
    """
    result = await run_scheduled_import(
        orchestrator,
        lock_manager,
        session_maker,
        start_congress=119,
        end_congress=118,
        stale_after=timedelta(minutes=10),
        force_after=timedelta(minutes=30),
    )
    content: Dict[str, Any] = result.to_dict()
    return JSONResponse(status_code=STATUS_CODES.get(result.status, 500), content=content)
