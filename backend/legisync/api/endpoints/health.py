"""
Health Endpoint for Monitoring.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from legisync.db.session import get_async_session
from legisync.integrations.congress.client import CongressClient
from legisync.services.factory import get_congress_client

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database_connected: bool
    upstream_reachable: bool


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session: AsyncSession = Depends(get_async_session),
    client: CongressClient = Depends(get_congress_client),
) -> HealthResponse:
    """
    Database and Congress.gov reachability.

    "degraded" when only the upstream is down.
    """
    try:
        await session.execute(text("SELECT 1"))
        database_connected = True
    except Exception as e:
        logger.error(f"Health check: database unreachable: {e}")
        database_connected = False

    upstream_reachable = await client.check_connection()

    if not database_connected:
        overall = "unhealthy"
    elif not upstream_reachable:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        database_connected=database_connected,
        upstream_reachable=upstream_reachable,
    )
