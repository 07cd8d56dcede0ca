"""
Bill API Endpoints.

On-demand analysis generation and the read-only trending ranking.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from legisync.core.exceptions import BillNotFound
from legisync.db.session import get_async_session
from legisync.models.bill import Bill, BillCategory
from legisync.services.bill_sync.category import importance_score, rank_trending
from legisync.services.enrichment import BillAnalysisGenerator
from legisync.services.factory import get_analysis_generator
from legisync.utils.dates import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


class AnalysisResponse(BaseModel):
    status: str
    analysis: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class TrendingBill(BaseModel):
    id: uuid.UUID
    number: str
    title: str
    status: str
    category: str
    last_action_date: datetime
    importance_score: int


@router.post("/bills/{bill_id}/analysis", response_model=AnalysisResponse)
async def generate_analysis(
    bill_id: uuid.UUID,
    generator: BillAnalysisGenerator = Depends(get_analysis_generator),
):
    """
    Generate the structured analysis of one bill.

    Returns 423 when the bill is already being analysed, 500 when the
    model reply is unusable, 404 for an unknown bill id.
    """
    try:
        result = await generator.generate(bill_id)
    except BillNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if result.status == "success":
        return AnalysisResponse(**result.to_dict())

    code = status.HTTP_423_LOCKED if result.status == "locked" else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=result.to_dict())


@router.get("/bills/trending", response_model=List[TrendingBill])
async def trending_bills(
    limit: int = Query(30, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
) -> List[TrendingBill]:
    """Trending bills ranked by importance score."""
    result = await session.execute(
        select(Bill)
        .where(Bill.category == BillCategory.TRENDING)
        .options(
            selectinload(Bill.sponsors),
            selectinload(Bill.committees),
            selectinload(Bill.timeline),
        )
    )
    bills = result.scalars().all()

    now = utcnow()
    return [
        TrendingBill(
            id=bill.id,
            number=bill.number,
            title=bill.title,
            status=bill.status.value,
            category=bill.category.value,
            last_action_date=bill.last_action_date,
            importance_score=importance_score(bill, now),
        )
        for bill in rank_trending(bills, limit=limit, now=now)
    ]
