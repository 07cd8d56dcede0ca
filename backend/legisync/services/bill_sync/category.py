"""
Engagement categories and trending ranking.

Categories are a dashboard heuristic: ordered (predicate, category) rules,
first match wins, "trending" by default. The dashboard further ranks the
trending bucket by an importance score.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional, Sequence

from legisync.integrations.congress.processors import BillAction
from legisync.models.bill import Bill, BillCategory, LegislativeStatus
from legisync.utils.dates import as_utc, utcnow

RECENT_WINDOW = timedelta(days=30)
TRENDING_MIN_ACTIONS = 3
ADVANCING_STATUSES = {
    LegislativeStatus.PASSED_HOUSE,
    LegislativeStatus.PASSED_SENATE,
    LegislativeStatus.TO_PRESIDENT,
}


@dataclass(frozen=True)
class CategoryContext:
    """Inputs shared by every category rule."""
    introduced_date: Optional[datetime]
    status: LegislativeStatus
    actions: Sequence[BillAction]
    latest_action_code: Optional[str]
    now: datetime


@dataclass(frozen=True)
class CategoryRule:
    name: str
    category: BillCategory
    predicate: Callable[[CategoryContext], bool]


def _days_since(value: datetime, now: datetime) -> int:
    return math.floor((now - as_utc(value)).total_seconds() / 86400)


def is_enacted(ctx: CategoryContext) -> bool:
    return ctx.status == LegislativeStatus.ENACTED


def has_recent_activity(ctx: CategoryContext) -> bool:
    cutoff = ctx.now - RECENT_WINDOW
    recent = [a for a in ctx.actions if as_utc(a.date) > cutoff]
    return len(recent) >= TRENDING_MIN_ACTIONS


def is_recently_introduced(ctx: CategoryContext) -> bool:
    if ctx.introduced_date is None:
        return False
    return _days_since(ctx.introduced_date, ctx.now) <= RECENT_WINDOW.days


def is_advancing(ctx: CategoryContext) -> bool:
    if ctx.status in ADVANCING_STATUSES:
        return True
    return "VOTE" in (ctx.latest_action_code or "")


CATEGORY_RULES = (
    CategoryRule("enacted", BillCategory.ENACTED, is_enacted),
    CategoryRule("trending", BillCategory.TRENDING, has_recent_activity),
    CategoryRule("recent", BillCategory.RECENT, is_recently_introduced),
    CategoryRule("upcoming", BillCategory.UPCOMING, is_advancing),
)


def categorize(
    introduced_date: Optional[datetime],
    status: LegislativeStatus,
    actions: Sequence[BillAction],
    latest_action_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BillCategory:
    """
    Assign a bill to an engagement category.

    Args:
        introduced_date: Upstream introduced date (list/detail payload)
        status: Classified legislative status
        actions: Valid actions of the bill
        latest_action_code: List-level latest action code
        now: Reference time (defaults to current UTC time)
    """
    ctx = CategoryContext(
        introduced_date=introduced_date,
        status=status,
        actions=actions,
        latest_action_code=latest_action_code,
        now=now or utcnow(),
    )
    for rule in CATEGORY_RULES:
        if rule.predicate(ctx):
            return rule.category
    return BillCategory.TRENDING


STATUS_WEIGHTS = {
    LegislativeStatus.TO_PRESIDENT: 30,
    LegislativeStatus.PASSED_HOUSE: 25,
    LegislativeStatus.PASSED_SENATE: 25,
    LegislativeStatus.REPORTED_BY_COMMITTEE: 15,
    LegislativeStatus.ENACTED: 40,
    LegislativeStatus.VETOED: 35,
}


def _count(value: Any) -> int:
    return len(value) if value else 0


def importance_score(bill: Bill, now: Optional[datetime] = None) -> int:
    """
    Importance score used to rank trending bills.

    Combines sponsor, committee and timeline counts, generated analysis
    sizes, recency of the last action and a status weight.
    """
    now = now or utcnow()
    score = 0

    score += min(_count(bill.sponsors) * 2, 50)
    score += _count(bill.committees) * 10
    score += min(_count(bill.timeline) * 3, 30)
    score += _count(bill.potential_controversy) * 15
    score += _count(bill.key_provisions) * 5
    score += _count(bill.potential_impact) * 8

    if bill.last_action_date is not None:
        days = _days_since(bill.last_action_date, now)
        if days <= 30:
            score += 20
        elif days <= 60:
            score += 10

    score += STATUS_WEIGHTS.get(bill.status, 0)
    return score


def rank_trending(bills: Sequence[Bill], limit: int = 30, now: Optional[datetime] = None) -> List[Bill]:
    """Trending bills ordered by importance score, highest first."""
    now = now or utcnow()
    trending = [b for b in bills if b.category == BillCategory.TRENDING]
    trending.sort(key=lambda b: importance_score(b, now), reverse=True)
    return trending[:limit]
