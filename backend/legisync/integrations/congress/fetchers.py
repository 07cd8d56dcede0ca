"""
Data Fetching Logic for Congress.gov.

Sweeps the bill list endpoint in month-sized windows with offset
pagination, and fetches per-bill sub-resources.
"""

import asyncio
import calendar
import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from legisync.integrations.congress.client import CongressClient
from legisync.utils.dates import format_api_datetime, session_end, session_start, utcnow

logger = logging.getLogger(__name__)

PAGE_LIMIT = 250


def add_month(value: datetime) -> datetime:
    """Same day one calendar month later, clamped to the month's length."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def month_windows(
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
) -> Iterator[Tuple[datetime, datetime]]:
    """
    Split ``[start, end)`` into month-sized windows.

    Windows never extend past ``now``; a session still in progress is
    swept only up to the present.
    """
    upper = min(end, now or utcnow())
    current = start
    while current < upper:
        nxt = add_month(current)
        yield current, min(nxt, upper)
        current = nxt


def bill_path(congress: int, bill_type: str, number: Any) -> str:
    return f"/bill/{congress}/{bill_type.lower()}/{number}"


async def fetch_bill_window(
    client: CongressClient,
    congress: int,
    bill_type: str,
    from_dt: datetime,
    to_dt: datetime,
    limit: int = PAGE_LIMIT,
) -> List[Dict[str, Any]]:
    """
    Fetches every bill updated inside one time window.

    Pages the list endpoint until a page shorter than ``limit`` arrives.

    Args:
        client: CongressClient instance
        congress: Session number
        bill_type: Record subtype (e.g. "hr")
        from_dt: Window start
        to_dt: Window end
        limit: Records per page

    Returns:
        Raw bill payloads from the list endpoint
    """
    endpoint = f"/bill/{congress}/{bill_type.lower()}"
    all_bills: List[Dict[str, Any]] = []
    offset = 0
    page = 1

    while True:
        data = await client.get(
            endpoint,
            params={
                "fromDateTime": format_api_datetime(from_dt),
                "toDateTime": format_api_datetime(to_dt),
                "sort": "updateDate desc",
                "limit": limit,
                "offset": offset,
            },
        )
        bills = data.get("bills") or []
        all_bills.extend(bills)
        logger.debug(f"    📄 {endpoint} page {page}: {len(bills)} bills (offset {offset})")

        if len(bills) < limit:
            break

        offset += limit
        page += 1

    return all_bills


async def fetch_bills_for_type(
    client: CongressClient,
    congress: int,
    bill_type: str,
    limit: int = PAGE_LIMIT,
    window_delay: float = 0.0,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Fetches all bills of one subtype for a whole session.

    Bills updated more than once during the session appear in several
    windows; only the first payload seen per number is kept. Windows are
    walked oldest first, so that is the copy from the earliest window
    listing the bill.

    Returns:
        Unique raw bill payloads
    """
    logger.info(f"  🔄 Fetching {bill_type.upper()} bills for the {congress}th Congress")

    seen: set[str] = set()
    unique: List[Dict[str, Any]] = []

    for from_dt, to_dt in month_windows(session_start(congress), session_end(congress), now=now):
        window_bills = await fetch_bill_window(client, congress, bill_type, from_dt, to_dt, limit)
        for bill in window_bills:
            number = str(bill.get("number", ""))
            if not number or number in seen:
                continue
            seen.add(number)
            unique.append(bill)

        if window_delay:
            await asyncio.sleep(window_delay)

    logger.info(f"  ✅ Found {len(unique)} {bill_type.upper()} bills in the {congress}th Congress")
    return unique


async def fetch_bill_detail(
    client: CongressClient,
    congress: int,
    bill_type: str,
    number: Any,
) -> Dict[str, Any]:
    """Fetches the detail payload of one bill (the ``bill`` object)."""
    data = await client.get(bill_path(congress, bill_type, number))
    return data.get("bill") or {}


async def _fetch_collection(
    client: CongressClient,
    endpoint: str,
    key: str,
    limit: int = PAGE_LIMIT,
) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    offset = 0
    while True:
        data = await client.get(endpoint, params={"limit": limit, "offset": offset})
        page = data.get(key) or []
        items.extend(page)
        if len(page) < limit:
            return items
        offset += limit


async def fetch_cosponsors(client: CongressClient, congress: int, bill_type: str, number: Any) -> List[Dict[str, Any]]:
    """Fetches the cosponsor list of one bill."""
    return await _fetch_collection(client, f"{bill_path(congress, bill_type, number)}/cosponsors", "cosponsors")


async def fetch_committees(client: CongressClient, congress: int, bill_type: str, number: Any) -> List[Dict[str, Any]]:
    """Fetches committees (with their activities) for one bill."""
    return await _fetch_collection(client, f"{bill_path(congress, bill_type, number)}/committees", "committees")


async def fetch_actions(client: CongressClient, congress: int, bill_type: str, number: Any) -> List[Dict[str, Any]]:
    """Fetches the action history of one bill."""
    return await _fetch_collection(client, f"{bill_path(congress, bill_type, number)}/actions", "actions")
