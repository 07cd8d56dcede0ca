"""
Per-bill synchronization.

Decides create / update / skip for one upstream bill, derives canonical
fields, and writes the bill plus its full child collections in one
transaction. Enrichment is dispatched after a successful write.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from legisync.integrations.congress.client import CongressClient
from legisync.integrations.congress.fetchers import (
    fetch_actions,
    fetch_bill_detail,
    fetch_committees,
    fetch_cosponsors,
)
from legisync.integrations.congress.processors import (
    BillAction,
    clean_string,
    format_bill_number,
    process_actions,
    process_committees,
    process_sponsors,
    resolve_chamber,
)
from legisync.models.bill import (
    Bill,
    BillCommitteeActivity,
    BillSponsor,
    BillTimelineEvent,
)
from legisync.services.bill_sync.category import categorize
from legisync.services.bill_sync.dates import (
    introduced_candidates,
    last_action_candidates,
    reconcile_dates,
)
from legisync.services.bill_sync.status import classify_status
from legisync.services.dispatch import BackgroundDispatcher
from legisync.utils.dates import as_utc, parse_date, session_start, utcnow

logger = logging.getLogger(__name__)


class SyncAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass
class SyncOutcome:
    """Result of syncing one bill."""
    bill_number: str
    action: SyncAction
    bill_id: Optional[uuid.UUID] = None
    dropped: Dict[str, int] = field(default_factory=dict)
    status_fallback: bool = False

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped.values())


@dataclass
class BillSnapshot:
    """Everything fetched and derived for one bill, ready to write."""
    fields: Dict[str, Any]
    sponsors: List[Dict[str, Any]]
    committees: List[Dict[str, Any]]
    timeline: List[Dict[str, Any]]
    dropped: Dict[str, int]
    status_fallback: bool


def _embedded_children(payload: Dict[str, Any], key: str) -> Optional[List[Dict[str, Any]]]:
    """
    Child list embedded in a payload.

    Returns the list when embedded, ``[]`` when upstream reports a zero
    count, and None when it has to be fetched.
    """
    value = payload.get(key)
    if isinstance(value, list):
        return value if value else None
    if isinstance(value, dict) and value.get("count") == 0:
        return []
    return None


def _text_or_none(value: Any) -> Optional[str]:
    return clean_string(value) if isinstance(value, str) else None


class BillSynchronizer:
    """
    Synchronizes single bills from Congress.gov into the store.

    Idempotent: a bill whose upstream ``updateDate`` is not newer than the
    stored ``source_updated_at`` is skipped without fetching anything else.
    """

    def __init__(
        self,
        client: CongressClient,
        session_maker: async_sessionmaker[AsyncSession],
        enrich: Optional[Callable[[uuid.UUID], Awaitable[Any]]] = None,
        dispatcher: Optional[BackgroundDispatcher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize synchronizer.

        Args:
            client: Congress.gov client
            session_maker: Async session factory
            enrich: Coroutine function taking a bill id, dispatched after writes
            dispatcher: Background dispatcher for ``enrich``
            clock: Source of "now" for categorization
        """
        self.client = client
        self.session_maker = session_maker
        self.enrich = enrich
        self.dispatcher = dispatcher or BackgroundDispatcher()
        self.clock = clock

    async def _stored_update_date(self, number: str) -> tuple[bool, Optional[datetime]]:
        async with self.session_maker() as session:
            row = (
                await session.execute(
                    select(Bill.id, Bill.source_updated_at).where(Bill.number == number)
                )
            ).first()
        if row is None:
            return False, None
        stored = row.source_updated_at
        return True, as_utc(stored) if stored is not None else None

    async def _children(self, payload: Dict[str, Any], key: str, fetcher, congress: int, bill_type: str, number: Any):
        embedded = _embedded_children(payload, key)
        if embedded is not None:
            return embedded
        return await fetcher(self.client, congress, bill_type, number)

    async def build_snapshot(self, congress: int, bill_type: str, payload: Dict[str, Any]) -> BillSnapshot:
        """
        Fetch sub-resources and derive canonical fields.

        Any fetch failure propagates, so nothing is written for the bill.
        """
        upstream_number = payload["number"]
        number = format_bill_number(bill_type, upstream_number)

        if _text_or_none(payload.get("summary")):
            detail = payload
        else:
            logger.debug(f"Fetching detail for {number} (no summary in list payload)")
            detail = await fetch_bill_detail(self.client, congress, bill_type, upstream_number)

        primary = _embedded_children(detail, "sponsors") or _embedded_children(payload, "sponsors") or []
        cosponsors = await self._children(detail, "cosponsors", fetch_cosponsors, congress, bill_type, upstream_number)
        committees_raw = await self._children(detail, "committees", fetch_committees, congress, bill_type, upstream_number)
        actions_raw = await self._children(detail, "actions", fetch_actions, congress, bill_type, upstream_number)

        sponsors = process_sponsors(primary[:1], cosponsors)
        committees = process_committees(committees_raw)
        actions: List[BillAction] = process_actions(actions_raw)

        latest_listed = payload.get("latestAction") or {}
        if actions:
            code, text = actions[0].code, actions[0].text
        else:
            code, text = latest_listed.get("actionCode"), latest_listed.get("text")
        status_match = classify_status(code, text, label=number)

        dates = reconcile_dates(
            introduced_candidates(payload, detail, actions),
            last_action_candidates(payload, detail, actions),
            session_anchor=session_start(congress),
            label=number,
        )

        category = categorize(
            dates.introduced_date,
            status_match.status,
            actions,
            latest_action_code=clean_string(latest_listed.get("actionCode")),
            now=self.clock(),
        )

        fields = {
            "number": number,
            "title": _text_or_none(payload.get("title")) or _text_or_none(detail.get("title")) or number,
            "summary": _text_or_none(detail.get("summary")) or _text_or_none(payload.get("summary")),
            "status": status_match.status,
            "chamber": resolve_chamber(detail if detail.get("originChamber") else payload, bill_type),
            "introduced_date": dates.introduced_date,
            "last_action_date": dates.last_action_date,
            "congress": congress,
            "bill_type": bill_type.upper(),
            "bill_number": str(upstream_number),
            "category": category,
            "source_updated_at": parse_date(payload.get("updateDate")) or parse_date(detail.get("updateDate")),
        }

        timeline = [
            {
                "date": action.date,
                "action": action.text,
                "status": classify_status(action.code, action.text, log_fallback=False).status,
            }
            for action in actions
        ]

        return BillSnapshot(
            fields=fields,
            sponsors=sponsors.rows,
            committees=committees.rows,
            timeline=timeline,
            dropped={
                "sponsors": sponsors.dropped,
                "committees": committees.dropped,
                "timeline": len(actions_raw or []) - len(actions),
            },
            status_fallback=status_match.is_fallback,
        )

    async def write_snapshot(self, snapshot: BillSnapshot) -> tuple[SyncAction, uuid.UUID]:
        """
        Upsert the bill and replace its children in one transaction.
        """
        number = snapshot.fields["number"]
        async with self.session_maker() as session:
            async with session.begin():
                bill = (
                    await session.execute(select(Bill).where(Bill.number == number))
                ).scalar_one_or_none()

                if bill is None:
                    bill = Bill(id=uuid.uuid4(), **snapshot.fields)
                    session.add(bill)
                    action = SyncAction.CREATED
                else:
                    for key, value in snapshot.fields.items():
                        setattr(bill, key, value)
                    action = SyncAction.UPDATED

                await session.flush()
                bill_id = bill.id

                # Full replacement: upstream is the source of truth for children
                for model in (BillSponsor, BillCommitteeActivity, BillTimelineEvent):
                    await session.execute(delete(model).where(model.bill_id == bill_id))

                session.add_all([BillSponsor(bill_id=bill_id, **row) for row in snapshot.sponsors])
                session.add_all([BillCommitteeActivity(bill_id=bill_id, **row) for row in snapshot.committees])
                session.add_all([BillTimelineEvent(bill_id=bill_id, **row) for row in snapshot.timeline])

        return action, bill_id

    async def sync(self, congress: int, bill_type: str, payload: Dict[str, Any]) -> SyncOutcome:
        """
        Synchronize one bill from its list payload.

        Args:
            congress: Session number
            bill_type: Record subtype (e.g. "hr")
            payload: Bill object from the list endpoint

        Returns:
            SyncOutcome (created / updated / skipped)

        Raises:
            FatalFailure: A sub-resource fetch failed (nothing written)
        """
        number = format_bill_number(bill_type, payload["number"])
        upstream_updated = parse_date(payload.get("updateDate"))

        exists, stored_updated = await self._stored_update_date(number)
        if exists and upstream_updated is not None and stored_updated is not None:
            if stored_updated >= upstream_updated:
                logger.debug(f"⏭️ Skipping {number}: already up-to-date")
                return SyncOutcome(bill_number=number, action=SyncAction.SKIPPED)

        snapshot = await self.build_snapshot(congress, bill_type, payload)
        action, bill_id = await self.write_snapshot(snapshot)

        logger.info(
            f"✓ {action.value.capitalize()} {number} "
            f"({snapshot.fields['status'].value}, {len(snapshot.sponsors)} sponsors, "
            f"{len(snapshot.committees)} committee activities, {len(snapshot.timeline)} actions)"
        )

        if self.enrich is not None:
            self.dispatcher.dispatch(f"analysis {number}", self.enrich, bill_id)

        return SyncOutcome(
            bill_number=number,
            action=action,
            bill_id=bill_id,
            dropped=snapshot.dropped,
            status_fallback=snapshot.status_fallback,
        )
