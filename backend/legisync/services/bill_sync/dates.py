"""
Date reconciliation for bills.

Upstream exposes several overlapping date sources (list payload, detail
payload, action history). Candidates are tried in a fixed priority order
and the first valid date wins, regardless of chronology.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from legisync.integrations.congress.processors import BillAction
from legisync.utils.dates import parse_date, session_end, session_start

logger = logging.getLogger(__name__)

__all__ = [
    "DateCandidate",
    "ReconciledDates",
    "introduced_candidates",
    "last_action_candidates",
    "reconcile_dates",
    "session_start",
    "session_end",
]

INTRODUCED_CODES = {"1000", "10000"}


@dataclass(frozen=True)
class DateCandidate:
    """A named, possibly invalid, date source."""
    source: str
    value: Any


@dataclass(frozen=True)
class ReconciledDates:
    introduced_date: datetime
    last_action_date: datetime
    introduced_source: str
    last_action_source: str


def _latest_action_date(payload: Dict[str, Any]) -> Any:
    latest = payload.get("latestAction") or {}
    return latest.get("actionDate") if isinstance(latest, dict) else None


def _is_introduction(action: BillAction) -> bool:
    return "introduced" in action.text.lower() or action.code in INTRODUCED_CODES


def introduced_candidates(
    list_payload: Dict[str, Any],
    detail_payload: Dict[str, Any],
    actions: Sequence[BillAction],
) -> List[DateCandidate]:
    """
    Introduced-date candidates in priority order.

    Args:
        list_payload: Bill object from the list endpoint
        detail_payload: Bill object from the detail endpoint (may be empty)
        actions: Valid actions sorted newest-first
    """
    candidates = [
        DateCandidate("detail.introducedDate", detail_payload.get("introducedDate")),
        DateCandidate("list.introducedDate", list_payload.get("introducedDate")),
    ]

    introduction = next((a for a in actions if _is_introduction(a)), None)
    if introduction is not None:
        candidates.append(DateCandidate("actions.introduced", introduction.date))

    if actions:
        candidates.append(DateCandidate("actions.earliest", actions[-1].date))

    return candidates


def last_action_candidates(
    list_payload: Dict[str, Any],
    detail_payload: Dict[str, Any],
    actions: Sequence[BillAction],
) -> List[DateCandidate]:
    """Last-action-date candidates in priority order."""
    return [
        DateCandidate("actions.latest", actions[0].date if actions else None),
        DateCandidate("detail.latestAction.actionDate", _latest_action_date(detail_payload)),
        DateCandidate("list.latestAction.actionDate", _latest_action_date(list_payload)),
        DateCandidate("detail.updateDate", detail_payload.get("updateDate")),
        DateCandidate("list.updateDate", list_payload.get("updateDate")),
    ]


def _first_valid(candidates: Sequence[DateCandidate]) -> Optional[tuple]:
    for candidate in candidates:
        parsed = parse_date(candidate.value)
        if parsed is not None:
            return parsed, candidate.source
    return None


def reconcile_dates(
    introduced: Sequence[DateCandidate],
    last_action: Sequence[DateCandidate],
    session_anchor: datetime,
    label: str = "",
) -> ReconciledDates:
    """
    Pick introduced and last-action dates.

    Args:
        introduced: Introduced-date candidates, highest priority first
        last_action: Last-action candidates, highest priority first
        session_anchor: Session start, the last-resort introduced date
        label: Bill number for log lines

    Returns:
        ReconciledDates with ``introduced_date <= last_action_date``
    """
    picked = _first_valid(introduced)
    if picked is None:
        introduced_date, introduced_source = session_anchor, "session.start"
        logger.info(f"⚠️ {label}: no valid introduced date, using session start {introduced_date.date()}")
    else:
        introduced_date, introduced_source = picked

    picked = _first_valid(last_action)
    if picked is None:
        last_action_date, last_action_source = introduced_date, "introduced.fallback"
    else:
        last_action_date, last_action_source = picked

    if introduced_date > last_action_date:
        logger.info(
            f"⚠️ {label}: introduced ({introduced_date.isoformat()}) after last action "
            f"({last_action_date.isoformat()}), using introduced for both"
        )
        last_action_date = introduced_date

    logger.debug(
        f"{label} dates: introduced={introduced_date.isoformat()} ({introduced_source}), "
        f"last_action={last_action_date.isoformat()} ({last_action_source})"
    )

    return ReconciledDates(
        introduced_date=introduced_date,
        last_action_date=last_action_date,
        introduced_source=introduced_source,
        last_action_source=last_action_source,
    )
