"""
Data Processing Logic for Congress.gov payloads.

Shapes raw sponsor, committee and action payloads into rows for the
bill child tables. Children failing minimal validation are dropped and
counted; they never fail the parent bill.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from legisync.core.exceptions import ValidationFailure
from legisync.models.bill import ActivityType, CommitteeChamber
from legisync.utils.dates import parse_date

logger = logging.getLogger(__name__)


@dataclass
class ProcessedCollection:
    """Valid rows of one child collection plus the drop count."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    dropped: int = 0
    reasons: List[str] = field(default_factory=list)


def clean_string(value: Any) -> Optional[str]:
    """
    Convert a payload value to a trimmed string.

    Returns:
        The trimmed string, or None for None/empty values
    """
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def format_bill_number(bill_type: str, number: Any) -> str:
    """
    External bill number.

    Example:
        >>> format_bill_number("hr", 1)
        'HR1'
    """
    return f"{bill_type.upper()}{number}"


def resolve_chamber(payload: Dict[str, Any], bill_type: str) -> str:
    """Origin chamber, falling back to the subtype prefix."""
    origin = clean_string(payload.get("originChamber"))
    if origin:
        return origin.lower()
    return "house" if bill_type.lower().startswith("h") else "senate"


# =============================================================================
# Sponsors
# =============================================================================

def validate_sponsor(sponsor: Dict[str, Any], is_primary: bool = False) -> Dict[str, Any]:
    """
    Validate one sponsor payload and build its row.

    Raises:
        ValidationFailure: If name, party or state are missing
    """
    first = clean_string(sponsor.get("firstName"))
    last = clean_string(sponsor.get("lastName"))
    full_name = clean_string(sponsor.get("fullName"))

    if first and last:
        name = f"{first} {last}"
    elif full_name:
        name = full_name
    else:
        raise ValidationFailure("Missing required name fields", collection="sponsors")

    party = clean_string(sponsor.get("party"))
    if not party:
        raise ValidationFailure(f"{name}: missing required party field", collection="sponsors")

    state = clean_string(sponsor.get("state"))
    if not state:
        raise ValidationFailure(f"{name}: missing required state field", collection="sponsors")

    return {
        "name": name,
        "party": party,
        "state": state,
        "district": clean_string(sponsor.get("district")),
        "bioguide_id": clean_string(sponsor.get("bioguideId")),
        "sponsorship_date": parse_date(sponsor.get("sponsorshipDate")),
        "is_original_cosponsor": bool(sponsor.get("isOriginalCosponsor") or False),
        "is_primary": is_primary,
    }


def process_sponsors(
    primary: List[Dict[str, Any]],
    cosponsors: List[Dict[str, Any]],
) -> ProcessedCollection:
    """
    Shape primary sponsors and cosponsors into sponsor rows.

    Args:
        primary: Sponsor payloads from the bill (detail) payload
        cosponsors: Cosponsor payloads

    Returns:
        ProcessedCollection with valid rows and the drop count
    """
    result = ProcessedCollection()

    for sponsor, is_primary in [(s, True) for s in primary] + [(s, False) for s in cosponsors]:
        try:
            result.rows.append(validate_sponsor(sponsor, is_primary=is_primary))
        except ValidationFailure as e:
            result.dropped += 1
            result.reasons.append(str(e))

    if result.dropped:
        logger.warning(f"⚠️ Skipped {result.dropped} invalid sponsor(s): {result.reasons}")

    return result


# =============================================================================
# Committees
# =============================================================================

def classify_activity(activity_name: str) -> ActivityType:
    """Map a committee activity name to its activity type."""
    name = activity_name.lower()
    if "referred" in name:
        return ActivityType.REFERRED
    if "markup" in name or "mark up" in name:
        return ActivityType.MARKUP
    if "reported" in name:
        return ActivityType.REPORTED
    if "discharged" in name:
        return ActivityType.DISCHARGED
    if "hearing" in name:
        return ActivityType.HEARING
    return ActivityType.OTHER


def normalize_committee_chamber(chamber: str) -> CommitteeChamber:
    value = chamber.lower()
    if "senate" in value:
        return CommitteeChamber.SENATE
    if "joint" in value:
        return CommitteeChamber.JOINT
    return CommitteeChamber.HOUSE


def process_committees(committees: List[Dict[str, Any]]) -> ProcessedCollection:
    """
    Flatten committees into one row per committee activity.

    A committee without name or chamber is dropped whole; an activity
    without date or name is dropped alone.
    """
    result = ProcessedCollection()

    for committee in committees or []:
        try:
            name = clean_string(committee.get("name"))
            chamber = clean_string(committee.get("chamber"))
            if not name or not chamber:
                raise ValidationFailure(
                    f"Committee missing name or chamber: {committee.get('systemCode')}",
                    collection="committees",
                )
        except ValidationFailure as e:
            result.dropped += 1
            result.reasons.append(str(e))
            continue

        for activity in committee.get("activities") or []:
            activity_name = clean_string(activity.get("name"))
            activity_date = parse_date(activity.get("date"))
            if not activity_name or activity_date is None:
                result.dropped += 1
                result.reasons.append(f"{name}: activity missing date or name")
                continue

            result.rows.append({
                "committee_name": name,
                "committee_chamber": normalize_committee_chamber(chamber),
                "committee_system_code": clean_string(committee.get("systemCode")),
                "committee_url": clean_string(committee.get("url")),
                "activity_date": activity_date,
                "activity_text": activity_name,
                "activity_type": classify_activity(activity_name),
            })

    if result.dropped:
        logger.warning(f"⚠️ Skipped {result.dropped} invalid committee entries: {result.reasons}")
    logger.debug(f"Found {len(result.rows)} committee activities")

    return result


# =============================================================================
# Actions
# =============================================================================

@dataclass(frozen=True)
class BillAction:
    """A dated upstream action."""
    date: datetime
    text: str
    code: Optional[str] = None


def process_actions(actions: List[Dict[str, Any]]) -> List[BillAction]:
    """
    Keep actions with a valid date, sorted newest-first.

    Ties keep upstream order.
    """
    valid: List[BillAction] = []
    for action in actions or []:
        action_date = parse_date(action.get("actionDate"))
        if action_date is None:
            continue
        valid.append(BillAction(
            date=action_date,
            text=clean_string(action.get("text")) or "",
            code=clean_string(action.get("actionCode")),
        ))
    valid.sort(key=lambda a: a.date, reverse=True)
    return valid
