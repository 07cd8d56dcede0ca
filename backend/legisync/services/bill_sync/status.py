"""
Status classification from upstream actions.

An ordered list of rules, most terminal stage first, so text mentioning
several stages resolves to the most advanced one.
"""

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Optional, Tuple

from legisync.models.bill import LegislativeStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusRule:
    """Matches on exact action code or case-insensitive text phrase."""
    name: str
    status: LegislativeStatus
    codes: FrozenSet[str]
    phrases: Tuple[str, ...]

    def matches(self, code: str, text: str) -> bool:
        if code in self.codes:
            return True
        return any(phrase in text for phrase in self.phrases)


@dataclass(frozen=True)
class StatusMatch:
    status: LegislativeStatus
    rule: Optional[str]
    is_fallback: bool = False


STATUS_RULES: Tuple[StatusRule, ...] = (
    StatusRule(
        "enacted",
        LegislativeStatus.ENACTED,
        frozenset({"8000", "17000"}),
        ("became public law", "signed by president", "became law", "public law"),
    ),
    StatusRule(
        "vetoed",
        LegislativeStatus.VETOED,
        frozenset({"9000"}),
        ("vetoed", "pocket vetoed"),
    ),
    StatusRule(
        "to_president",
        LegislativeStatus.TO_PRESIDENT,
        frozenset({"7000"}),
        ("presented to president", "sent to president"),
    ),
    StatusRule(
        "passed_house",
        LegislativeStatus.PASSED_HOUSE,
        frozenset({"8", "36"}),
        ("passed house", "passed/agreed to in house"),
    ),
    StatusRule(
        "passed_senate",
        LegislativeStatus.PASSED_SENATE,
        frozenset({"17", "25"}),
        ("passed senate", "passed/agreed to in senate"),
    ),
    StatusRule(
        "reported_by_committee",
        LegislativeStatus.REPORTED_BY_COMMITTEE,
        frozenset({"14000"}),
        ("reported by committee", "committee discharged"),
    ),
    StatusRule(
        "referred_to_committee",
        LegislativeStatus.REFERRED_TO_COMMITTEE,
        frozenset({"11000"}),
        ("referred to", "committee consideration"),
    ),
    StatusRule(
        "introduced",
        LegislativeStatus.INTRODUCED,
        frozenset({"1000", "10000"}),
        ("introduced", "sponsor introductory remarks"),
    ),
)


def classify_status(
    action_code: Any,
    action_text: Optional[str],
    label: str = "",
    log_fallback: bool = True,
) -> StatusMatch:
    """
    Classify an action into a legislative status.

    Args:
        action_code: Upstream action code (string or number)
        action_text: Upstream action text
        label: Bill number for the fallback warning
        log_fallback: Emit the fallback warning (off for timeline entries)

    Returns:
        StatusMatch; ``is_fallback`` is True when no rule matched and the
        status defaulted to "introduced"

    Examples:
        >>> classify_status(None, "Became Public Law No: 118-5. Passed House").status
        <LegislativeStatus.ENACTED: 'enacted'>
    """
    code = str(action_code).strip() if action_code is not None else ""
    text = (action_text or "").lower()

    for rule in STATUS_RULES:
        if rule.matches(code, text):
            return StatusMatch(status=rule.status, rule=rule.name)

    if log_fallback:
        logger.warning(
            f"⚠️ status fallback: {label or 'action'} code={code!r} text={text[:80]!r} -> introduced"
        )
    return StatusMatch(status=LegislativeStatus.INTRODUCED, rule=None, is_fallback=True)
