"""
Bill models - the synchronized legislative record and its child collections.

A Bill is keyed by its external number (e.g. "HR1"). Sponsors, timeline
events and committee activities are owned exclusively by one bill and are
fully replaced on every sync.
"""

import enum
import uuid
from datetime import datetime
from typing import List

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from legisync.db.base import Base


class LegislativeStatus(str, enum.Enum):
    """Stage of a bill in the legislative process."""

    INTRODUCED = "introduced"
    REFERRED_TO_COMMITTEE = "referred_to_committee"
    REPORTED_BY_COMMITTEE = "reported_by_committee"
    PASSED_HOUSE = "passed_house"
    PASSED_SENATE = "passed_senate"
    TO_PRESIDENT = "to_president"
    SIGNED = "signed"
    ENACTED = "enacted"
    VETOED = "vetoed"


class BillCategory(str, enum.Enum):
    """Engagement bucket used by the dashboard."""

    ENACTED = "enacted"
    TRENDING = "trending"
    RECENT = "recent"
    UPCOMING = "upcoming"


class CommitteeChamber(str, enum.Enum):
    HOUSE = "house"
    SENATE = "senate"
    JOINT = "joint"


class ActivityType(str, enum.Enum):
    REFERRED = "referred"
    MARKUP = "markup"
    REPORTED = "reported"
    DISCHARGED = "discharged"
    HEARING = "hearing"
    OTHER = "other"


def _enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


# Shared by bills.status and bill_timeline.status so the type is created once
status_enum = Enum(
    LegislativeStatus,
    name="legislative_status",
    values_callable=_enum_values,
    create_constraint=True,
)


class Bill(Base):
    """
    SQLAlchemy model for a synchronized bill.

    Tracks:
    - Canonical fields derived from upstream (status, dates, category)
    - The upstream update timestamp used for incremental sync
    - Optional generated analysis fields
    """

    __tablename__ = "bills"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
        comment="External number, e.g. HR1 or SJRES12",
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[LegislativeStatus] = mapped_column(
        status_enum,
        nullable=False,
        default=LegislativeStatus.INTRODUCED,
        index=True,
    )
    chamber: Mapped[str] = mapped_column(String(16), nullable=False)
    introduced_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_action_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    congress: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    bill_type: Mapped[str] = mapped_column(String(16), nullable=False)
    bill_number: Mapped[str] = mapped_column(String(16), nullable=False)

    category: Mapped[BillCategory] = mapped_column(
        Enum(
            BillCategory,
            name="bill_category",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=BillCategory.TRENDING,
        index=True,
    )

    source_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Upstream updateDate at the last successful sync",
    )

    # Generated analysis
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_provisions: Mapped[list | None] = mapped_column(JSON, nullable=True)
    potential_impact: Mapped[list | None] = mapped_column(JSON, nullable=True)
    potential_controversy: Mapped[list | None] = mapped_column(JSON, nullable=True)
    analysis_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    sponsors: Mapped[List["BillSponsor"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    timeline: Mapped[List["BillTimelineEvent"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="desc(BillTimelineEvent.date)",
    )
    committees: Mapped[List["BillCommitteeActivity"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_bills_type_number", "bill_type", "bill_number"),
        {"comment": "Bills synchronized from Congress.gov"},
    )

    def __repr__(self) -> str:
        return f"<Bill(number='{self.number}', status={self.status.value})>"


class BillSponsor(Base):
    """Sponsor or cosponsor of a bill."""

    __tablename__ = "bill_sponsors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    party: Mapped[str] = mapped_column(String(16), nullable=False)
    state: Mapped[str] = mapped_column(String(8), nullable=False)
    district: Mapped[str | None] = mapped_column(String(16), nullable=True)
    bioguide_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sponsorship_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_original_cosponsor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    bill: Mapped[Bill] = relationship(back_populates="sponsors")


class BillTimelineEvent(Base):
    """One upstream action, with the status it implied at the time."""

    __tablename__ = "bill_timeline"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[LegislativeStatus] = mapped_column(
        status_enum,
        nullable=False,
    )

    bill: Mapped[Bill] = relationship(back_populates="timeline")


class BillCommitteeActivity(Base):
    """A committee's activity on a bill."""

    __tablename__ = "bill_committees"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    committee_name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    committee_chamber: Mapped[CommitteeChamber] = mapped_column(
        Enum(
            CommitteeChamber,
            name="committee_chamber",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
    )
    committee_system_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    committee_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    activity_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    activity_text: Mapped[str] = mapped_column(Text, nullable=False)
    activity_type: Mapped[ActivityType] = mapped_column(
        Enum(
            ActivityType,
            name="committee_activity_type",
            values_callable=_enum_values,
            create_constraint=True,
        ),
        nullable=False,
        default=ActivityType.OTHER,
    )

    bill: Mapped[Bill] = relationship(back_populates="committees")
