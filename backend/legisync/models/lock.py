"""
SystemLock model - one row per held lease.

The unique constraint on ``lock_key`` is what provides mutual exclusion
across processes: a second insert for the same key fails.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from legisync.db.base import Base


class SystemLock(Base):
    """Lease row used by the lock manager."""

    __tablename__ = "system_locks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    lock_key: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    locked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    def __repr__(self) -> str:
        return f"<SystemLock(key='{self.lock_key}', locked_at={self.locked_at})>"
