"""
SQLAlchemy model for outreach send attempts.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from receptionist.shared.database import Base, JSONType


class OutreachStatus(str, Enum):
    """Outcome of a send attempt."""

    SENT = "sent"
    FAILED = "failed"


class OutreachEvent(Base):
    """One row per (call, channel, dedupe window) send attempt."""

    __tablename__ = "outreach_events"
    __table_args__ = (
        UniqueConstraint(
            "call_sid",
            "channel",
            "dedupe_key",
            name="uq_outreach_events_call_channel_dedupe",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    call_sid: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    dedupe_key: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
