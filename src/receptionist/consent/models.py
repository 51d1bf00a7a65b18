"""
SQLAlchemy model for the append-only consent log.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from receptionist.shared.database import Base


class ConsentStatus(str, Enum):
    """Consent state recorded for a number on a channel."""

    ACTIVE = "active"
    REVOKED = "revoked"


class ConsentSource(str, Enum):
    """What produced a consent record."""

    KEYWORD_STOP = "keyword_stop"
    KEYWORD_START = "keyword_start"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConsentLog(Base):
    """Consent record. Rows are never updated; the newest row wins."""

    __tablename__ = "consent_logs"
    __table_args__ = (
        Index("ix_consent_logs_e164_channel_created", "e164", "channel", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    e164: Mapped[str] = mapped_column(String(64), nullable=False)
    channel: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
