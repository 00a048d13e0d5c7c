from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text
from chatbot_platform.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreEntry(Base):
    """One persisted collection (user list, project list or a message log)."""
    __tablename__ = "store_entries"

    key = Column(String(255), primary_key=True, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
