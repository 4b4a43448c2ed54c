"""SQLAlchemy models — portable across SQLite and PostgreSQL."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from app.database import Base


def utcnow():
    return datetime.now(timezone.utc)


# ── Settings Entry ──────────────────────────────────────
class SettingsEntry(Base):
    """One key of the key-value settings store (e.g. ``smartPrCreator.webhooks``)."""

    __tablename__ = "settings_entries"

    key = Column(String(200), primary_key=True)
    value = Column(Text, default="null")  # JSON stored as text for portability
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
