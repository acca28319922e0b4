"""
Core DB models: a small key-value table holding the tracker's persisted text
(entry store JSON, theme preference).
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, String, DateTime, Text, select

from ramadhan_tracker.core.db import Base, session_scope


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class KeyValue(Base):
    """One persisted value. value is opaque text (usually JSON)."""
    __tablename__ = "key_values"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


def get_value(key: str) -> Optional[str]:
    """Return stored text for key, or None if the key was never written."""
    with session_scope() as session:
        row = session.execute(select(KeyValue).where(KeyValue.key == key)).scalars().first()
        return row.value if row else None


def set_value(key: str, value: str) -> None:
    """Upsert the text stored under key."""
    with session_scope() as session:
        now = _utc_now()
        row = session.execute(select(KeyValue).where(KeyValue.key == key)).scalars().first()
        if row:
            row.value = value
            row.updated_at = now
        else:
            session.add(KeyValue(key=key, value=value, created_at=now, updated_at=now))


class KeyValueStorage:
    """get/set facade over the key_values table; what EntryStore and ThemePreference persist through."""

    def get(self, key: str) -> Optional[str]:
        return get_value(key)

    def set(self, key: str, value: str) -> None:
        set_value(key, value)
