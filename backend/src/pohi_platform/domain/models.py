"""SQLAlchemy ORM models for the Pohi platform.

The marketplace keeps each domain collection as one JSON blob, so the
only table is a key-value table. SQLite-compatible types throughout.
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.sql import func

from pohi_platform.infra.database import Base


class KeyValueEntry(Base):
    """One whole-collection blob, addressed by its storage key."""

    __tablename__ = "kv_entries"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
