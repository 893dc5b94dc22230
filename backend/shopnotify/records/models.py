"""Generic record table backing the SQL record store."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from ..database.base import Base


class StoredRecord(Base):
    """One row per record of any host collection (calendarEvents, notifications, ...)."""

    __tablename__ = "records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(64), nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (Index("idx_records_collection", "collection"),)
