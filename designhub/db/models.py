"""SQLAlchemy 2.0 declarative models.

Designs are schemaless documents: `name` and `uploaded_at` are real
columns because listing and version resolution filter and sort on them;
every other uploaded field lives in the `payload` JSON column.

Uses dialect-agnostic types (String, JSON) so the model works with both
PostgreSQL (production) and SQLite (tests).
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Design(Base):
    __tablename__ = "designs"

    # Stored as text so ids that are not UUIDs (imported records) still work.
    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False, index=True
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
