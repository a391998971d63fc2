"""SQLAlchemy declarative base and shared mixins."""
from datetime import datetime, timezone
from sqlalchemy import String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class CreatedAtMixin:
    """Adds an immutable ISO-8601 created_at column.

    Stored as text so the UTC offset survives SQLite, which has no
    timezone-aware datetime type.
    """
    created_at: Mapped[str] = mapped_column(String(40), nullable=False, default=utc_now_iso)
