"""SQLAlchemy declarative base and shared helpers."""
from datetime import datetime, timezone
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def utc_now() -> datetime:
    """Timestamp assigned in Python so callers see it before the row is flushed."""
    return datetime.now(timezone.utc)
