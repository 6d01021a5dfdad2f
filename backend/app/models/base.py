"""SQLAlchemy declarative base and shared mixins."""
import uuid
from datetime import datetime, timezone
from sqlalchemy import String, DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Stored ids are 32 lowercase hex characters (uuid4().hex).
ID_LENGTH = 32


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class IdMixin:
    """Adds a hex string primary key assigned on creation."""
    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=new_id)


class TimestampMixin:
    """Adds created_at and updated_at columns.

    created_at is set client-side so insertion order survives backends whose
    now() only has second resolution.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )


class UserMixin:
    """Adds the owning user's id."""
    user_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False, index=True)
