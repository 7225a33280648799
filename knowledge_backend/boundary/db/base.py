"""
Declarative registry and column mixins for the ledger tables.

Every table in the knowledge store carries a UUID key and a pair of UTC
timestamps. The ``updated_at`` column doubles as the heartbeat used by
reconciliation to spot work that stopped moving.

Dependencies: sqlalchemy
System role: Metadata root shared by all ORM models
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Deterministic names for constraints declared without one
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Registry every knowledge store model is declared against."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDMixin:
    """Client-generated UUID4 primary key."""

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class TimestampMixin:
    """
    Creation and last-touch times, both timezone aware.

    ``onupdate`` also fires for the Core UPDATE statements issued by
    compare_and_set, so a successful claim always bumps ``updated_at``.

    Attributes:
        created_at: Set once at insert
        updated_at: Refreshed by every UPDATE
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
