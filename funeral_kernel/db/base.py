"""
Module: funeral_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the UUID primary key convention, the timezone-safe datetime
    type, the audit mixin, and the SCD Type 2 temporal mixin shared by every
    versioned entity table.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel; every ORM module imports from here.  MUST NOT import from
    modules, services, or outer layers.

Invariants enforced:
    - UUID primary keys: every row (every *version* of a temporal entity)
      gets its own uuid4 id.  The business key is what survives versions.
    - Decimal precision: Decimal maps to Numeric(38, 9).
    - Timezone-aware datetimes on every backend: UTCDateTime normalizes to
      UTC on the way in and re-attaches UTC on the way out, so SQLite and
      PostgreSQL rows compare identically against aware ``as_of`` values.
    - At most one current row per business key: TemporalBase tables carry a
      partial unique index on ``business_key WHERE is_current``.

Audit relevance:
    TrackedBase.created_at/created_by describe when and by whom the logical
    entity was created (carried forward on every version); updated_at and
    updated_by describe the write that produced or closed the row.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(str(value))
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored in UTC.

    SQLite has no timezone support and hands back naive values; PostgreSQL
    returns aware values in the session time zone.  Both come back from
    this type as aware UTC datetimes.  Naive values bound into queries are
    interpreted as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - Decimal maps to Numeric(38, 9).
        - datetime maps to UTCDateTime.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Actors are the user identifiers of the web application (strings), not
    UUIDs: staff ids, family portal ids and the ``system`` actor all appear.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)


class TemporalBase(TrackedBase):
    """
    Abstract base for SCD Type 2 versioned entities.

    Contract:
        One logical entity is the set of rows sharing ``business_key``.
        Rows are never updated in content: the write path closes the current
        row (``valid_to`` set, ``is_current`` false) and inserts the next
        version.  Concrete tables must include ``temporal_table_args()`` in
        their ``__table_args__``.
    """

    __abstract__ = True

    business_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=1)
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    valid_to: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


def temporal_table_args(tablename: str, *extra: Any) -> tuple[Any, ...]:
    """
    Constraints every TemporalBase table needs, plus any table-specific extras.

    - (business_key, version) is unique.
    - business_key is unique among current rows (partial index).
    """
    return (
        UniqueConstraint("business_key", "version", name=f"uq_{tablename}_key_version"),
        Index(
            f"uq_{tablename}_current_key",
            "business_key",
            unique=True,
            sqlite_where=text("is_current = 1"),
            postgresql_where=text("is_current"),
        ),
        *extra,
    )


# Re-export UUID for convenience
UUID = PyUUID
