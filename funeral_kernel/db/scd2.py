"""
SCD2Repository -- generic SCD Type 2 persistence for versioned entities.

Responsibility:
    One implementation of the close-current / insert-next write path and
    the temporal read queries, shared by every versioned entity (cases,
    contracts, payments, contacts, memorial templates, policies,
    appointments).  Concrete repositories subclass it, set ``model`` and
    ``entity_type``, and add entity-specific finders on top of
    ``find_current``.

Architecture position:
    Kernel > DB.  Depends on db/base.py (TemporalBase) and domain/clock.py.
    Module ORM models supply ``from_dto`` / ``to_dto`` for mapping.

Invariants enforced:
    - Exactly one row per business key has ``is_current = true`` and
      ``valid_to IS NULL``.  ``save`` closes the current row and inserts the
      next version inside the caller's transaction; the partial unique index
      rejects a second current row if two writers race.
    - Versions per business key are 1, 2, 3, ... with no gaps, and version
      N's ``valid_to`` equals version N+1's ``valid_from``.
    - Content is never updated in place.

Failure modes:
    - NotFoundError for lookups with no matching row.
    - StaleVersionError when the entity being saved was not derived from the
      stored current version (lost update).
    - PersistenceError wrapping any SQLAlchemy failure.

Transaction boundary:
    The repository flushes but never commits or rolls back.  The calling
    use-case service owns the transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from funeral_kernel.db.base import TemporalBase
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.domain.temporal import ValidityInterval
from funeral_kernel.exceptions import (
    NotFoundError,
    PersistenceError,
    StaleVersionError,
)
from funeral_kernel.logging_config import get_logger

logger = get_logger("db.scd2")

ModelT = TypeVar("ModelT", bound=TemporalBase)
EntityT = TypeVar("EntityT")


class SCD2Repository(Generic[ModelT, EntityT]):
    """
    Base class for SCD Type 2 repositories.

    Contract:
        Subclasses set ``model`` (a TemporalBase ORM class exposing
        ``from_dto(entity)`` and ``to_dto()``) and ``entity_type`` (used in
        errors and logs).  Entities expose ``business_key``, ``version``,
        ``created_by`` and ``created_at``.
    """

    model: ClassVar[type[TemporalBase]]
    entity_type: ClassVar[str]

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, id_or_key: UUID | str) -> EntityT:
        """Look up a row by its row id, falling back to the current version of a business key."""
        row = None
        row_id = _as_uuid(id_or_key)
        if row_id is not None:
            row = self._execute(lambda: self._session.get(self.model, row_id))
        if row is None:
            row = self._current_row(str(id_or_key))
        if row is None:
            raise NotFoundError(self.entity_type, str(id_or_key))
        return row.to_dto()

    def find_by_business_key(self, business_key: str) -> EntityT | None:
        """Current version for ``business_key``, or None."""
        row = self._current_row(business_key)
        return row.to_dto() if row is not None else None

    def get_current(self, business_key: str) -> EntityT:
        """Current version for ``business_key``; NotFoundError if none."""
        entity = self.find_by_business_key(business_key)
        if entity is None:
            raise NotFoundError(self.entity_type, business_key)
        return entity

    def find_at_time(self, business_key: str, as_of: datetime) -> EntityT:
        """Version valid at ``as_of``: valid_from <= as_of < valid_to (or open)."""
        m = self.model
        stmt = (
            select(m)
            .where(
                m.business_key == business_key,
                m.valid_from <= as_of,
                or_(m.valid_to.is_(None), m.valid_to > as_of),
            )
            .order_by(m.version.desc())
            .limit(1)
        )
        row = self._execute(lambda: self._session.scalars(stmt).first())
        if row is None:
            raise NotFoundError(
                self.entity_type,
                business_key,
                f"{self.entity_type} {business_key} has no version valid at {as_of.isoformat()}",
            )
        return row.to_dto()

    def find_history(self, business_key: str) -> list[EntityT]:
        """All versions ordered by version; NotFoundError if the key is unknown."""
        rows = self._history_rows(business_key)
        if not rows:
            raise NotFoundError(self.entity_type, business_key)
        return [row.to_dto() for row in rows]

    def find_intervals(self, business_key: str) -> list[ValidityInterval]:
        """Validity window of every stored version, ordered by version."""
        return [
            ValidityInterval(
                version=row.version,
                valid_from=row.valid_from,
                valid_to=row.valid_to,
                is_current=row.is_current,
            )
            for row in self._history_rows(business_key)
        ]

    def find_current(self, *criteria: Any, order_by: Any = None) -> list[EntityT]:
        """Current versions matching the given SQLAlchemy criteria."""
        m = self.model
        stmt = select(m).where(m.is_current.is_(True), *criteria)
        stmt = stmt.order_by(order_by if order_by is not None else m.created_at)
        rows = self._execute(lambda: list(self._session.scalars(stmt)))
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity: EntityT, actor_id: str | None = None) -> EntityT:
        """
        Persist ``entity`` as the new current version of its business key.

        Preconditions:
            - If a current version exists, the entity was derived from it:
              ``entity.version`` is greater than the stored version and, for
              an entity read from storage, ``entity.id`` is the current row id.
        Postconditions:
            - The previous current row (if any) is closed at ``now``.
            - A new row is current with ``valid_from = now`` and version
              ``previous + 1`` (or 1).

        Returns:
            The entity as stored (with the stored version number).
        """
        business_key = entity.business_key
        now = self._clock.now()
        actor = actor_id or entity.created_by

        current = self._current_row(business_key, for_update=True)
        if current is None:
            version = 1
        else:
            loaded_from = getattr(entity, "id", None)
            if entity.version <= current.version or (
                loaded_from is not None and loaded_from != current.id
            ):
                raise StaleVersionError(
                    self.entity_type, business_key, entity.version, current.version
                )
            version = current.version + 1
            current.valid_to = now
            current.is_current = False
            current.updated_at = now
            current.updated_by = actor
            self._execute(self._session.flush)

        row = self.model.from_dto(entity)
        row.business_key = business_key
        row.version = version
        row.valid_from = now
        row.valid_to = None
        row.is_current = True
        row.created_at = entity.created_at or now
        row.created_by = entity.created_by or actor
        row.updated_at = now
        row.updated_by = actor

        def _insert() -> None:
            self._session.add(row)
            self._session.flush()

        self._execute(_insert)

        logger.info(
            "scd2_version_saved",
            extra={
                "entity_type": self.entity_type,
                "business_key": business_key,
                "version": version,
                "closed_version": current.version if current is not None else None,
            },
        )
        return row.to_dto()

    def delete(self, business_key: str, actor_id: str | None = None) -> None:
        """Soft delete: close the current version without a successor."""
        current = self._current_row(business_key, for_update=True)
        if current is None:
            raise NotFoundError(self.entity_type, business_key)

        now = self._clock.now()
        current.valid_to = now
        current.is_current = False
        current.updated_at = now
        current.updated_by = actor_id or current.updated_by
        self._execute(self._session.flush)

        logger.info(
            "scd2_version_closed",
            extra={
                "entity_type": self.entity_type,
                "business_key": business_key,
                "version": current.version,
            },
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current_row(self, business_key: str, for_update: bool = False) -> TemporalBase | None:
        m = self.model
        stmt = select(m).where(m.business_key == business_key, m.is_current.is_(True))
        if for_update:
            stmt = stmt.with_for_update()
        return self._execute(lambda: self._session.scalars(stmt).first())

    def _history_rows(self, business_key: str) -> list[TemporalBase]:
        m = self.model
        stmt = select(m).where(m.business_key == business_key).order_by(m.version)
        return self._execute(lambda: list(self._session.scalars(stmt)))

    def _execute(self, operation):
        try:
            return operation()
        except SQLAlchemyError as exc:
            logger.error(
                "scd2_persistence_failed",
                extra={"entity_type": self.entity_type, "error": str(exc)},
            )
            raise PersistenceError(
                f"{self.entity_type} persistence failed: {exc}"
            ) from exc


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None
