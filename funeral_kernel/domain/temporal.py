"""
Temporal value objects shared by every SCD Type 2 entity.

Entities are frozen dataclasses that carry ``business_key`` and ``version``.
Each state change returns a copy with ``version + 1``; persistence decides
the stored version number (see ``funeral_kernel.db.scd2``).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol, TypeVar
from uuid import uuid4


class TemporalEntity(Protocol):
    """Structural type of anything the SCD2 repository can persist."""

    business_key: str
    version: int
    created_by: str
    created_at: datetime | None


E = TypeVar("E")


@dataclass(frozen=True)
class ValidityInterval:
    """Validity window of one stored version."""

    version: int
    valid_from: datetime
    valid_to: datetime | None
    is_current: bool

    def contains(self, instant: datetime) -> bool:
        """True when ``instant`` falls in ``[valid_from, valid_to)``."""
        if instant < self.valid_from:
            return False
        return self.valid_to is None or instant < self.valid_to


def next_version(entity: E, **changes) -> E:
    """Copy ``entity`` with ``version + 1`` and the given field changes."""
    return replace(entity, version=entity.version + 1, **changes)  # type: ignore[attr-defined]


def new_business_key() -> str:
    return str(uuid4())
