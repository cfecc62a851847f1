"""Database layer - engine, base classes, types, and SCD2 persistence."""

from funeral_kernel.db.base import (
    UUID,
    Base,
    TemporalBase,
    TrackedBase,
    UTCDateTime,
    UUIDString,
    temporal_table_args,
)
from funeral_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from funeral_kernel.db.scd2 import SCD2Repository
from funeral_kernel.db.types import Money, parse_decimal, round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "TemporalBase",
    "temporal_table_args",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "SCD2Repository",
    "Money",
    "round_money",
    "parse_decimal",
    "to_decimal",
]
