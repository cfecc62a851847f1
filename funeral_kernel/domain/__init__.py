"""
Pure domain layer.

Value objects and helpers with no dependencies on the ORM, the database or
I/O (apart from SystemClock, the one sanctioned source of wall-clock time).
"""

from funeral_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from funeral_kernel.domain.temporal import (
    ValidityInterval,
    new_business_key,
    next_version,
)
from funeral_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ValidityInterval",
    "new_business_key",
    "next_version",
    "Transition",
    "Workflow",
]
