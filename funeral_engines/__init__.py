"""
Module: funeral_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by
    the use-case services in ``funeral_modules``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import funeral_kernel.  MUST NOT import funeral_modules or
    funeral_services.

Invariants enforced:
    - Purity: engines never read the clock; dates and times are parameters.
    - Decimal-only arithmetic for money and percentages.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from funeral_engines.matching import ThreeWayMatcher
    from funeral_engines.availability import AvailabilityEngine
    from funeral_engines.similarity import SimilarityEngine
    from funeral_engines.variance import VarianceCalculator
"""

from funeral_engines.availability import (
    AvailabilityEngine,
    AvailabilitySlot,
    BookedInterval,
    BusinessHours,
)
from funeral_engines.matching import (
    BilledLine,
    MatchTolerance,
    PurchaseOrderLine,
    ReceivedLine,
    ThreeWayMatcher,
    ThreeWayMatchResult,
)
from funeral_engines.similarity import (
    ContactFingerprint,
    DuplicatePair,
    SimilarityEngine,
)
from funeral_engines.variance import MarginResult, VarianceCalculator, VarianceResult

__all__ = [
    "AvailabilityEngine",
    "AvailabilitySlot",
    "BookedInterval",
    "BusinessHours",
    "BilledLine",
    "MatchTolerance",
    "PurchaseOrderLine",
    "ReceivedLine",
    "ThreeWayMatcher",
    "ThreeWayMatchResult",
    "ContactFingerprint",
    "DuplicatePair",
    "SimilarityEngine",
    "MarginResult",
    "VarianceCalculator",
    "VarianceResult",
]
