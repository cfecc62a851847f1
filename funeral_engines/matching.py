"""
funeral_engines.matching -- Three-way match of purchase order, receipts and vendor bill.

Responsibility:
    Decide whether a vendor bill can be auto-approved by reconciling each
    billed line against the purchase order line it references and the
    quantities actually received for that line.  Produces the aggregate
    price and quantity variances plus a per-line breakdown.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import funeral_kernel (types, logging).

Invariants enforced:
    - Identical inputs produce identical outputs; no clock access.
    - Decimal arithmetic only; the percentage tolerance comparison never
      goes through float.

Match rules (tolerance defaults to +/-5% on unit price):
    - Received quantities are summed per PO line across all receipts.
    - A bill line with no PO line reference, or referencing a line that is
      not on the PO, invalidates the match.
    - Billed quantity above received quantity invalidates the match and
      adds the excess to the quantity variance.
    - |(bill price - PO price) / PO price| * 100 above the tolerance
      invalidates the match.
    - Price variance accumulates (bill price - PO price) * billed quantity
      over every line that could be compared, rounded to cents.

Usage:
    from funeral_engines.matching import ThreeWayMatcher, BilledLine

    result = ThreeWayMatcher().match(po_lines, received_lines, billed_lines)
    if result.is_valid:
        ...
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from funeral_kernel.db.types import round_money
from funeral_kernel.logging_config import get_logger

logger = get_logger("engines.matching")


class LineMatchIssue(str, Enum):
    """Why a billed line failed the match."""

    MISSING_PO_REFERENCE = "missing_po_reference"
    UNKNOWN_PO_LINE = "unknown_po_line"
    QUANTITY_EXCEEDS_RECEIVED = "quantity_exceeds_received"
    PRICE_OUT_OF_TOLERANCE = "price_out_of_tolerance"


@dataclass(frozen=True)
class MatchTolerance:
    """Tolerance rules for three-way matching."""

    price_tolerance_percent: Decimal = Decimal("5")

    def __post_init__(self) -> None:
        if self.price_tolerance_percent < 0:
            raise ValueError("price_tolerance_percent cannot be negative")


@dataclass(frozen=True)
class PurchaseOrderLine:
    line_id: str
    quantity: Decimal
    unit_price: Decimal


@dataclass(frozen=True)
class ReceivedLine:
    po_line_id: str
    quantity_received: Decimal


@dataclass(frozen=True)
class BilledLine:
    description: str
    quantity: Decimal
    unit_price: Decimal
    po_line_id: str | None = None


@dataclass(frozen=True)
class LineMatchResult:
    """Outcome for one billed line."""

    billed: BilledLine
    received_quantity: Decimal
    po_unit_price: Decimal | None
    price_variance_percent: Decimal | None
    issues: tuple[LineMatchIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class ThreeWayMatchResult:
    """Aggregate outcome of a three-way match."""

    is_valid: bool
    price_variance: Decimal
    quantity_variance: Decimal
    lines: tuple[LineMatchResult, ...]

    @property
    def failed_lines(self) -> tuple[LineMatchResult, ...]:
        return tuple(line for line in self.lines if not line.is_valid)


class ThreeWayMatcher:
    """
    PO / receipt / bill reconciliation.

    Contract:
        Pure function of its inputs.  Does not fetch documents and does not
        decide approval routing; callers map ``is_valid`` to their workflow.
    """

    def match(
        self,
        po_lines: Sequence[PurchaseOrderLine],
        received_lines: Sequence[ReceivedLine],
        billed_lines: Sequence[BilledLine],
        tolerance: MatchTolerance | None = None,
    ) -> ThreeWayMatchResult:
        tolerance = tolerance or MatchTolerance()
        t0 = time.monotonic()

        received: dict[str, Decimal] = {}
        for line in received_lines:
            received[line.po_line_id] = (
                received.get(line.po_line_id, Decimal("0")) + line.quantity_received
            )
        po_by_id = {line.line_id: line for line in po_lines}

        total_price_variance = Decimal("0")
        total_quantity_variance = Decimal("0")
        results: list[LineMatchResult] = []

        for billed in billed_lines:
            if not billed.po_line_id:
                results.append(LineMatchResult(
                    billed=billed,
                    received_quantity=Decimal("0"),
                    po_unit_price=None,
                    price_variance_percent=None,
                    issues=(LineMatchIssue.MISSING_PO_REFERENCE,),
                ))
                continue

            po_line = po_by_id.get(billed.po_line_id)
            if po_line is None:
                results.append(LineMatchResult(
                    billed=billed,
                    received_quantity=Decimal("0"),
                    po_unit_price=None,
                    price_variance_percent=None,
                    issues=(LineMatchIssue.UNKNOWN_PO_LINE,),
                ))
                continue

            issues: list[LineMatchIssue] = []
            received_qty = received.get(billed.po_line_id, Decimal("0"))
            if billed.quantity > received_qty:
                issues.append(LineMatchIssue.QUANTITY_EXCEEDS_RECEIVED)
                total_quantity_variance += billed.quantity - received_qty

            variance_pct = _price_variance_percent(billed.unit_price, po_line.unit_price)
            if variance_pct is None or abs(variance_pct) > tolerance.price_tolerance_percent:
                issues.append(LineMatchIssue.PRICE_OUT_OF_TOLERANCE)

            total_price_variance += (billed.unit_price - po_line.unit_price) * billed.quantity

            results.append(LineMatchResult(
                billed=billed,
                received_quantity=received_qty,
                po_unit_price=po_line.unit_price,
                price_variance_percent=variance_pct,
                issues=tuple(issues),
            ))

        result = ThreeWayMatchResult(
            is_valid=all(r.is_valid for r in results),
            price_variance=round_money(total_price_variance),
            quantity_variance=total_quantity_variance,
            lines=tuple(results),
        )

        logger.info("three_way_match_completed", extra={
            "line_count": len(results),
            "is_valid": result.is_valid,
            "failed_line_count": len(result.failed_lines),
            "price_variance": str(result.price_variance),
            "quantity_variance": str(result.quantity_variance),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return result


def _price_variance_percent(bill_price: Decimal, po_price: Decimal) -> Decimal | None:
    """Signed percentage difference of the billed unit price from the PO price.

    None when the PO price is zero and the billed price is not (unbounded).
    """
    if po_price == 0:
        return Decimal("0") if bill_price == 0 else None
    return (bill_price - po_price) / po_price * Decimal("100")
