"""
funeral_engines.variance -- Quantity and value variance calculations.

Responsibility:
    Expected-versus-actual arithmetic shared by use cases: physical count
    against system quantity (cycle counts), original against renewed
    contract totals, and revenue against cost (case gross margin).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Decimal arithmetic; percentages rounded to 2 places with ROUND_HALF_UP.
    - Division-by-zero safe: a zero baseline never raises.

Usage:
    from funeral_engines.variance import VarianceCalculator

    calc = VarianceCalculator()
    result = calc.count_variance(system_quantity=Decimal("10"),
                                 physical_quantity=Decimal("8"))
    result.variance            # Decimal("-2")
    result.variance_percent    # Decimal("-20.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from funeral_kernel.db.types import round_money
from funeral_kernel.logging_config import get_logger

logger = get_logger("engines.variance")

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class VarianceResult:
    """Actual minus expected, with the percentage relative to expected."""

    expected: Decimal
    actual: Decimal
    variance: Decimal
    variance_percent: Decimal

    @property
    def is_zero(self) -> bool:
        return self.variance == 0

    @property
    def is_favorable(self) -> bool:
        """Actual at or above expected (more stock, higher total)."""
        return self.variance >= 0


@dataclass(frozen=True)
class MarginResult:
    revenue: Decimal
    cost: Decimal
    gross_profit: Decimal
    gross_margin_percent: Decimal


class VarianceCalculator:
    """
    Stateless variance arithmetic.

    Contract:
        Pure functions -- no I/O, no clock.
    """

    def count_variance(
        self,
        system_quantity: Decimal,
        physical_quantity: Decimal,
    ) -> VarianceResult:
        """
        Variance of a physical count against the system quantity.

        When the system quantity is zero the percentage is 100 if anything
        was found and 0 otherwise.
        """
        variance = physical_quantity - system_quantity
        if system_quantity == 0:
            percent = _HUNDRED if physical_quantity > 0 else Decimal("0")
        else:
            percent = variance / system_quantity * _HUNDRED
        result = VarianceResult(
            expected=system_quantity,
            actual=physical_quantity,
            variance=variance,
            variance_percent=round_money(percent),
        )
        logger.debug("count_variance_calculated", extra={
            "system_quantity": str(system_quantity),
            "physical_quantity": str(physical_quantity),
            "variance": str(variance),
        })
        return result

    def value_change(self, original: Decimal, new: Decimal) -> VarianceResult:
        """Change from ``original`` to ``new``; 0% when the original is zero."""
        difference = new - original
        percent = difference / original * _HUNDRED if original > 0 else Decimal("0")
        return VarianceResult(
            expected=original,
            actual=new,
            variance=difference,
            variance_percent=round_money(percent),
        )

    def gross_margin(self, revenue: Decimal, cost: Decimal) -> MarginResult:
        """Gross profit and margin percentage; 0% margin on zero revenue."""
        profit = revenue - cost
        percent = profit / revenue * _HUNDRED if revenue > 0 else Decimal("0")
        return MarginResult(
            revenue=revenue,
            cost=cost,
            gross_profit=round_money(profit),
            gross_margin_percent=round_money(percent),
        )
