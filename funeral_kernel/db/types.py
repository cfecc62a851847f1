"""
Module: funeral_kernel.db.types
Responsibility: Annotated column type aliases and the money helpers every
    entity and use case shares, so amounts are stored and rounded identically
    across cases, contracts, payments and Go backend payloads.
Architecture position: Kernel > DB.  May be imported by domain entities,
    ORM models and services.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Amounts are Decimal, stored as Numeric(38, 9),
      and rounded only through round_money() (ROUND_HALF_UP, cents).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from funeral_kernel.exceptions import ValidationError

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Stable identifier surviving all SCD2 versions of one entity
BusinessKey = Annotated[str, String(100)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(5000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to ``decimal_places`` (cents by default).

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Coerce an int, str or Decimal to a finite Decimal.

    Floats are converted through ``str`` so that ``0.1`` becomes
    ``Decimal("0.1")`` rather than its binary expansion.  Go backend JSON
    numbers arrive as floats, which is the main caller of that branch.

    Raises:
        ValueError: If the value is not numeric, or is NaN or infinite.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got bool")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be a finite number, got {value!r}")
    return result


def parse_decimal(value: Any, field: str = "amount") -> Decimal:
    """``to_decimal`` for command input: failures raise ``ValidationError``."""
    try:
        return to_decimal(value, field)
    except ValueError as exc:
        raise ValidationError(str(exc), field=field) from exc
