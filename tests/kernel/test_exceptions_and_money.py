"""
Tests for the exception hierarchy and the money helpers.

Every error carries a machine-readable ``code`` and keeps its structured
fields as attributes.  Money is Decimal, rounded HALF_UP to cents.
"""

from decimal import Decimal

import pytest

from funeral_kernel.db.types import ZERO, parse_decimal, round_money, to_decimal
from funeral_kernel.exceptions import (
    AppointmentCancellationError,
    AppointmentCapacityError,
    AppointmentConflictError,
    BusinessHoursError,
    BusinessRuleViolationError,
    FuneralERPError,
    NetworkError,
    NotFoundError,
    PersistenceError,
    StaleVersionError,
    ValidationError,
)


class TestExceptionHierarchy:

    @pytest.mark.parametrize(
        "exc_class",
        [
            ValidationError,
            NotFoundError,
            BusinessRuleViolationError,
            PersistenceError,
            NetworkError,
        ],
    )
    def test_all_errors_share_base(self, exc_class):
        assert issubclass(exc_class, FuneralERPError)

    def test_appointment_errors_are_business_rule_violations(self):
        for exc_class in (
            BusinessHoursError,
            AppointmentCapacityError,
            AppointmentConflictError,
            AppointmentCancellationError,
        ):
            assert issubclass(exc_class, BusinessRuleViolationError)

    def test_stale_version_is_persistence_error(self):
        assert issubclass(StaleVersionError, PersistenceError)


class TestExceptionFields:

    def test_validation_error_field(self):
        err = ValidationError("Amount must be positive", field="amount")
        assert err.field == "amount"
        assert err.code == "VALIDATION_ERROR"
        assert str(err) == "Amount must be positive"

    def test_not_found_default_message(self):
        err = NotFoundError("Case", "case-1")
        assert str(err) == "Case not found: case-1"
        assert err.code == "NOT_FOUND"

    def test_capacity_error_fields(self):
        err = AppointmentCapacityError("dir-1", "2025-01-15", 4)
        assert err.rule == "max_appointments_per_day"
        assert err.limit == 4
        assert "dir-1" in str(err)

    def test_business_hours_rule(self):
        assert BusinessHoursError("Lunch").rule == "business_hours"

    def test_conflict_error_carries_appointment(self):
        err = AppointmentConflictError("dir-1", "appt-9")
        assert err.conflicting_appointment_id == "appt-9"
        assert err.code == "APPOINTMENT_CONFLICT"

    def test_network_error_status(self):
        err = NetworkError("Bad gateway", status_code=502)
        assert err.status_code == 502
        assert err.code == "NETWORK_ERROR"


class TestRoundMoney:

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1.005", "1.01"),
            ("1.004", "1.00"),
            ("-1.005", "-1.01"),
            ("2.5", "2.50"),
        ],
    )
    def test_half_up_to_cents(self, value, expected):
        assert round_money(Decimal(value)) == Decimal(expected)

    def test_zero_constant(self):
        assert ZERO == Decimal("0")


class TestToDecimal:

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_str(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("12.50") == Decimal("12.50")

    def test_decimal_passthrough(self):
        value = Decimal("3.14")
        assert to_decimal(value) is value

    def test_non_numeric_raises(self):
        with pytest.raises(ValueError, match="price must be numeric"):
            to_decimal("abc", "price")

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    @pytest.mark.parametrize("value", ["NaN", "sNaN", "Infinity", "-inf", float("nan"), Decimal("Infinity")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(ValueError, match="finite"):
            to_decimal(value, "amount")


class TestParseDecimal:

    def test_valid_value(self):
        assert parse_decimal("19.99", "unit_price") == Decimal("19.99")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "abc", None])
    def test_invalid_value_is_validation_error(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_decimal(value, "unit_price")
        assert exc_info.value.field == "unit_price"
