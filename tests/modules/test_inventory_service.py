"""
Tests for case-driven inventory (``funeral_modules.inventory``).

Stock: 5 oak caskets at WAC 2100, 10 urns at WAC 250 and 2 chapel tents
with no WAC (current cost 150) at the main warehouse; the chapel holds no
caskets yet.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from funeral_kernel.exceptions import NotFoundError, ValidationError
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.case.models import CaseType
from funeral_modules.case.repository import CaseRepository
from funeral_modules.inventory.models import ReservationRequest
from funeral_modules.inventory.service import InventoryService
from funeral_services.ports import GoInventoryItem


@pytest.fixture
def stocked_port(inventory_port):
    inventory_port.add_item(GoInventoryItem(
        "item-casket", "CSK-OAK", "Oak casket", "casket", current_cost=Decimal("2000"),
    ))
    inventory_port.add_item(GoInventoryItem(
        "item-urn", "URN-BRZ", "Bronze urn", "urn", current_cost=Decimal("240"),
    ))
    inventory_port.add_item(GoInventoryItem(
        "item-tent", "TNT-CHP", "Graveside tent", "facility", current_cost=Decimal("150"),
    ))
    inventory_port.add_balance("item-casket", "main", "5", "2100")
    inventory_port.add_balance("item-casket", "chapel", "0", "2100")
    inventory_port.add_balance("item-urn", "main", "10", "250")
    inventory_port.add_balance("item-tent", "main", "2", "0")
    return inventory_port


@pytest.fixture
def inventory_service(session, stocked_port, financial_port, deterministic_clock):
    return InventoryService(
        session, stocked_port, financial_port=financial_port, clock=deterministic_clock,
    )


@pytest.fixture
def reserved_case(inventory_service, case_service, active_case, test_actor_id):
    case = case_service.link_contract(active_case.business_key, "go-contract-1", test_actor_id)
    inventory_service.reserve_inventory_for_case(
        case.business_key,
        [
            ReservationRequest("item-casket", "1", "main"),
            ReservationRequest("item-urn", "2", "main"),
            ReservationRequest("item-tent", "1", "main"),
        ],
        test_actor_id,
    )
    return case


class TestReservations:

    def test_reserve_for_active_case(self, reserved_case, stocked_port):
        reservations = stocked_port.get_reservations_by_case(reserved_case.business_key)

        assert [r.item_id for r in reservations] == ["item-casket", "item-urn", "item-tent"]
        assert {r.contract_id for r in reservations} == {"go-contract-1"}
        assert {r.status for r in reservations} == {"active"}

    def test_inquiry_case_cannot_reserve(
        self, inventory_service, case_service, funeral_home_id, test_actor_id,
    ):
        case = case_service.create_case(funeral_home_id, "A B", CaseType.AT_NEED, test_actor_id)
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.reserve_inventory_for_case(
                case.business_key, [ReservationRequest("item-urn", "1", "main")], test_actor_id,
            )
        assert exc_info.value.field == "status"

    def test_items_required(self, inventory_service, active_case, test_actor_id):
        with pytest.raises(ValidationError):
            inventory_service.reserve_inventory_for_case(active_case.business_key, [], test_actor_id)

    @pytest.mark.parametrize("quantity", ["0", "-1", "NaN", "Infinity", "two"])
    def test_request_quantity_positive(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            ReservationRequest("item-urn", quantity, "main")
        assert exc_info.value.field == "quantity"

    def test_release_active_reservations(
        self, inventory_service, reserved_case, stocked_port, test_actor_id,
    ):
        result = inventory_service.release_inventory_for_case(
            reserved_case.business_key, "Family chose cremation", test_actor_id,
        )

        assert result.released_count == 3
        assert stocked_port.released_ids == ["res-1", "res-2", "res-3"]
        again = inventory_service.release_inventory_for_case(
            reserved_case.business_key, "again", test_actor_id,
        )
        assert again.released_count == 0


class TestCommitReservations:

    def test_commit_posts_cogs_per_account(
        self, inventory_service, reserved_case, financial_port, case_service, test_actor_id,
    ):
        delivered_at = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

        result = inventory_service.commit_inventory_reservation(
            reserved_case.business_key, test_actor_id,
        )

        costs = {i.item_id: (i.unit_cost, i.total_cost, i.cogs_account) for i in result.items}
        assert costs == {
            "item-casket": (Decimal("2100"), Decimal("2100.00"), "5100"),
            "item-urn": (Decimal("250"), Decimal("500.00"), "5100"),
            "item-tent": (Decimal("150"), Decimal("150.00"), "5300"),
        }
        assert result.cogs_amount == Decimal("2750.00")
        assert result.total_quantity == Decimal("4")
        assert result.gross_margin_percent is None

        entry = financial_port.journal_entries[result.journal_entry_id]
        assert entry.status == "posted"
        assert [(line.account_id, line.debit, line.credit) for line in entry.lines] == [
            ("acct-5100", Decimal("2600.00"), Decimal("0")),
            ("acct-5300", Decimal("150.00"), Decimal("0")),
            ("acct-1300", Decimal("0"), Decimal("2750.00")),
        ]

        case = case_service.get_case(reserved_case.business_key)
        assert case.cogs_amount == Decimal("2750.00")
        assert case.cogs_journal_entry_id == result.journal_entry_id
        assert case.merchandise_delivered_at == delivered_at
        assert case.merchandise_delivered_by == test_actor_id

    def test_gross_margin_after_revenue(
        self, inventory_service, reserved_case, session, deterministic_clock, test_actor_id,
    ):
        cases = CaseRepository(session, deterministic_clock)
        with unit_of_work(session, "finalize"):
            cases.save(
                reserved_case.finalize("je-rev", Decimal("7500.00"), deterministic_clock.now()),
                test_actor_id,
            )

        result = inventory_service.commit_inventory_reservation(
            reserved_case.business_key, test_actor_id,
        )

        assert result.gross_profit == Decimal("4750.00")
        assert result.gross_margin_percent == Decimal("63.33")

    def test_second_commit_has_nothing_left(self, inventory_service, reserved_case, test_actor_id):
        inventory_service.commit_inventory_reservation(reserved_case.business_key, test_actor_id)

        with pytest.raises(ValidationError, match="No uncommitted reservations"):
            inventory_service.commit_inventory_reservation(reserved_case.business_key, test_actor_id)

    def test_case_without_reservations(self, inventory_service, active_case, test_actor_id):
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.commit_inventory_reservation(active_case.business_key, test_actor_id)
        assert exc_info.value.field == "reservations"

    def test_requires_financial_port(
        self, session, stocked_port, deterministic_clock, reserved_case, test_actor_id,
    ):
        service = InventoryService(session, stocked_port, clock=deterministic_clock)
        with pytest.raises(ValidationError) as exc_info:
            service.commit_inventory_reservation(reserved_case.business_key, test_actor_id)
        assert exc_info.value.field == "financial_port"


class TestCycleCount:

    def test_shortage_adjusts_inventory(self, inventory_service, stocked_port):
        result = inventory_service.cycle_count(
            "item-casket", "main", "4", "staff-002", date(2025, 1, 15),
            variance_reason="Damaged in storage",
        )

        assert result.variance == Decimal("-1")
        assert result.variance_percent == Decimal("-20.00")
        assert result.adjustment_required
        assert result.adjustment_id == "adj-1"
        command = stocked_port.adjustments[0]
        assert command.quantity == Decimal("-1")
        assert command.reason == "Damaged in storage"
        assert command.notes == "Physical count: 4, System count: 5."

    def test_exact_count_no_adjustment(self, inventory_service, stocked_port):
        result = inventory_service.cycle_count("item-urn", "main", "10", "staff-002", date(2025, 1, 15))

        assert not result.adjustment_required
        assert result.adjustment_id is None
        assert stocked_port.adjustments == []

    def test_all_input_errors_reported(self, inventory_service):
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.cycle_count("item-urn", " ", "-1", "", date(2025, 1, 16))

        message = str(exc_info.value)
        for expected in (
            "Location ID is required",
            "Physical quantity cannot be negative",
            "Counted by user is required",
            "Count date cannot be in the future",
        ):
            assert expected in message

    @pytest.mark.parametrize("physical", ["NaN", "Infinity", "four"])
    def test_non_numeric_count_rejected(self, inventory_service, stocked_port, physical):
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.cycle_count("item-urn", "main", physical, "staff-002", date(2025, 1, 15))
        assert exc_info.value.field == "physical_quantity"
        assert stocked_port.adjustments == []

    def test_unknown_balance(self, inventory_service):
        with pytest.raises(NotFoundError):
            inventory_service.cycle_count("item-urn", "annex", "1", "staff-002", date(2025, 1, 15))


class TestTransfer:

    def test_moves_stock_between_locations(self, inventory_service, stocked_port):
        result = inventory_service.transfer_inventory(
            "item-casket", "main", "chapel", "2", "staff-002", notes="Viewing room display",
        )

        assert result.source_balance.quantity_on_hand == Decimal("3")
        assert result.destination_balance.quantity_on_hand == Decimal("2")
        assert len(result.all_balances) == 2
        assert stocked_port.transfers[0].notes == "Viewing room display"

    def test_same_location_rejected(self, inventory_service):
        with pytest.raises(ValidationError, match="must be different"):
            inventory_service.transfer_inventory("item-casket", "main", "main", "1", "s")

    @pytest.mark.parametrize("quantity", ["0", "1.5", "NaN", "Infinity"])
    def test_whole_positive_quantity(self, inventory_service, quantity):
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.transfer_inventory("item-casket", "main", "chapel", quantity, "s")
        assert exc_info.value.field == "quantity"

    def test_reserved_stock_not_transferable(self, inventory_service, stocked_port):
        stocked_port.add_balance("item-casket", "main", "5", "2100", reserved="4")

        with pytest.raises(ValidationError, match="Available: 1, Requested: 2"):
            inventory_service.transfer_inventory("item-casket", "main", "chapel", "2", "s")
        assert stocked_port.transfers == []

    def test_unknown_destination(self, inventory_service):
        with pytest.raises(ValidationError) as exc_info:
            inventory_service.transfer_inventory("item-urn", "main", "chapel", "1", "s")
        assert exc_info.value.field == "to_location_id"


class TestValuationReport:

    def test_totals_and_roll_ups(self, inventory_service):
        report = inventory_service.inventory_valuation_report("staff-003")

        assert report.total_items == 3
        assert report.total_quantity == Decimal("17")
        assert report.total_value == Decimal("13000.00")
        assert report.average_value_per_item == Decimal("4333.33")
        assert report.as_of_date == date(2025, 1, 15)
        categories = {g.key: (g.item_count, g.total_value) for g in report.categories}
        assert categories == {
            "casket": (1, Decimal("10500.00")),
            "urn": (1, Decimal("2500.00")),
            "facility": (1, Decimal("0.00")),
        }
        assert [(g.key, g.name) for g in report.locations] == [("main", "Main")]

    def test_zero_balances_optional(self, inventory_service):
        report = inventory_service.inventory_valuation_report(
            "staff-003", include_zero_balances=True,
        )
        assert report.total_items == 4
        assert {g.key for g in report.locations} == {"main", "chapel"}

    def test_filters(self, inventory_service):
        report = inventory_service.inventory_valuation_report(
            "staff-003", category="urn", location_id="main",
        )
        assert [line.sku for line in report.lines] == ["URN-BRZ"]
        assert report.category_filter == "urn"

    def test_empty_report(self, inventory_service):
        report = inventory_service.inventory_valuation_report("staff-003", category="vault")
        assert report.total_items == 0
        assert report.average_value_per_item == Decimal("0")

    def test_future_as_of_rejected(self, inventory_service):
        with pytest.raises(ValidationError):
            inventory_service.inventory_valuation_report("staff-003", as_of_date=date(2025, 2, 1))

    def test_generated_by_required(self, inventory_service):
        with pytest.raises(ValidationError):
            inventory_service.inventory_valuation_report(" ")
