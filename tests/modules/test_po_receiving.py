"""
Tests for receiving goods against a purchase order
(``InventoryService.receive_inventory_from_po``).

PO-2025-001 (sent) orders 5 oak caskets at 1200 and 10 bronze urns at 200;
the urn line carries its own GL account, the casket line falls back to the
inventory asset account.
"""

from datetime import date
from decimal import Decimal

import pytest

from funeral_kernel.exceptions import NotFoundError, ValidationError
from funeral_modules.inventory.models import (
    PurchaseOrderReceiptStatus,
    ReceiptLineRequest,
    ReceiptMatchStatus,
)
from funeral_modules.inventory.service import InventoryService
from funeral_services.ports import GoPOLineItem, GoPurchaseOrder

PO_ID = "po-1"


def _po(status="sent", casket_item="item-casket"):
    return GoPurchaseOrder(
        id=PO_ID,
        po_number="PO-2025-001",
        vendor_id="vendor-1",
        vendor_name="Casket Supplier Inc",
        order_date=date(2025, 1, 2),
        status=status,
        line_items=(
            GoPOLineItem(
                "pol-1", "Oak casket", Decimal("5"), Decimal("1200"), Decimal("6000"),
                item_id=casket_item,
            ),
            GoPOLineItem(
                "pol-2", "Bronze urn", Decimal("10"), Decimal("200"), Decimal("2000"),
                gl_account_id="acct-1310", item_id="item-urn",
            ),
        ),
        total_amount=Decimal("8000"),
    )


@pytest.fixture
def open_po(procurement_port):
    procurement_port.purchase_orders[PO_ID] = _po()
    return procurement_port


@pytest.fixture
def receiving_service(session, inventory_port, financial_port, open_po, deterministic_clock):
    return InventoryService(
        session,
        inventory_port,
        financial_port=financial_port,
        clock=deterministic_clock,
        procurement_port=open_po,
    )


def _everything():
    return [ReceiptLineRequest("pol-1", "5"), ReceiptLineRequest("pol-2", "10")]


class TestReceiveFromPurchaseOrder:

    def test_full_receipt_creates_approved_bill(
        self, receiving_service, inventory_port, financial_port,
    ):
        result = receiving_service.receive_inventory_from_po(
            PO_ID, "main", _everything(), "staff-003", auto_create_ap_bill=True,
        )

        assert result.po_status is PurchaseOrderReceiptStatus.RECEIVED
        assert result.match_status is ReceiptMatchStatus.THREE_WAY
        assert result.ap_bill_id == "bill-1"
        assert result.total_amount == Decimal("8000.00")
        assert result.total_quantity_received == Decimal("15")
        assert result.received_date == date(2025, 1, 15)

        bill = financial_port.bill_commands[0]
        assert bill.status == "approved"
        assert bill.vendor_id == "vendor-1"
        assert bill.purchase_order_id == PO_ID
        assert bill.due_date == date(2025, 2, 14)
        assert [line.gl_account_id for line in bill.line_items] == ["acct-1300", "acct-1310"]
        assert [line.po_line_id for line in bill.line_items] == ["pol-1", "pol-2"]

    def test_stock_received_at_po_cost(self, receiving_service, inventory_port):
        receiving_service.receive_inventory_from_po(PO_ID, "main", _everything(), "staff-003")

        received = {c.item_id: c for c in inventory_port.received}
        assert received["item-casket"].quantity == Decimal("5")
        assert received["item-casket"].unit_cost == Decimal("1200")
        assert received["item-casket"].location_id == "main"
        assert received["item-casket"].purchase_order_id == PO_ID
        assert received["item-urn"].notes == "Received from PO PO-2025-001"

    def test_full_receipt_without_auto_bill(self, receiving_service, financial_port):
        result = receiving_service.receive_inventory_from_po(
            PO_ID, "main", _everything(), "staff-003",
        )

        assert result.po_status is PurchaseOrderReceiptStatus.RECEIVED
        assert result.match_status is ReceiptMatchStatus.TWO_WAY
        assert result.ap_bill_id is None
        assert financial_port.bill_commands == []

    def test_partial_receipt_never_billed(self, receiving_service, financial_port):
        result = receiving_service.receive_inventory_from_po(
            PO_ID, "main", [ReceiptLineRequest("pol-1", "3")], "staff-003",
            auto_create_ap_bill=True,
        )

        assert result.po_status is PurchaseOrderReceiptStatus.PARTIAL
        assert result.match_status is ReceiptMatchStatus.TWO_WAY
        assert result.total_amount == Decimal("3600.00")
        assert result.lines[0].variance == Decimal("-2")
        assert financial_port.bill_commands == []

    def test_second_receipt_completes_po(self, receiving_service, open_po, financial_port):
        receiving_service.receive_inventory_from_po(
            PO_ID, "main", [ReceiptLineRequest("pol-1", "3")], "staff-003",
        )

        result = receiving_service.receive_inventory_from_po(
            PO_ID, "main",
            [ReceiptLineRequest("pol-1", "2"), ReceiptLineRequest("pol-2", "10")],
            "staff-003",
            received_date=date(2025, 1, 14),
            auto_create_ap_bill=True,
        )

        assert result.po_status is PurchaseOrderReceiptStatus.RECEIVED
        assert result.ap_bill_id is not None
        assert len(open_po.get_receipts_by_purchase_order(PO_ID)) == 2
        assert financial_port.bill_commands[0].bill_date == date(2025, 1, 14)

    def test_rejections_recorded_on_receipt(self, receiving_service, open_po, inventory_port):
        receiving_service.receive_inventory_from_po(
            PO_ID, "main",
            [ReceiptLineRequest("pol-1", "4", "1", "Cracked lid"), ReceiptLineRequest("pol-2", "0")],
            "staff-003",
            notes="Truck 2",
        )

        command = open_po.receipt_commands[0]
        assert command.notes == "Truck 2"
        assert command.line_items[0].quantity_rejected == Decimal("1")
        assert command.line_items[0].rejection_reason == "Cracked lid"
        assert [c.item_id for c in inventory_port.received] == ["item-casket"]

    @pytest.mark.parametrize("quantity,allowed", [("11", True), ("12", False)])
    def test_over_receipt_tolerance(self, receiving_service, open_po, quantity, allowed):
        request = [ReceiptLineRequest("pol-2", quantity)]

        if allowed:
            result = receiving_service.receive_inventory_from_po(PO_ID, "main", request, "staff-003")
            assert result.lines[0].variance == Decimal("1")
        else:
            with pytest.raises(ValidationError) as exc_info:
                receiving_service.receive_inventory_from_po(PO_ID, "main", request, "staff-003")
            assert exc_info.value.field == "quantity_received"
            assert open_po.receipt_commands == []

    @pytest.mark.parametrize("status", ["draft", "received", "closed", "cancelled"])
    def test_po_must_be_open(self, receiving_service, open_po, status):
        open_po.purchase_orders[PO_ID] = _po(status=status)

        with pytest.raises(ValidationError) as exc_info:
            receiving_service.receive_inventory_from_po(PO_ID, "main", _everything(), "staff-003")

        assert exc_info.value.field == "po_status"
        assert open_po.receipt_commands == []

    def test_unknown_po_line(self, receiving_service, inventory_port):
        with pytest.raises(ValidationError) as exc_info:
            receiving_service.receive_inventory_from_po(
                PO_ID, "main", [ReceiptLineRequest("pol-9", "1")], "staff-003",
            )

        assert exc_info.value.field == "po_line_item_id"
        assert inventory_port.received == []

    def test_line_must_name_inventory_item(self, receiving_service, open_po):
        open_po.purchase_orders[PO_ID] = _po(casket_item="")

        with pytest.raises(ValidationError) as exc_info:
            receiving_service.receive_inventory_from_po(PO_ID, "main", _everything(), "staff-003")

        assert exc_info.value.field == "item_id"

    def test_unknown_po(self, receiving_service):
        with pytest.raises(NotFoundError):
            receiving_service.receive_inventory_from_po("po-404", "main", _everything(), "staff-003")

    @pytest.mark.parametrize("location,lines,field", [
        ("main", [], "lines"),
        (" ", [ReceiptLineRequest("pol-1", "1")], "location_id"),
    ])
    def test_request_shape(self, receiving_service, location, lines, field):
        with pytest.raises(ValidationError) as exc_info:
            receiving_service.receive_inventory_from_po(PO_ID, location, lines, "staff-003")
        assert exc_info.value.field == field

    def test_needs_procurement_port(self, session, inventory_port, deterministic_clock):
        service = InventoryService(session, inventory_port, clock=deterministic_clock)

        with pytest.raises(ValidationError) as exc_info:
            service.receive_inventory_from_po(PO_ID, "main", _everything(), "staff-003")

        assert exc_info.value.field == "procurement_port"

    def test_receipt_logged(self, receiving_service, captured_logs):
        receiving_service.receive_inventory_from_po(PO_ID, "main", _everything(), "staff-003")

        events = [r for r in captured_logs() if r["message"] == "inventory_received_from_po"]
        assert events[0]["receipt_id"] == "rcpt-1"
        assert events[0]["purchase_order_id"] == PO_ID
        assert events[0]["po_status"] == "received"


class TestReceiptLineRequest:

    @pytest.mark.parametrize("received,rejected,field", [
        ("-1", "0", "quantity_received"),
        ("NaN", "0", "quantity_received"),
        ("2", "-1", "quantity_rejected"),
        ("2", "Infinity", "quantity_rejected"),
    ])
    def test_quantities_validated(self, received, rejected, field):
        with pytest.raises(ValidationError) as exc_info:
            ReceiptLineRequest("pol-1", received, rejected)
        assert exc_info.value.field == field

    def test_line_id_required(self):
        with pytest.raises(ValidationError):
            ReceiptLineRequest("", "1")
