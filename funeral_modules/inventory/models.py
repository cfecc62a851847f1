"""
Inventory use-case inputs and results (``funeral_modules.inventory.models``).

Frozen value objects returned by ``InventoryService``.  Quantities and money
are Decimal; the inventory of record lives in the Go backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from funeral_kernel.db.types import parse_decimal
from funeral_kernel.exceptions import ValidationError
from funeral_services.ports import (
    GoInventoryBalance,
    GoInventoryReservation,
    GoInventoryTransaction,
    GoReceipt,
)


@dataclass(frozen=True)
class ReservationRequest:
    item_id: str
    quantity: Decimal
    location_id: str

    def __post_init__(self) -> None:
        if not self.item_id:
            raise ValidationError("Item ID is required", field="item_id")
        if not self.location_id:
            raise ValidationError("Location ID is required", field="location_id")
        object.__setattr__(self, "quantity", parse_decimal(self.quantity, "quantity"))
        if self.quantity <= 0:
            raise ValidationError(
                f"Reservation quantity must be positive for item {self.item_id}",
                field="quantity",
            )


@dataclass(frozen=True)
class ReservationResult:
    case_id: str
    reservations: tuple[GoInventoryReservation, ...]


@dataclass(frozen=True)
class ReleaseResult:
    case_id: str
    released_count: int


@dataclass(frozen=True)
class CommittedItem:
    reservation_id: str
    item_id: str
    sku: str
    description: str
    quantity: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    cogs_account: str


@dataclass(frozen=True)
class CommitResult:
    case_id: str
    items: tuple[CommittedItem, ...]
    cogs_amount: Decimal
    journal_entry_id: str
    delivered_at: datetime
    gross_profit: Decimal | None = None
    gross_margin_percent: Decimal | None = None

    @property
    def total_quantity(self) -> Decimal:
        return sum((i.quantity for i in self.items), Decimal("0"))


@dataclass(frozen=True)
class CycleCountResult:
    item_id: str
    location_id: str
    system_quantity: Decimal
    physical_quantity: Decimal
    variance: Decimal
    variance_percent: Decimal
    counted_by: str
    count_date: date
    adjustment_id: str | None = None

    @property
    def adjustment_required(self) -> bool:
        return self.variance != 0


@dataclass(frozen=True)
class TransferResult:
    transaction: GoInventoryTransaction
    source_balance: GoInventoryBalance
    destination_balance: GoInventoryBalance
    all_balances: tuple[GoInventoryBalance, ...]


@dataclass(frozen=True)
class ValuationLine:
    item_id: str
    sku: str
    description: str
    category: str
    location_id: str
    location_name: str
    quantity_on_hand: Decimal
    unit_cost: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class ValuationGroup:
    """Roll-up of valuation lines by category or by location."""

    key: str
    name: str
    item_count: int
    total_quantity: Decimal
    total_value: Decimal


@dataclass(frozen=True)
class ValuationReport:
    as_of_date: date
    generated_by: str
    generated_at: datetime
    lines: tuple[ValuationLine, ...]
    categories: tuple[ValuationGroup, ...]
    locations: tuple[ValuationGroup, ...]
    total_quantity: Decimal
    total_value: Decimal
    average_value_per_item: Decimal
    location_filter: str | None = None
    category_filter: str | None = None

    @property
    def total_items(self) -> int:
        return len(self.lines)


class ReceiptMatchStatus(str, Enum):
    TWO_WAY = "2-way"
    THREE_WAY = "3-way"


class PurchaseOrderReceiptStatus(str, Enum):
    PARTIAL = "partial"
    RECEIVED = "received"


@dataclass(frozen=True)
class ReceiptLineRequest:
    """Goods counted off the truck against one purchase order line."""

    po_line_item_id: str
    quantity_received: Decimal
    quantity_rejected: Decimal = Decimal("0")
    rejection_reason: str | None = None

    def __post_init__(self) -> None:
        if not self.po_line_item_id:
            raise ValidationError("PO line item ID is required", field="po_line_item_id")
        for name in ("quantity_received", "quantity_rejected"):
            value = parse_decimal(getattr(self, name), name)
            if value < 0:
                raise ValidationError(f"{name} cannot be negative", field=name)
            object.__setattr__(self, name, value)


@dataclass(frozen=True)
class ReceivedPOLine:
    po_line_item_id: str
    item_id: str
    description: str
    quantity_ordered: Decimal
    quantity_received: Decimal
    quantity_rejected: Decimal
    unit_price: Decimal
    line_total: Decimal

    @property
    def variance(self) -> Decimal:
        """Received minus ordered."""
        return self.quantity_received - self.quantity_ordered


@dataclass(frozen=True)
class POReceiptResult:
    receipt: GoReceipt
    purchase_order_id: str
    po_number: str
    po_status: PurchaseOrderReceiptStatus
    lines: tuple[ReceivedPOLine, ...]
    total_amount: Decimal
    match_status: ReceiptMatchStatus
    received_date: date
    ap_bill_id: str | None = None

    @property
    def total_quantity_received(self) -> Decimal:
        return sum((line.quantity_received for line in self.lines), Decimal("0"))
