"""
Inventory Module (``funeral_modules.inventory``).

Case merchandise reservations, delivery with COGS posting, receiving
against purchase orders, cycle counts, transfers and valuation, all
against the Go inventory backend.
"""

from funeral_modules.inventory.models import (
    CommitResult,
    CommittedItem,
    CycleCountResult,
    POReceiptResult,
    PurchaseOrderReceiptStatus,
    ReceiptLineRequest,
    ReceiptMatchStatus,
    ReceivedPOLine,
    ReleaseResult,
    ReservationRequest,
    ReservationResult,
    TransferResult,
    ValuationGroup,
    ValuationLine,
    ValuationReport,
)
from funeral_modules.inventory.service import InventoryService

__all__ = [
    "CommitResult",
    "CommittedItem",
    "CycleCountResult",
    "InventoryService",
    "POReceiptResult",
    "PurchaseOrderReceiptStatus",
    "ReceiptLineRequest",
    "ReceiptMatchStatus",
    "ReceivedPOLine",
    "ReleaseResult",
    "ReservationRequest",
    "ReservationResult",
    "TransferResult",
    "ValuationGroup",
    "ValuationLine",
    "ValuationReport",
]
