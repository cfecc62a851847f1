"""
Inventory Service (``funeral_modules.inventory.service``).

Responsibility
--------------
Case-driven inventory orchestration against the Go inventory backend:
reserving merchandise for a case, committing the reservations on delivery
with cost of goods sold posted to the ledger, receiving goods against a
purchase order, cycle counts, transfers between locations and the
valuation report.

Costing
-------
Committed items are costed at the location's weighted average cost (WAC),
falling back to the item's current cost when the balance carries none.
COGS is debited per account (see ``GLAccountMap.cogs_account_for_category``)
and the inventory asset account is credited with the total.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from funeral_engines.variance import VarianceCalculator
from funeral_kernel.db.types import ZERO, parse_decimal, round_money
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import ValidationError
from funeral_kernel.logging_config import LogContext, get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.case.models import CaseStatus
from funeral_modules.case.repository import CaseRepository
from funeral_modules.financial.gl_accounts import GLAccountMap
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
from funeral_services.ports import (
    AdjustInventoryCommand,
    CreateJournalEntryCommand,
    CreateReceiptCommand,
    CreateVendorBillCommand,
    GoBillLineItem,
    GoFinancialPort,
    GoInventoryPort,
    GoJournalEntryLine,
    GoProcurementPort,
    ReceiptLineCommand,
    ReceiveInventoryCommand,
    ReserveInventoryCommand,
    TransferInventoryCommand,
)

logger = get_logger("modules.inventory.service")

ACTIVE_RESERVATION = "active"
OVER_RECEIPT_TOLERANCE = Decimal("0.10")
RECEIPT_BILL_TERMS_DAYS = 30

_COMMITTABLE_CASE_STATUSES = (CaseStatus.ACTIVE, CaseStatus.COMPLETED)
_RECEIVABLE_PO_STATUSES = ("sent", "acknowledged", "partial")


class InventoryService:
    """Inventory reservations, COGS, receiving, counts, transfers and valuation."""

    def __init__(
        self,
        session: Session,
        inventory_port: GoInventoryPort,
        financial_port: GoFinancialPort | None = None,
        clock: Clock | None = None,
        gl_accounts: GLAccountMap | None = None,
        procurement_port: GoProcurementPort | None = None,
    ):
        self._session = session
        self._inventory = inventory_port
        self._financial = financial_port
        self._procurement = procurement_port
        self._clock = clock or SystemClock()
        self._accounts = gl_accounts or GLAccountMap()
        self._variance = VarianceCalculator()
        self._cases = CaseRepository(session, self._clock)

    # ------------------------------------------------------------------
    # Case reservations
    # ------------------------------------------------------------------

    def reserve_inventory_for_case(
        self,
        case_id: str,
        items: Sequence[ReservationRequest],
        reserved_by: str,
    ) -> ReservationResult:
        case = self._cases.get_current(case_id)
        if case.status is not CaseStatus.ACTIVE:
            raise ValidationError(
                f"Can only reserve inventory for active cases (status: {case.status.value})",
                field="status",
            )
        if not items:
            raise ValidationError(
                "At least one item is required for inventory reservation", field="items",
            )

        reservations = tuple(
            self._inventory.reserve_inventory(ReserveInventoryCommand(
                item_id=item.item_id,
                quantity=item.quantity,
                location_id=item.location_id,
                case_id=case.business_key,
                contract_id=case.go_contract_id or "",
            ))
            for item in items
        )
        logger.info("inventory_reserved_for_case", extra={
            "case_id": case.business_key,
            "reservation_count": len(reservations),
            "reserved_by": reserved_by,
        })
        return ReservationResult(case_id=case.business_key, reservations=reservations)

    def release_inventory_for_case(self, case_id: str, reason: str, released_by: str) -> ReleaseResult:
        case = self._cases.get_current(case_id)
        active = [
            r for r in self._inventory.get_reservations_by_case(case.business_key)
            if r.status == ACTIVE_RESERVATION
        ]
        for reservation in active:
            self._inventory.release_reservation(reservation.id)
        logger.info("inventory_released_for_case", extra={
            "case_id": case.business_key,
            "released_count": len(active),
            "reason": reason,
            "released_by": released_by,
        })
        return ReleaseResult(case_id=case.business_key, released_count=len(active))

    def commit_inventory_reservation(
        self,
        case_id: str,
        delivered_by: str,
        delivered_at: datetime | None = None,
    ) -> CommitResult:
        """
        Commit a case's active reservations and post COGS.

        Raises:
            ValidationError: Case not active/completed, no reservations, or
                none still active.
        """
        financial = self._require_financial_port()
        delivered_at = delivered_at or self._clock.now()
        with LogContext.bind(case_id=case_id, use_case="commit_inventory_reservation"):
            case = self._cases.get_current(case_id)
            if case.status not in _COMMITTABLE_CASE_STATUSES:
                raise ValidationError(
                    f"Cannot commit inventory for case in {case.status.value} status",
                    field="status",
                )
            reservations = self._inventory.get_reservations_by_case(case.business_key)
            if not reservations:
                raise ValidationError(
                    "No reservations found for case", field="reservations",
                )

            committed: list[CommittedItem] = []
            for reservation in reservations:
                if reservation.status != ACTIVE_RESERVATION:
                    continue
                self._inventory.commit_reservation(reservation.id)
                item = self._inventory.get_item(reservation.item_id)
                balance = self._inventory.get_balance(reservation.item_id, reservation.location_id)
                unit_cost = balance.weighted_average_cost or item.current_cost or ZERO
                committed.append(CommittedItem(
                    reservation_id=reservation.id,
                    item_id=item.id,
                    sku=item.sku,
                    description=item.description,
                    quantity=reservation.quantity,
                    unit_cost=unit_cost,
                    total_cost=round_money(reservation.quantity * unit_cost),
                    cogs_account=self._accounts.cogs_account_for_category(item.category),
                ))
            if not committed:
                raise ValidationError(
                    "No uncommitted reservations found", field="reservations",
                )

            cogs_total = round_money(sum((i.total_cost for i in committed), ZERO))
            per_account: dict[str, Decimal] = {}
            for item in committed:
                per_account[item.cogs_account] = per_account.get(item.cogs_account, ZERO) + item.total_cost

            lines = [
                GoJournalEntryLine(
                    account_id=financial.get_gl_account_by_number(number).id,
                    debit=round_money(amount),
                    credit=ZERO,
                    description=f"COGS for case {case.decedent_name} - {len(committed)} items delivered",
                )
                for number, amount in per_account.items()
            ]
            lines.append(GoJournalEntryLine(
                account_id=financial.get_gl_account_by_number(self._accounts.inventory_asset).id,
                debit=ZERO,
                credit=cogs_total,
                description=f"Inventory reduction for case {case.decedent_name}",
            ))
            entry = financial.create_journal_entry(CreateJournalEntryCommand(
                entry_date=delivered_at.date(),
                description=f"COGS for case {case.business_key} - {len(committed)} items",
                lines=tuple(lines),
            ))
            financial.post_journal_entry(entry.id)

            with unit_of_work(self._session, "commit_inventory_reservation"):
                updated = self._cases.save(
                    case.update_cogs(entry.id, cogs_total, delivered_at, delivered_by),
                    delivered_by,
                )

            gross_profit = gross_margin = None
            if updated.revenue_amount and updated.revenue_amount > 0:
                margin = self._variance.gross_margin(updated.revenue_amount, cogs_total)
                gross_profit, gross_margin = margin.gross_profit, margin.gross_margin_percent

            logger.info("inventory_reservations_committed", extra={
                "item_count": len(committed),
                "cogs_amount": str(cogs_total),
                "journal_entry_id": entry.id,
                "gross_margin_percent": str(gross_margin) if gross_margin is not None else None,
            })
            return CommitResult(
                case_id=case.business_key,
                items=tuple(committed),
                cogs_amount=cogs_total,
                journal_entry_id=entry.id,
                delivered_at=delivered_at,
                gross_profit=gross_profit,
                gross_margin_percent=gross_margin,
            )

    # ------------------------------------------------------------------
    # Stock maintenance
    # ------------------------------------------------------------------

    def cycle_count(
        self,
        item_id: str,
        location_id: str,
        physical_quantity: Decimal,
        counted_by: str,
        count_date: date,
        variance_reason: str | None = None,
        notes: str | None = None,
    ) -> CycleCountResult:
        errors = []
        if not item_id or not item_id.strip():
            errors.append("Item ID is required")
        if not location_id or not location_id.strip():
            errors.append("Location ID is required")
        physical_quantity = parse_decimal(physical_quantity, "physical_quantity")
        if physical_quantity < 0:
            errors.append("Physical quantity cannot be negative")
        if not counted_by or not counted_by.strip():
            errors.append("Counted by user is required")
        if count_date > self._clock.today():
            errors.append("Count date cannot be in the future")
        if errors:
            raise ValidationError("; ".join(errors))

        balance = self._inventory.get_balance(item_id, location_id)
        variance = self._variance.count_variance(balance.quantity_on_hand, physical_quantity)

        adjustment_id = None
        if not variance.is_zero:
            adjustment = self._inventory.adjust_inventory(AdjustInventoryCommand(
                item_id=item_id,
                location_id=location_id,
                quantity=variance.variance,
                reason=variance_reason or "Cycle count adjustment",
                notes=(
                    f"Physical count: {physical_quantity}, "
                    f"System count: {balance.quantity_on_hand}. {notes or ''}"
                ).strip(),
            ))
            adjustment_id = adjustment.id

        logger.info("inventory_cycle_counted", extra={
            "item_id": item_id,
            "location_id": location_id,
            "variance": str(variance.variance),
            "variance_percent": str(variance.variance_percent),
            "adjustment_id": adjustment_id,
        })
        return CycleCountResult(
            item_id=item_id,
            location_id=location_id,
            system_quantity=balance.quantity_on_hand,
            physical_quantity=physical_quantity,
            variance=variance.variance,
            variance_percent=variance.variance_percent,
            counted_by=counted_by,
            count_date=count_date,
            adjustment_id=adjustment_id,
        )

    def transfer_inventory(
        self,
        item_id: str,
        from_location_id: str,
        to_location_id: str,
        quantity: Decimal,
        initiated_by: str,
        notes: str | None = None,
    ) -> TransferResult:
        if not item_id or not item_id.strip():
            raise ValidationError("Item ID is required", field="item_id")
        if not from_location_id or not from_location_id.strip():
            raise ValidationError("Source location ID is required", field="from_location_id")
        if not to_location_id or not to_location_id.strip():
            raise ValidationError("Destination location ID is required", field="to_location_id")
        if from_location_id == to_location_id:
            raise ValidationError(
                "Source and destination locations must be different", field="to_location_id",
            )
        quantity = parse_decimal(quantity, "quantity")
        if quantity <= 0 or quantity != quantity.to_integral_value():
            raise ValidationError(
                "Transfer quantity must be a positive whole number", field="quantity",
            )

        balances = {b.location_id: b for b in self._inventory.get_balances_across_locations(item_id)}
        source = balances.get(from_location_id)
        if source is None:
            raise ValidationError(
                f"Source location {from_location_id} not found or has no inventory for item {item_id}",
                field="from_location_id",
            )
        if to_location_id not in balances:
            raise ValidationError(
                f"Destination location {to_location_id} not found for item {item_id}",
                field="to_location_id",
            )
        if source.quantity_available < quantity:
            raise ValidationError(
                f"Insufficient available quantity at source location. "
                f"Available: {source.quantity_available}, Requested: {quantity} "
                f"(On Hand: {source.quantity_on_hand}, Reserved: {source.quantity_reserved})",
                field="quantity",
            )

        transaction = self._inventory.transfer_inventory(TransferInventoryCommand(
            item_id=item_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            quantity=quantity,
            notes=notes,
        ))
        updated = tuple(self._inventory.get_balances_across_locations(item_id))
        by_location = {b.location_id: b for b in updated}
        logger.info("inventory_transferred", extra={
            "item_id": item_id,
            "from_location_id": from_location_id,
            "to_location_id": to_location_id,
            "quantity": str(quantity),
            "transaction_id": transaction.id,
            "initiated_by": initiated_by,
        })
        return TransferResult(
            transaction=transaction,
            source_balance=by_location[from_location_id],
            destination_balance=by_location[to_location_id],
            all_balances=updated,
        )

    # ------------------------------------------------------------------
    # Receiving
    # ------------------------------------------------------------------

    def receive_inventory_from_po(
        self,
        purchase_order_id: str,
        location_id: str,
        lines: Sequence[ReceiptLineRequest],
        received_by: str,
        received_date: date | None = None,
        notes: str | None = None,
        auto_create_ap_bill: bool = False,
    ) -> POReceiptResult:
        """
        Receive goods against an open purchase order into ``location_id``.

        The receipt is recorded in procurement, then every accepted quantity
        is added to on-hand stock at the PO unit price.  When the PO is then
        fully received and ``auto_create_ap_bill`` is set, an approved vendor
        bill for the received goods completes the three-way match.

        Raises:
            NotFoundError: Unknown purchase order.
            ValidationError: No lines, PO not open for receiving, unknown
                PO line, line without an inventory item, or a quantity more
                than 10% over what was ordered.
        """
        procurement = self._require_procurement_port()
        if not lines:
            raise ValidationError("At least one received line is required", field="lines")
        if not location_id or not location_id.strip():
            raise ValidationError("Location ID is required", field="location_id")

        with LogContext.bind(purchase_order_id=purchase_order_id, use_case="receive_inventory_from_po"):
            po = procurement.get_purchase_order(purchase_order_id)
            if po.status not in _RECEIVABLE_PO_STATUSES:
                raise ValidationError(
                    f"Cannot receive from PO in {po.status} status", field="po_status",
                )
            po_lines = {line.id: line for line in po.line_items}
            received = []
            for request in lines:
                po_line = po_lines.get(request.po_line_item_id)
                if po_line is None:
                    raise ValidationError(
                        f"PO line item {request.po_line_item_id} not found",
                        field="po_line_item_id",
                    )
                if not po_line.item_id:
                    raise ValidationError(
                        f"PO line item {po_line.id} is not linked to an inventory item",
                        field="item_id",
                    )
                over = request.quantity_received - po_line.quantity
                if over > po_line.quantity * OVER_RECEIPT_TOLERANCE:
                    raise ValidationError(
                        f"Cannot receive {request.quantity_received} "
                        f"(>10% over ordered {po_line.quantity})",
                        field="quantity_received",
                    )
                received.append(ReceivedPOLine(
                    po_line_item_id=po_line.id,
                    item_id=po_line.item_id,
                    description=po_line.description,
                    quantity_ordered=po_line.quantity,
                    quantity_received=request.quantity_received,
                    quantity_rejected=request.quantity_rejected,
                    unit_price=po_line.unit_price,
                    line_total=round_money(request.quantity_received * po_line.unit_price),
                ))

            received_date = received_date or self._clock.today()
            receipt = procurement.create_receipt(CreateReceiptCommand(
                purchase_order_id=po.id,
                received_date=received_date,
                received_by=received_by,
                line_items=tuple(
                    ReceiptLineCommand(
                        po_line_item_id=r.po_line_item_id,
                        quantity_received=r.quantity_received,
                        quantity_rejected=r.quantity_rejected,
                        rejection_reason=r.rejection_reason,
                    )
                    for r in lines
                ),
                notes=notes,
            ))
            for line in received:
                if line.quantity_received > 0:
                    self._inventory.receive_inventory(ReceiveInventoryCommand(
                        item_id=line.item_id,
                        quantity=line.quantity_received,
                        location_id=location_id,
                        unit_cost=line.unit_price,
                        purchase_order_id=po.id,
                        notes=f"Received from PO {po.po_number}",
                    ))

            updated = procurement.get_purchase_order(po.id)
            fully_received = all(pl.quantity_received >= pl.quantity for pl in updated.line_items)
            ap_bill_id = None
            if fully_received and auto_create_ap_bill:
                ap_bill_id = self._bill_received_goods(po, po_lines, received, received_date).id

            total = round_money(sum((line.line_total for line in received), ZERO))
            result = POReceiptResult(
                receipt=receipt,
                purchase_order_id=po.id,
                po_number=po.po_number,
                po_status=(
                    PurchaseOrderReceiptStatus.RECEIVED if fully_received
                    else PurchaseOrderReceiptStatus.PARTIAL
                ),
                lines=tuple(received),
                total_amount=total,
                match_status=(
                    ReceiptMatchStatus.THREE_WAY if ap_bill_id else ReceiptMatchStatus.TWO_WAY
                ),
                received_date=received_date,
                ap_bill_id=ap_bill_id,
            )
            logger.info("inventory_received_from_po", extra={
                "receipt_id": receipt.id,
                "location_id": location_id,
                "line_count": len(received),
                "total_amount": str(total),
                "po_status": result.po_status.value,
                "ap_bill_id": ap_bill_id,
                "received_by": received_by,
            })
            return result

    def _bill_received_goods(self, po, po_lines, received, bill_date: date):
        financial = self._require_financial_port()
        inventory_account = None
        bill_lines = []
        for line in received:
            if line.quantity_received == 0:
                continue
            gl_account_id = po_lines[line.po_line_item_id].gl_account_id
            if not gl_account_id:
                if inventory_account is None:
                    inventory_account = financial.get_gl_account_by_number(
                        self._accounts.inventory_asset,
                    ).id
                gl_account_id = inventory_account
            bill_lines.append(GoBillLineItem(
                description=line.description,
                quantity=line.quantity_received,
                unit_price=line.unit_price,
                total_price=line.line_total,
                gl_account_id=gl_account_id,
                po_line_id=line.po_line_item_id,
            ))
        return financial.create_vendor_bill(CreateVendorBillCommand(
            vendor_id=po.vendor_id,
            bill_date=bill_date,
            due_date=bill_date + timedelta(days=RECEIPT_BILL_TERMS_DAYS),
            line_items=tuple(bill_lines),
            status="approved",
            purchase_order_id=po.id,
        ))

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def inventory_valuation_report(
        self,
        generated_by: str,
        as_of_date: date | None = None,
        location_id: str | None = None,
        category: str | None = None,
        include_zero_balances: bool = False,
    ) -> ValuationReport:
        """On-hand value (quantity x WAC) per item and location, with roll-ups."""
        if not generated_by or not generated_by.strip():
            raise ValidationError("Generated by user is required", field="generated_by")
        today = self._clock.today()
        as_of_date = as_of_date or today
        if as_of_date > today:
            raise ValidationError("As-of date cannot be in the future", field="as_of_date")

        lines: list[ValuationLine] = []
        for item in self._inventory.list_items(category=category):
            if category is not None and item.category != category:
                continue
            for balance in self._inventory.get_balances_across_locations(item.id):
                if location_id is not None and balance.location_id != location_id:
                    continue
                if balance.quantity_on_hand == 0 and not include_zero_balances:
                    continue
                lines.append(ValuationLine(
                    item_id=item.id,
                    sku=item.sku,
                    description=item.description,
                    category=item.category,
                    location_id=balance.location_id,
                    location_name=balance.location_name,
                    quantity_on_hand=balance.quantity_on_hand,
                    unit_cost=balance.weighted_average_cost,
                    total_value=round_money(balance.quantity_on_hand * balance.weighted_average_cost),
                ))

        total_value = round_money(sum((line.total_value for line in lines), ZERO))
        total_quantity = sum((line.quantity_on_hand for line in lines), ZERO)
        report = ValuationReport(
            as_of_date=as_of_date,
            generated_by=generated_by,
            generated_at=self._clock.now(),
            lines=tuple(lines),
            categories=_roll_up(lines, lambda line: (line.category, line.category)),
            locations=_roll_up(lines, lambda line: (line.location_id, line.location_name)),
            total_quantity=total_quantity,
            total_value=total_value,
            average_value_per_item=round_money(total_value / len(lines)) if lines else ZERO,
            location_filter=location_id,
            category_filter=category,
        )
        logger.info("inventory_valuation_generated", extra={
            "line_count": len(lines),
            "total_value": str(total_value),
            "location_filter": location_id,
            "category_filter": category,
        })
        return report

    def _require_financial_port(self) -> GoFinancialPort:
        if self._financial is None:
            raise ValidationError("No Go financial port configured", field="financial_port")
        return self._financial

    def _require_procurement_port(self) -> GoProcurementPort:
        if self._procurement is None:
            raise ValidationError("No Go procurement port configured", field="procurement_port")
        return self._procurement


def _roll_up(lines: Sequence[ValuationLine], key_of) -> tuple[ValuationGroup, ...]:
    groups: dict[str, list[ValuationLine]] = {}
    names: dict[str, str] = {}
    for line in lines:
        key, name = key_of(line)
        groups.setdefault(key, []).append(line)
        names.setdefault(key, name)
    return tuple(
        ValuationGroup(
            key=key,
            name=names[key],
            item_count=len(members),
            total_quantity=sum((m.quantity_on_hand for m in members), ZERO),
            total_value=round_money(sum((m.total_value for m in members), ZERO)),
        )
        for key, members in groups.items()
    )
