"""
funeral_services.ports -- Contracts for external collaborators.

Responsibility:
    Declare the operations the use-case services need from the Go ERP
    backend (financial, inventory, procurement, contracts, HR) and from the
    email gateway, together with the immutable DTOs those operations carry.

Architecture position:
    Services -- port definitions.  funeral_modules depends on these ABCs and
    never on the HTTP adapters; tests substitute in-memory fakes.

Invariants enforced:
    - DTOs are frozen dataclasses; money is Decimal, dates are ``date``,
      instants are timezone-aware ``datetime``.
    - Port methods raise only ``NotFoundError`` (unknown id) or
      ``NetworkError`` (transport / backend failure).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

# ---------------------------------------------------------------------------
# Financial DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoGLAccount:
    id: str
    account_number: str
    name: str
    account_type: str
    normal_balance: str
    is_active: bool = True
    balance: Decimal = Decimal("0")


@dataclass(frozen=True)
class GoJournalEntryLine:
    account_id: str
    debit: Decimal
    credit: Decimal
    description: str = ""
    id: str = ""
    account_number: str = ""
    account_name: str = ""


@dataclass(frozen=True)
class GoJournalEntry:
    id: str
    entry_number: str
    entry_date: date
    description: str
    status: str
    lines: tuple[GoJournalEntryLine, ...] = ()
    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    posted_at: datetime | None = None


@dataclass(frozen=True)
class CreateJournalEntryCommand:
    entry_date: date
    description: str
    lines: tuple[GoJournalEntryLine, ...]


@dataclass(frozen=True)
class GoInvoiceLineItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    gl_account_id: str = ""
    id: str = ""


@dataclass(frozen=True)
class GoInvoice:
    id: str
    invoice_number: str
    case_id: str
    contract_id: str
    customer_id: str
    invoice_date: date
    due_date: date
    status: str
    line_items: tuple[GoInvoiceLineItem, ...] = ()
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    amount_due: Decimal = Decimal("0")
    created_at: datetime | None = None


@dataclass(frozen=True)
class CreateInvoiceCommand:
    case_id: str
    contract_id: str
    customer_id: str
    invoice_date: date
    due_date: date
    line_items: tuple[GoInvoiceLineItem, ...]


@dataclass(frozen=True)
class GoPayment:
    id: str
    payment_number: str
    invoice_id: str
    payment_date: date
    payment_method: str
    amount: Decimal
    status: str
    reference_number: str | None = None


@dataclass(frozen=True)
class RecordPaymentCommand:
    invoice_id: str
    payment_date: date
    payment_method: str
    amount: Decimal
    reference_number: str | None = None


@dataclass(frozen=True)
class GoBillLineItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    gl_account_id: str = ""
    po_line_id: str | None = None
    id: str = ""


@dataclass(frozen=True)
class GoVendorBill:
    id: str
    bill_number: str
    vendor_id: str
    vendor_name: str
    bill_date: date
    due_date: date
    status: str
    line_items: tuple[GoBillLineItem, ...] = ()
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    amount_due: Decimal = Decimal("0")
    purchase_order_id: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class CreateVendorBillCommand:
    vendor_id: str
    bill_date: date
    due_date: date
    line_items: tuple[GoBillLineItem, ...]
    status: str = "pending_approval"
    bill_number: str | None = None
    purchase_order_id: str | None = None


@dataclass(frozen=True)
class GoAPPaymentRun:
    id: str
    run_number: str
    run_date: date
    status: str
    bill_ids: tuple[str, ...]
    total_amount: Decimal
    payment_method: str
    created_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class GoAPPaymentRunExecution:
    payment_run_id: str
    status: str
    executed: int
    executed_at: datetime
    gl_journal_id: str | None = None


@dataclass(frozen=True)
class CreateAPPaymentRunCommand:
    run_date: date
    bill_ids: tuple[str, ...]
    payment_method: str
    created_by: str


@dataclass(frozen=True)
class GoBudgetLine:
    """Budget against actual for one GL account over a period."""

    account_number: str
    account_name: str
    budget_amount: Decimal
    actual_amount: Decimal



# ---------------------------------------------------------------------------
# Inventory DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoInventoryItem:
    id: str
    sku: str
    description: str
    category: str
    unit_of_measure: str = "each"
    current_cost: Decimal = Decimal("0")
    retail_price: Decimal = Decimal("0")
    is_serial_tracked: bool = False
    reorder_point: int = 0
    reorder_quantity: int = 0
    status: str = "active"
    gl_account_id: str = ""


@dataclass(frozen=True)
class GoInventoryBalance:
    item_id: str
    location_id: str
    location_name: str
    quantity_on_hand: Decimal
    quantity_reserved: Decimal
    quantity_available: Decimal
    weighted_average_cost: Decimal
    total_value: Decimal = Decimal("0")


@dataclass(frozen=True)
class GoInventoryReservation:
    id: str
    item_id: str
    quantity: Decimal
    location_id: str
    case_id: str
    status: str
    contract_id: str = ""
    reserved_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class GoInventoryTransaction:
    id: str
    item_id: str
    location_id: str
    transaction_type: str
    quantity: Decimal
    unit_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    reference_type: str | None = None
    reference_id: str | None = None
    notes: str | None = None
    posted_at: datetime | None = None
    created_by: str = ""


@dataclass(frozen=True)
class ReserveInventoryCommand:
    item_id: str
    quantity: Decimal
    location_id: str
    case_id: str
    contract_id: str = ""
    expires_in_days: int | None = None


@dataclass(frozen=True)
class ReceiveInventoryCommand:
    item_id: str
    quantity: Decimal
    location_id: str
    unit_cost: Decimal
    purchase_order_id: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AdjustInventoryCommand:
    item_id: str
    location_id: str
    quantity: Decimal
    reason: str
    notes: str | None = None


@dataclass(frozen=True)
class TransferInventoryCommand:
    item_id: str
    from_location_id: str
    to_location_id: str
    quantity: Decimal
    notes: str | None = None


# ---------------------------------------------------------------------------
# Procurement DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoPOLineItem:
    id: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal = Decimal("0")
    gl_account_id: str = ""
    quantity_received: Decimal = Decimal("0")
    item_id: str = ""


@dataclass(frozen=True)
class GoPurchaseOrder:
    id: str
    po_number: str
    vendor_id: str
    vendor_name: str
    order_date: date
    status: str
    line_items: tuple[GoPOLineItem, ...] = ()
    total_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class GoReceiptLineItem:
    id: str
    po_line_item_id: str
    description: str
    quantity_ordered: Decimal
    quantity_received: Decimal
    quantity_rejected: Decimal = Decimal("0")


@dataclass(frozen=True)
class GoReceipt:
    id: str
    receipt_number: str
    purchase_order_id: str
    received_date: date
    received_by: str
    status: str
    line_items: tuple[GoReceiptLineItem, ...] = ()


@dataclass(frozen=True)
class ReceiptLineCommand:
    po_line_item_id: str
    quantity_received: Decimal
    quantity_rejected: Decimal = Decimal("0")
    rejection_reason: str | None = None


@dataclass(frozen=True)
class CreateReceiptCommand:
    purchase_order_id: str
    received_date: date
    received_by: str
    line_items: tuple[ReceiptLineCommand, ...]
    notes: str | None = None


# ---------------------------------------------------------------------------
# Contract DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoContractItem:
    description: str
    quantity: Decimal
    unit_price: Decimal
    total_price: Decimal
    gl_account_id: str = ""
    id: str = ""


@dataclass(frozen=True)
class GoContract:
    id: str
    case_id: str
    version: int
    status: str
    services: tuple[GoContractItem, ...] = ()
    products: tuple[GoContractItem, ...] = ()
    total_amount: Decimal = Decimal("0")
    approved_by: str | None = None
    signed_by: tuple[str, ...] = ()
    created_at: datetime | None = None

    @property
    def items(self) -> tuple[GoContractItem, ...]:
        return self.services + self.products


@dataclass(frozen=True)
class CreateGoContractCommand:
    case_id: str
    services: tuple[GoContractItem, ...]
    products: tuple[GoContractItem, ...]


# ---------------------------------------------------------------------------
# HR DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GoEmployee:
    id: str
    employee_number: str
    first_name: str
    last_name: str
    email: str
    hire_date: date
    status: str
    position_id: str = ""
    position_title: str = ""
    department: str = ""
    termination_date: date | None = None


@dataclass(frozen=True)
class GoChecklistTask:
    """Onboarding task or exit checklist item."""

    id: str
    name: str
    completed: bool
    completed_at: datetime | None = None


@dataclass(frozen=True)
class HireEmployeeCommand:
    first_name: str
    last_name: str
    email: str
    hire_date: date
    position_id: str
    position_title: str
    department: str


# ---------------------------------------------------------------------------
# Email DTOs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AppointmentEmail:
    """Message about a pre-planning appointment."""

    recipient_email: str
    recipient_name: str
    director_name: str
    family_name: str
    start_time: datetime
    end_time: datetime
    notification_type: str = "new"
    family_phone: str = ""
    notes: str | None = None


@dataclass(frozen=True)
class EmailResult:
    status: str
    message_id: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status in ("sent", "queued")


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------


class GoFinancialPort(ABC):
    """General ledger, accounts receivable and accounts payable."""

    @abstractmethod
    def get_chart_of_accounts(self) -> list[GoGLAccount]: ...

    @abstractmethod
    def get_gl_account(self, account_id: str) -> GoGLAccount: ...

    @abstractmethod
    def get_gl_account_by_number(self, account_number: str) -> GoGLAccount: ...

    @abstractmethod
    def create_journal_entry(self, command: CreateJournalEntryCommand) -> GoJournalEntry: ...

    @abstractmethod
    def post_journal_entry(self, entry_id: str) -> GoJournalEntry: ...

    @abstractmethod
    def reverse_journal_entry(
        self, entry_id: str, reversal_date: date, reason: str,
    ) -> GoJournalEntry: ...

    @abstractmethod
    def get_journal_entry(self, entry_id: str) -> GoJournalEntry: ...

    @abstractmethod
    def create_invoice(self, command: CreateInvoiceCommand) -> GoInvoice: ...

    @abstractmethod
    def get_invoice(self, invoice_id: str) -> GoInvoice: ...

    @abstractmethod
    def list_invoices(
        self, case_id: str | None = None, status: str | None = None,
    ) -> list[GoInvoice]: ...

    @abstractmethod
    def record_payment(self, command: RecordPaymentCommand) -> GoPayment: ...

    @abstractmethod
    def create_vendor_bill(self, command: CreateVendorBillCommand) -> GoVendorBill: ...

    @abstractmethod
    def get_vendor_bill(self, bill_id: str) -> GoVendorBill: ...

    @abstractmethod
    def list_vendor_bills(
        self,
        status: str | None = None,
        vendor_id: str | None = None,
        due_before: date | None = None,
    ) -> list[GoVendorBill]: ...

    @abstractmethod
    def approve_vendor_bill(self, bill_id: str, approved_by: str) -> GoVendorBill: ...

    @abstractmethod
    def create_ap_payment_run(self, command: CreateAPPaymentRunCommand) -> GoAPPaymentRun: ...

    @abstractmethod
    def get_ap_payment_run(self, run_id: str) -> GoAPPaymentRun: ...

    @abstractmethod
    def approve_ap_payment_run(self, run_id: str, approved_by: str) -> GoAPPaymentRun: ...

    @abstractmethod
    def execute_ap_payment_run(self, run_id: str) -> GoAPPaymentRunExecution: ...

    @abstractmethod
    def get_budget_variance(self, period_end: date) -> list[GoBudgetLine]: ...


class GoInventoryPort(ABC):
    """Multi-location perpetual inventory with WAC costing."""

    @abstractmethod
    def get_item(self, item_id: str) -> GoInventoryItem: ...

    @abstractmethod
    def list_items(
        self, category: str | None = None, status: str | None = None,
    ) -> list[GoInventoryItem]: ...

    @abstractmethod
    def get_balance(self, item_id: str, location_id: str) -> GoInventoryBalance: ...

    @abstractmethod
    def get_balances_across_locations(self, item_id: str) -> list[GoInventoryBalance]: ...

    @abstractmethod
    def reserve_inventory(self, command: ReserveInventoryCommand) -> GoInventoryReservation: ...

    @abstractmethod
    def commit_reservation(self, reservation_id: str) -> None: ...

    @abstractmethod
    def release_reservation(self, reservation_id: str) -> None: ...

    @abstractmethod
    def get_reservations_by_case(self, case_id: str) -> list[GoInventoryReservation]: ...

    @abstractmethod
    def receive_inventory(self, command: ReceiveInventoryCommand) -> GoInventoryTransaction: ...

    @abstractmethod
    def adjust_inventory(self, command: AdjustInventoryCommand) -> GoInventoryTransaction: ...

    @abstractmethod
    def transfer_inventory(self, command: TransferInventoryCommand) -> GoInventoryTransaction: ...


class GoProcurementPort(ABC):

    @abstractmethod
    def get_purchase_order(self, po_id: str) -> GoPurchaseOrder: ...

    @abstractmethod
    def get_receipts_by_purchase_order(self, po_id: str) -> list[GoReceipt]: ...

    @abstractmethod
    def create_receipt(self, command: CreateReceiptCommand) -> GoReceipt: ...


class GoContractPort(ABC):

    @abstractmethod
    def get_contract(self, contract_id: str) -> GoContract: ...

    @abstractmethod
    def create_contract(self, command: CreateGoContractCommand) -> GoContract: ...


class GoHRPort(ABC):
    """Employee lifecycle in the Go HCM module."""

    @abstractmethod
    def hire_employee(self, command: HireEmployeeCommand) -> GoEmployee: ...

    @abstractmethod
    def get_onboarding_tasks(self, employee_id: str) -> list[GoChecklistTask]: ...

    @abstractmethod
    def terminate_employee(
        self, employee_id: str, termination_date: date, reason: str,
    ) -> None: ...

    @abstractmethod
    def get_exit_checklist(self, employee_id: str) -> list[GoChecklistTask]: ...

    @abstractmethod
    def process_final_paycheck(self, employee_id: str) -> None: ...


class EmailPort(ABC):
    """Outbound transactional email."""

    @abstractmethod
    def send_appointment_confirmation(self, message: AppointmentEmail) -> EmailResult: ...

    @abstractmethod
    def send_director_notification(self, message: AppointmentEmail) -> EmailResult: ...

    @abstractmethod
    def send_appointment_reminder(self, message: AppointmentEmail) -> EmailResult: ...
