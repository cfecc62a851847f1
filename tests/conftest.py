"""
Pytest fixtures for the funeral home ERP test suite.

Provides:
- In-memory SQLite sessions with every entity table created
- A deterministic clock (2025-01-15 12:00 UTC, a Wednesday)
- Structured log capture
- In-memory fakes of the Go backend and email ports

The fakes keep just enough state for the use cases to be exercised end to
end: created documents are stored and returned by the matching getters,
and every command is recorded for assertions.
"""

import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from funeral_config.schema import DEFAULT_GL_ACCOUNTS
from funeral_kernel.db.engine import build_engine, create_tables, drop_tables
from funeral_kernel.domain.clock import DeterministicClock
from funeral_kernel.exceptions import NetworkError, NotFoundError
from funeral_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from funeral_services.ports import (
    EmailPort,
    EmailResult,
    GoAPPaymentRun,
    GoAPPaymentRunExecution,
    GoContract,
    GoContractPort,
    GoEmployee,
    GoFinancialPort,
    GoGLAccount,
    GoHRPort,
    GoInventoryBalance,
    GoInventoryPort,
    GoInventoryReservation,
    GoInventoryTransaction,
    GoInvoice,
    GoJournalEntry,
    GoPayment,
    GoProcurementPort,
    GoReceipt,
    GoReceiptLineItem,
    GoVendorBill,
)

TEST_ACTOR_ID = "staff-001"
TEST_FUNERAL_HOME_ID = "fh-001"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture funeral_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "case_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("funeral_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def funeral_home_id():
    return TEST_FUNERAL_HOME_ID


# =============================================================================
# Go backend fakes
# =============================================================================


class FakeFinancialPort(GoFinancialPort):
    """GL, AR and AP in memory.  Accounts exist for every default number."""

    def __init__(self):
        self.accounts = {
            number: GoGLAccount(
                id=f"acct-{number}",
                account_number=number,
                name=key.replace("_", " ").title(),
                account_type="asset" if number.startswith("1") else "revenue",
                normal_balance="debit",
            )
            for key, number in DEFAULT_GL_ACCOUNTS.items()
        }
        self.journal_entries: dict[str, GoJournalEntry] = {}
        self.posted_entry_ids: list[str] = []
        self.invoices: dict[str, GoInvoice] = {}
        self.payments: list = []
        self.vendor_bills: dict[str, GoVendorBill] = {}
        self.bill_commands: list = []
        self.payment_runs: dict[str, GoAPPaymentRun] = {}
        self.executed_run_ids: list[str] = []
        self.budget_lines: list = []
        self.budget_periods: list = []

    def get_chart_of_accounts(self):
        return list(self.accounts.values())

    def get_gl_account(self, account_id):
        for account in self.accounts.values():
            if account.id == account_id:
                return account
        raise NotFoundError("GLAccount", account_id)

    def get_gl_account_by_number(self, account_number):
        try:
            return self.accounts[account_number]
        except KeyError:
            raise NotFoundError("GLAccount", account_number) from None

    def create_journal_entry(self, command):
        entry_id = f"je-{len(self.journal_entries) + 1}"
        entry = GoJournalEntry(
            id=entry_id,
            entry_number=f"JE-{len(self.journal_entries) + 1:04d}",
            entry_date=command.entry_date,
            description=command.description,
            status="draft",
            lines=command.lines,
            total_debit=sum((line.debit for line in command.lines), Decimal("0")),
            total_credit=sum((line.credit for line in command.lines), Decimal("0")),
        )
        self.journal_entries[entry_id] = entry
        return entry

    def post_journal_entry(self, entry_id):
        entry = replace(self.get_journal_entry(entry_id), status="posted")
        self.journal_entries[entry_id] = entry
        self.posted_entry_ids.append(entry_id)
        return entry

    def reverse_journal_entry(self, entry_id, reversal_date, reason):
        entry = replace(self.get_journal_entry(entry_id), status="reversed")
        self.journal_entries[entry_id] = entry
        return entry

    def get_journal_entry(self, entry_id):
        try:
            return self.journal_entries[entry_id]
        except KeyError:
            raise NotFoundError("JournalEntry", entry_id) from None

    def add_invoice(self, invoice):
        self.invoices[invoice.id] = invoice
        return invoice

    def create_invoice(self, command):
        total = sum((item.total_price for item in command.line_items), Decimal("0"))
        invoice = GoInvoice(
            id=f"inv-{len(self.invoices) + 1}",
            invoice_number=f"INV-{len(self.invoices) + 1:04d}",
            case_id=command.case_id,
            contract_id=command.contract_id,
            customer_id=command.customer_id,
            invoice_date=command.invoice_date,
            due_date=command.due_date,
            status="sent",
            line_items=command.line_items,
            subtotal=total,
            total_amount=total,
            amount_due=total,
        )
        return self.add_invoice(invoice)

    def get_invoice(self, invoice_id):
        try:
            return self.invoices[invoice_id]
        except KeyError:
            raise NotFoundError("Invoice", invoice_id) from None

    def list_invoices(self, case_id=None, status=None):
        return [
            i for i in self.invoices.values()
            if (case_id is None or i.case_id == case_id)
            and (status is None or i.status == status)
        ]

    def record_payment(self, command):
        payment = GoPayment(
            id=f"pmt-{len(self.payments) + 1}",
            payment_number=f"PMT-{len(self.payments) + 1:04d}",
            invoice_id=command.invoice_id,
            payment_date=command.payment_date,
            payment_method=command.payment_method,
            amount=command.amount,
            status="completed",
            reference_number=command.reference_number,
        )
        self.payments.append(payment)
        return payment

    def add_vendor_bill(self, bill):
        self.vendor_bills[bill.id] = bill
        return bill

    def create_vendor_bill(self, command):
        self.bill_commands.append(command)
        total = sum((item.total_price for item in command.line_items), Decimal("0"))
        bill = GoVendorBill(
            id=f"bill-{len(self.vendor_bills) + 1}",
            bill_number=command.bill_number or f"BILL-{len(self.vendor_bills) + 1:04d}",
            vendor_id=command.vendor_id,
            vendor_name=f"Vendor {command.vendor_id}",
            bill_date=command.bill_date,
            due_date=command.due_date,
            status=command.status,
            line_items=command.line_items,
            subtotal=total,
            total_amount=total,
            amount_due=total,
            purchase_order_id=command.purchase_order_id,
        )
        return self.add_vendor_bill(bill)

    def get_vendor_bill(self, bill_id):
        try:
            return self.vendor_bills[bill_id]
        except KeyError:
            raise NotFoundError("VendorBill", bill_id) from None

    def list_vendor_bills(self, status=None, vendor_id=None, due_before=None):
        return [
            b for b in self.vendor_bills.values()
            if (status is None or b.status == status)
            and (vendor_id is None or b.vendor_id == vendor_id)
        ]

    def approve_vendor_bill(self, bill_id, approved_by):
        bill = replace(self.get_vendor_bill(bill_id), status="approved")
        return self.add_vendor_bill(bill)

    def create_ap_payment_run(self, command):
        run = GoAPPaymentRun(
            id=f"run-{len(self.payment_runs) + 1}",
            run_number=f"RUN-{len(self.payment_runs) + 1:04d}",
            run_date=command.run_date,
            status="draft",
            bill_ids=command.bill_ids,
            total_amount=sum(
                (self.vendor_bills[b].amount_due for b in command.bill_ids), Decimal("0"),
            ),
            payment_method=command.payment_method,
            created_by=command.created_by,
        )
        self.payment_runs[run.id] = run
        return run

    def get_ap_payment_run(self, run_id):
        try:
            return self.payment_runs[run_id]
        except KeyError:
            raise NotFoundError("APPaymentRun", run_id) from None

    def approve_ap_payment_run(self, run_id, approved_by):
        run = replace(self.get_ap_payment_run(run_id), status="approved", approved_by=approved_by)
        self.payment_runs[run_id] = run
        return run

    def execute_ap_payment_run(self, run_id):
        run = self.get_ap_payment_run(run_id)
        self.payment_runs[run_id] = replace(run, status="completed")
        self.executed_run_ids.append(run_id)
        return GoAPPaymentRunExecution(
            payment_run_id=run_id,
            status="completed",
            executed=len(run.bill_ids),
            executed_at=datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc),
            gl_journal_id=f"je-run-{run_id}",
        )

    def get_budget_variance(self, period_end):
        self.budget_periods.append(period_end)
        return list(self.budget_lines)


class FakeInventoryPort(GoInventoryPort):
    """Items, per-location balances and case reservations in memory."""

    def __init__(self):
        self.items = {}
        self.balances: dict[tuple[str, str], GoInventoryBalance] = {}
        self.reservations: dict[str, GoInventoryReservation] = {}
        self.committed_ids: list[str] = []
        self.released_ids: list[str] = []
        self.adjustments: list = []
        self.transfers: list = []
        self.received: list = []

    def add_item(self, item):
        self.items[item.id] = item
        return item

    def add_balance(
        self, item_id, location_id, on_hand, wac,
        reserved=Decimal("0"), location_name=None,
    ):
        on_hand, reserved, wac = Decimal(on_hand), Decimal(reserved), Decimal(wac)
        balance = GoInventoryBalance(
            item_id=item_id,
            location_id=location_id,
            location_name=location_name or location_id.title(),
            quantity_on_hand=on_hand,
            quantity_reserved=reserved,
            quantity_available=on_hand - reserved,
            weighted_average_cost=wac,
            total_value=on_hand * wac,
        )
        self.balances[(item_id, location_id)] = balance
        return balance

    def add_reservation(self, reservation):
        self.reservations[reservation.id] = reservation
        return reservation

    def get_item(self, item_id):
        try:
            return self.items[item_id]
        except KeyError:
            raise NotFoundError("InventoryItem", item_id) from None

    def list_items(self, category=None, status=None):
        return [
            i for i in self.items.values()
            if (category is None or i.category == category)
            and (status is None or i.status == status)
        ]

    def get_balance(self, item_id, location_id):
        try:
            return self.balances[(item_id, location_id)]
        except KeyError:
            raise NotFoundError("InventoryBalance", f"{item_id}@{location_id}") from None

    def get_balances_across_locations(self, item_id):
        return [b for (i, _), b in self.balances.items() if i == item_id]

    def reserve_inventory(self, command):
        reservation = GoInventoryReservation(
            id=f"res-{len(self.reservations) + 1}",
            item_id=command.item_id,
            quantity=command.quantity,
            location_id=command.location_id,
            case_id=command.case_id,
            status="active",
            contract_id=command.contract_id,
        )
        return self.add_reservation(reservation)

    def commit_reservation(self, reservation_id):
        self.reservations[reservation_id] = replace(
            self.reservations[reservation_id], status="committed",
        )
        self.committed_ids.append(reservation_id)

    def release_reservation(self, reservation_id):
        self.reservations[reservation_id] = replace(
            self.reservations[reservation_id], status="released",
        )
        self.released_ids.append(reservation_id)

    def get_reservations_by_case(self, case_id):
        return [r for r in self.reservations.values() if r.case_id == case_id]

    def receive_inventory(self, command):
        self.received.append(command)
        return GoInventoryTransaction(
            id=f"txn-receive-{command.item_id}",
            item_id=command.item_id,
            location_id=command.location_id,
            transaction_type="receipt",
            quantity=command.quantity,
        )

    def adjust_inventory(self, command):
        self.adjustments.append(command)
        return GoInventoryTransaction(
            id=f"adj-{len(self.adjustments)}",
            item_id=command.item_id,
            location_id=command.location_id,
            transaction_type="adjustment",
            quantity=command.quantity,
            notes=command.notes,
        )

    def transfer_inventory(self, command):
        self.transfers.append(command)
        for location_id, delta in (
            (command.from_location_id, -command.quantity),
            (command.to_location_id, command.quantity),
        ):
            current = self.balances[(command.item_id, location_id)]
            self.add_balance(
                command.item_id,
                location_id,
                current.quantity_on_hand + delta,
                current.weighted_average_cost,
                reserved=current.quantity_reserved,
                location_name=current.location_name,
            )
        return GoInventoryTransaction(
            id=f"xfer-{len(self.transfers)}",
            item_id=command.item_id,
            location_id=command.from_location_id,
            transaction_type="transfer",
            quantity=command.quantity,
            notes=command.notes,
        )


class FakeProcurementPort(GoProcurementPort):
    """Purchase orders and receipts; a receipt advances the PO quantities received."""

    def __init__(self):
        self.purchase_orders = {}
        self.receipts: dict[str, list] = {}
        self.receipt_commands: list = []

    def get_purchase_order(self, po_id):
        try:
            return self.purchase_orders[po_id]
        except KeyError:
            raise NotFoundError("PurchaseOrder", po_id) from None

    def get_receipts_by_purchase_order(self, po_id):
        return list(self.receipts.get(po_id, []))

    def create_receipt(self, command):
        self.receipt_commands.append(command)
        po = self.get_purchase_order(command.purchase_order_id)
        received = {line.po_line_item_id: line for line in command.line_items}
        self.purchase_orders[po.id] = replace(po, line_items=tuple(
            replace(line, quantity_received=line.quantity_received + (
                received[line.id].quantity_received if line.id in received else Decimal("0")
            ))
            for line in po.line_items
        ))
        ordered = {line.id: line for line in po.line_items}
        receipt = GoReceipt(
            id=f"rcpt-{len(self.receipt_commands)}",
            receipt_number=f"REC-{len(self.receipt_commands):04d}",
            purchase_order_id=po.id,
            received_date=command.received_date,
            received_by=command.received_by,
            status="completed",
            line_items=tuple(
                GoReceiptLineItem(
                    id=f"rcpt-line-{i}",
                    po_line_item_id=line.po_line_item_id,
                    description=ordered[line.po_line_item_id].description,
                    quantity_ordered=ordered[line.po_line_item_id].quantity,
                    quantity_received=line.quantity_received,
                    quantity_rejected=line.quantity_rejected,
                )
                for i, line in enumerate(command.line_items, start=1)
            ),
        )
        self.receipts.setdefault(po.id, []).append(receipt)
        return receipt


class FakeContractPort(GoContractPort):

    def __init__(self):
        self.contracts = {}
        self.created: list = []

    def add_contract(self, contract):
        self.contracts[contract.id] = contract
        return contract

    def get_contract(self, contract_id):
        try:
            return self.contracts[contract_id]
        except KeyError:
            raise NotFoundError("Contract", contract_id) from None

    def create_contract(self, command):
        self.created.append(command)
        services_total = sum((i.total_price for i in command.services), Decimal("0"))
        products_total = sum((i.total_price for i in command.products), Decimal("0"))
        contract = self._build(command, services_total + products_total)
        return self.add_contract(contract)

    def _build(self, command, total):
        return GoContract(
            id=f"contract-{len(self.contracts) + 1}",
            case_id=command.case_id,
            version=1,
            status="draft",
            services=command.services,
            products=command.products,
            total_amount=total,
        )


class FakeHRPort(GoHRPort):

    def __init__(self, onboarding_tasks=(), exit_checklist=()):
        self.onboarding_tasks = list(onboarding_tasks)
        self.exit_checklist = list(exit_checklist)
        self.hired: list = []
        self.terminated: list = []
        self.final_paychecks: list[str] = []

    def hire_employee(self, command):
        self.hired.append(command)
        return GoEmployee(
            id=f"emp-{len(self.hired):03d}",
            employee_number=f"EMP-2025-{len(self.hired):03d}",
            first_name=command.first_name,
            last_name=command.last_name,
            email=command.email,
            hire_date=command.hire_date,
            status="active",
            position_id=command.position_id,
            position_title=command.position_title,
            department=command.department,
        )

    def get_onboarding_tasks(self, employee_id):
        return list(self.onboarding_tasks)

    def terminate_employee(self, employee_id, termination_date, reason):
        self.terminated.append((employee_id, termination_date, reason))

    def get_exit_checklist(self, employee_id):
        return list(self.exit_checklist)

    def process_final_paycheck(self, employee_id):
        self.final_paychecks.append(employee_id)


class FakeEmailPort(EmailPort):
    """Records every message; ``fail`` raises NetworkError, ``status`` overrides the result."""

    def __init__(self, fail=False, status="sent"):
        self.fail = fail
        self.status = status
        self.sent: list[tuple[str, object]] = []

    def send_appointment_confirmation(self, message):
        return self._send("confirmation", message)

    def send_director_notification(self, message):
        return self._send("director_notification", message)

    def send_appointment_reminder(self, message):
        return self._send("reminder", message)

    def _send(self, kind, message):
        if self.fail:
            raise NetworkError("SMTP relay unavailable")
        self.sent.append((kind, message))
        return EmailResult(status=self.status, message_id=f"<msg-{len(self.sent)}@test>")

    def kinds(self):
        return [kind for kind, _ in self.sent]


@pytest.fixture
def financial_port():
    return FakeFinancialPort()


@pytest.fixture
def inventory_port():
    return FakeInventoryPort()


@pytest.fixture
def procurement_port():
    return FakeProcurementPort()


@pytest.fixture
def contract_port():
    return FakeContractPort()


@pytest.fixture
def hr_port():
    return FakeHRPort()


@pytest.fixture
def email_port():
    return FakeEmailPort()


@pytest.fixture
def failing_email_port():
    return FakeEmailPort(fail=True)


@pytest.fixture
def bouncing_email_port():
    return FakeEmailPort(status="bounced")


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def case_service(session, deterministic_clock):
    from funeral_modules.case.service import CaseService

    return CaseService(session, clock=deterministic_clock)


@pytest.fixture
def active_case(case_service, funeral_home_id, test_actor_id):
    """An active at-need case, version 2."""
    from funeral_modules.case.models import CaseType

    case = case_service.create_case(
        funeral_home_id, "John Michael Doe", CaseType.AT_NEED, test_actor_id,
    )
    return case_service.activate_case(case.business_key, test_actor_id)


@pytest.fixture
def today():
    return date(2025, 1, 15)
