"""
funeral_services.go_backend -- HTTP adapters for the Go ERP backend.

Responsibility:
    Implement the Go* ports over the backend's JSON REST API.  One
    ``GoBackendClient`` owns the ``requests.Session``, base URL, timeout and
    bearer token; each ``Http*Adapter`` maps port calls to ``/v1/...``
    endpoints and parses snake_case JSON bodies into the port DTOs.

Architecture position:
    Services -- outbound adapters.  Only this module knows URLs and wire
    field names.

Failure modes:
    - HTTP 404 -> NotFoundError(entity_type, entity_id).
    - Any other non-2xx status -> NetworkError(status_code=...).
    - requests.RequestException or an undecodable body -> NetworkError.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import requests

from funeral_kernel.db.types import to_decimal
from funeral_kernel.exceptions import NetworkError, NotFoundError
from funeral_kernel.logging_config import get_logger
from funeral_services.ports import (
    CreateAPPaymentRunCommand,
    CreateGoContractCommand,
    CreateInvoiceCommand,
    CreateJournalEntryCommand,
    CreateReceiptCommand,
    CreateVendorBillCommand,
    AdjustInventoryCommand,
    GoAPPaymentRun,
    GoAPPaymentRunExecution,
    GoBillLineItem,
    GoBudgetLine,
    GoChecklistTask,
    GoContract,
    GoContractItem,
    GoContractPort,
    GoEmployee,
    GoFinancialPort,
    GoGLAccount,
    GoHRPort,
    GoInventoryBalance,
    GoInventoryItem,
    GoInventoryPort,
    GoInventoryReservation,
    GoInventoryTransaction,
    GoInvoice,
    GoInvoiceLineItem,
    GoJournalEntry,
    GoJournalEntryLine,
    GoPayment,
    GoPOLineItem,
    GoProcurementPort,
    GoPurchaseOrder,
    GoReceipt,
    GoReceiptLineItem,
    GoVendorBill,
    HireEmployeeCommand,
    ReceiveInventoryCommand,
    RecordPaymentCommand,
    ReserveInventoryCommand,
    TransferInventoryCommand,
)

logger = get_logger("services.go_backend")

DEFAULT_TIMEOUT_SECONDS = 10.0


class GoBackendClient:
    """Thin JSON client for the Go backend REST API."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        api_token: str | None = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.api_token = api_token

    def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        entity: tuple[str, str] | None = None,
    ) -> Any:
        return self._request("GET", path, params=params, entity=entity)

    def post(
        self,
        path: str,
        payload: dict[str, Any] | None = None,
        entity: tuple[str, str] | None = None,
    ) -> Any:
        return self._request("POST", path, payload=payload, entity=entity)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        entity: tuple[str, str] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        query = {k: _jsonable(v) for k, v in (params or {}).items() if v is not None}
        t0 = time.monotonic()
        try:
            response = self.session.request(
                method,
                url,
                params=query or None,
                json=_jsonable(payload) if payload is not None else None,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("go_backend_transport_failed", extra={
                "method": method,
                "path": path,
                "error": str(exc),
            })
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        logger.info("go_backend_request", extra={
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })

        if response.status_code == 404:
            entity_type, entity_id = entity or ("Resource", path)
            raise NotFoundError(entity_type, entity_id)
        if response.status_code >= 400:
            raise NetworkError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                f"{method} {path} returned a non-JSON body",
                status_code=response.status_code,
            ) from exc


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Body parsing
# ---------------------------------------------------------------------------


def _dec(data: dict[str, Any], key: str) -> Decimal:
    value = data.get(key)
    if value is None:
        return Decimal("0")
    try:
        return to_decimal(value, field=key)
    except ValueError as exc:
        raise NetworkError(f"Go backend returned a malformed number: {exc}") from exc


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(
        str(value).replace("Z", "+00:00")
    )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _items(body: Any, key: str) -> list[dict[str, Any]]:
    if body is None:
        return []
    if isinstance(body, list):
        return body
    return body.get(key) or body.get("items") or []


def parse_gl_account(data: dict[str, Any]) -> GoGLAccount:
    return GoGLAccount(
        id=data["id"],
        account_number=data.get("account_number", ""),
        name=data.get("name", ""),
        account_type=data.get("type", data.get("account_type", "")),
        normal_balance=data.get("normal_balance", "debit"),
        is_active=data.get("is_active", True),
        balance=_dec(data, "balance"),
    )


def parse_journal_entry(data: dict[str, Any]) -> GoJournalEntry:
    return GoJournalEntry(
        id=data["id"],
        entry_number=data.get("entry_number", ""),
        entry_date=_parse_date(data.get("entry_date")),
        description=data.get("description", ""),
        status=data.get("status", "draft"),
        lines=tuple(
            GoJournalEntryLine(
                account_id=line.get("account_id", ""),
                debit=_dec(line, "debit"),
                credit=_dec(line, "credit"),
                description=line.get("description") or "",
                id=line.get("id", ""),
                account_number=line.get("account_number", ""),
                account_name=line.get("account_name", ""),
            )
            for line in data.get("lines") or []
        ),
        total_debit=_dec(data, "total_debit"),
        total_credit=_dec(data, "total_credit"),
        posted_at=_parse_datetime(data.get("posted_at")),
    )


def parse_invoice(data: dict[str, Any]) -> GoInvoice:
    return GoInvoice(
        id=data["id"],
        invoice_number=data.get("invoice_number", ""),
        case_id=data.get("case_id", ""),
        contract_id=data.get("contract_id", ""),
        customer_id=data.get("customer_id", ""),
        invoice_date=_parse_date(data.get("invoice_date")),
        due_date=_parse_date(data.get("due_date")),
        status=data.get("status", "draft"),
        line_items=tuple(
            GoInvoiceLineItem(
                description=item.get("description", ""),
                quantity=_dec(item, "quantity"),
                unit_price=_dec(item, "unit_price"),
                total_price=_dec(item, "total_price"),
                gl_account_id=item.get("gl_account_id", ""),
                id=item.get("id", ""),
            )
            for item in data.get("line_items") or []
        ),
        subtotal=_dec(data, "subtotal"),
        tax_amount=_dec(data, "tax_amount"),
        total_amount=_dec(data, "total_amount"),
        amount_paid=_dec(data, "amount_paid"),
        amount_due=_dec(data, "amount_due"),
        created_at=_parse_datetime(data.get("created_at")),
    )


def parse_payment(data: dict[str, Any]) -> GoPayment:
    return GoPayment(
        id=data["id"],
        payment_number=data.get("payment_number", ""),
        invoice_id=data.get("invoice_id", ""),
        payment_date=_parse_date(data.get("payment_date")),
        payment_method=data.get("payment_method", ""),
        amount=_dec(data, "amount"),
        status=data.get("status", "pending"),
        reference_number=data.get("reference_number"),
    )


def parse_vendor_bill(data: dict[str, Any]) -> GoVendorBill:
    return GoVendorBill(
        id=data["id"],
        bill_number=data.get("bill_number", ""),
        vendor_id=data.get("vendor_id", ""),
        vendor_name=data.get("vendor_name", ""),
        bill_date=_parse_date(data.get("bill_date")),
        due_date=_parse_date(data.get("due_date")),
        status=data.get("status", "draft"),
        line_items=tuple(
            GoBillLineItem(
                description=item.get("description", ""),
                quantity=_dec(item, "quantity"),
                unit_price=_dec(item, "unit_price"),
                total_price=_dec(item, "total_price"),
                gl_account_id=item.get("gl_account_id", ""),
                po_line_id=item.get("po_line_id"),
                id=item.get("id", ""),
            )
            for item in data.get("line_items") or []
        ),
        subtotal=_dec(data, "subtotal"),
        tax_amount=_dec(data, "tax_amount"),
        total_amount=_dec(data, "total_amount"),
        amount_paid=_dec(data, "amount_paid"),
        amount_due=_dec(data, "amount_due"),
        purchase_order_id=data.get("purchase_order_id"),
        created_at=_parse_datetime(data.get("created_at")),
    )


def parse_payment_run(data: dict[str, Any]) -> GoAPPaymentRun:
    return GoAPPaymentRun(
        id=data["id"],
        run_number=data.get("run_number", ""),
        run_date=_parse_date(data.get("run_date")),
        status=data.get("status", "draft"),
        bill_ids=tuple(data.get("bill_ids") or ()),
        total_amount=_dec(data, "total_amount"),
        payment_method=data.get("payment_method", "ach"),
        created_by=data.get("created_by", ""),
        approved_by=data.get("approved_by"),
        approved_at=_parse_datetime(data.get("approved_at")),
    )


def parse_inventory_item(data: dict[str, Any]) -> GoInventoryItem:
    return GoInventoryItem(
        id=data["id"],
        sku=data.get("sku", ""),
        description=data.get("description", ""),
        category=data.get("category", ""),
        unit_of_measure=data.get("unit_of_measure", "each"),
        current_cost=_dec(data, "current_cost"),
        retail_price=_dec(data, "retail_price"),
        is_serial_tracked=data.get("is_serial_tracked", False),
        reorder_point=int(data.get("reorder_point") or 0),
        reorder_quantity=int(data.get("reorder_quantity") or 0),
        status=data.get("status", "active"),
        gl_account_id=data.get("gl_account_id", ""),
    )


def parse_inventory_balance(data: dict[str, Any]) -> GoInventoryBalance:
    return GoInventoryBalance(
        item_id=data.get("item_id", ""),
        location_id=data.get("location_id", ""),
        location_name=data.get("location_name", ""),
        quantity_on_hand=_dec(data, "quantity_on_hand"),
        quantity_reserved=_dec(data, "quantity_reserved"),
        quantity_available=_dec(data, "quantity_available"),
        weighted_average_cost=_dec(data, "weighted_average_cost"),
        total_value=_dec(data, "total_value"),
    )


def parse_reservation(data: dict[str, Any]) -> GoInventoryReservation:
    return GoInventoryReservation(
        id=data["id"],
        item_id=data.get("item_id", ""),
        quantity=_dec(data, "quantity"),
        location_id=data.get("location_id", ""),
        case_id=data.get("case_id", ""),
        status=data.get("status", "active"),
        contract_id=data.get("contract_id", ""),
        reserved_at=_parse_datetime(data.get("reserved_at")),
        expires_at=_parse_datetime(data.get("expires_at")),
    )


def parse_inventory_transaction(data: dict[str, Any]) -> GoInventoryTransaction:
    return GoInventoryTransaction(
        id=data["id"],
        item_id=data.get("item_id", ""),
        location_id=data.get("location_id", ""),
        transaction_type=data.get("transaction_type", ""),
        quantity=_dec(data, "quantity"),
        unit_cost=_dec(data, "unit_cost"),
        total_cost=_dec(data, "total_cost"),
        reference_type=data.get("reference_type"),
        reference_id=data.get("reference_id"),
        notes=data.get("notes"),
        posted_at=_parse_datetime(data.get("posted_at")),
        created_by=data.get("created_by", ""),
    )


def parse_purchase_order(data: dict[str, Any]) -> GoPurchaseOrder:
    return GoPurchaseOrder(
        id=data["id"],
        po_number=data.get("po_number", ""),
        vendor_id=data.get("vendor_id", ""),
        vendor_name=data.get("vendor_name", ""),
        order_date=_parse_date(data.get("order_date")),
        status=data.get("status", "draft"),
        line_items=tuple(
            GoPOLineItem(
                id=item["id"],
                description=item.get("description", ""),
                quantity=_dec(item, "quantity"),
                unit_price=_dec(item, "unit_price"),
                total_price=_dec(item, "total_price"),
                gl_account_id=item.get("gl_account_id", ""),
                quantity_received=_dec(item, "quantity_received"),
                item_id=item.get("item_id", ""),
            )
            for item in data.get("line_items") or []
        ),
        total_amount=_dec(data, "total_amount"),
    )


def parse_receipt(data: dict[str, Any]) -> GoReceipt:
    return GoReceipt(
        id=data["id"],
        receipt_number=data.get("receipt_number", ""),
        purchase_order_id=data.get("purchase_order_id", ""),
        received_date=_parse_date(data.get("received_date")),
        received_by=data.get("received_by", ""),
        status=data.get("status", "completed"),
        line_items=tuple(
            GoReceiptLineItem(
                id=item.get("id", ""),
                po_line_item_id=item.get("po_line_item_id", ""),
                description=item.get("description", ""),
                quantity_ordered=_dec(item, "quantity_ordered"),
                quantity_received=_dec(item, "quantity_received"),
                quantity_rejected=_dec(item, "quantity_rejected"),
            )
            for item in data.get("line_items") or []
        ),
    )


def _contract_items(raw: list[dict[str, Any]] | None) -> tuple[GoContractItem, ...]:
    return tuple(
        GoContractItem(
            description=item.get("description", ""),
            quantity=_dec(item, "quantity"),
            unit_price=_dec(item, "unit_price"),
            total_price=_dec(item, "total_price"),
            gl_account_id=item.get("gl_account_id", ""),
            id=item.get("id", ""),
        )
        for item in raw or []
    )


def parse_contract(data: dict[str, Any]) -> GoContract:
    return GoContract(
        id=data["id"],
        case_id=data.get("case_id", ""),
        version=int(data.get("version") or 1),
        status=data.get("status", "draft"),
        services=_contract_items(data.get("services")),
        products=_contract_items(data.get("products")),
        total_amount=_dec(data, "total_amount"),
        approved_by=data.get("approved_by"),
        signed_by=tuple(data.get("signed_by") or ()),
        created_at=_parse_datetime(data.get("created_at")),
    )


def parse_employee(data: dict[str, Any]) -> GoEmployee:
    return GoEmployee(
        id=data["id"],
        employee_number=data.get("employee_number", ""),
        first_name=data.get("first_name", ""),
        last_name=data.get("last_name", ""),
        email=data.get("email", ""),
        hire_date=_parse_date(data.get("hire_date")),
        status=data.get("status", "active"),
        position_id=data.get("position_id", ""),
        position_title=data.get("position_title", ""),
        department=data.get("department", ""),
        termination_date=_parse_date(data.get("termination_date")),
    )


def parse_checklist_task(data: dict[str, Any]) -> GoChecklistTask:
    return GoChecklistTask(
        id=data["id"],
        name=data.get("name", ""),
        completed=bool(data.get("completed", False)),
        completed_at=_parse_datetime(data.get("completed_at")),
    )


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


class HttpGoFinancialAdapter(GoFinancialPort):

    def __init__(self, client: GoBackendClient):
        self._client = client

    def get_chart_of_accounts(self) -> list[GoGLAccount]:
        body = self._client.get("/v1/financial/chart-of-accounts")
        return [parse_gl_account(a) for a in _items(body, "accounts")]

    def get_gl_account(self, account_id: str) -> GoGLAccount:
        body = self._client.get(
            f"/v1/financial/gl-accounts/{_segment(account_id)}",
            entity=("GLAccount", account_id),
        )
        return parse_gl_account(body)

    def get_gl_account_by_number(self, account_number: str) -> GoGLAccount:
        body = self._client.get(
            f"/v1/financial/gl-accounts/by-number/{_segment(account_number)}",
            entity=("GLAccount", account_number),
        )
        return parse_gl_account(body)

    def create_journal_entry(self, command: CreateJournalEntryCommand) -> GoJournalEntry:
        body = self._client.post("/v1/financial/journal-entries", {
            "entry_date": command.entry_date,
            "description": command.description,
            "lines": [
                {
                    "account_id": line.account_id,
                    "debit": line.debit,
                    "credit": line.credit,
                    "description": line.description,
                }
                for line in command.lines
            ],
        })
        return parse_journal_entry(body)

    def post_journal_entry(self, entry_id: str) -> GoJournalEntry:
        body = self._client.post(
            f"/v1/financial/journal-entries/{_segment(entry_id)}/post",
            entity=("JournalEntry", entry_id),
        )
        return parse_journal_entry(body)

    def reverse_journal_entry(self, entry_id: str, reversal_date: date, reason: str) -> GoJournalEntry:
        body = self._client.post(
            f"/v1/financial/journal-entries/{_segment(entry_id)}/reverse",
            {"reversal_date": reversal_date, "reason": reason},
            entity=("JournalEntry", entry_id),
        )
        return parse_journal_entry(body)

    def get_journal_entry(self, entry_id: str) -> GoJournalEntry:
        body = self._client.get(
            f"/v1/financial/journal-entries/{_segment(entry_id)}",
            entity=("JournalEntry", entry_id),
        )
        return parse_journal_entry(body)

    def create_invoice(self, command: CreateInvoiceCommand) -> GoInvoice:
        body = self._client.post("/v1/financial/invoices", {
            "case_id": command.case_id,
            "contract_id": command.contract_id,
            "customer_id": command.customer_id,
            "invoice_date": command.invoice_date,
            "due_date": command.due_date,
            "line_items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "total_price": item.total_price,
                    "gl_account_id": item.gl_account_id,
                }
                for item in command.line_items
            ],
        })
        return parse_invoice(body)

    def get_invoice(self, invoice_id: str) -> GoInvoice:
        body = self._client.get(
            f"/v1/financial/invoices/{_segment(invoice_id)}",
            entity=("Invoice", invoice_id),
        )
        return parse_invoice(body)

    def list_invoices(self, case_id: str | None = None, status: str | None = None) -> list[GoInvoice]:
        body = self._client.get(
            "/v1/financial/invoices", params={"case_id": case_id, "status": status},
        )
        return [parse_invoice(i) for i in _items(body, "invoices")]

    def record_payment(self, command: RecordPaymentCommand) -> GoPayment:
        body = self._client.post("/v1/financial/payments", {
            "invoice_id": command.invoice_id,
            "payment_date": command.payment_date,
            "payment_method": command.payment_method,
            "amount": command.amount,
            "reference_number": command.reference_number,
        })
        return parse_payment(body)

    def create_vendor_bill(self, command: CreateVendorBillCommand) -> GoVendorBill:
        body = self._client.post("/v1/financial/vendor-bills", {
            "vendor_id": command.vendor_id,
            "bill_date": command.bill_date,
            "due_date": command.due_date,
            "bill_number": command.bill_number,
            "purchase_order_id": command.purchase_order_id,
            "status": command.status,
            "line_items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "total_price": item.total_price,
                    "gl_account_id": item.gl_account_id,
                    "po_line_id": item.po_line_id,
                }
                for item in command.line_items
            ],
        })
        return parse_vendor_bill(body)

    def get_vendor_bill(self, bill_id: str) -> GoVendorBill:
        body = self._client.get(
            f"/v1/financial/vendor-bills/{_segment(bill_id)}",
            entity=("VendorBill", bill_id),
        )
        return parse_vendor_bill(body)

    def list_vendor_bills(
        self,
        status: str | None = None,
        vendor_id: str | None = None,
        due_before: date | None = None,
    ) -> list[GoVendorBill]:
        body = self._client.get("/v1/financial/vendor-bills", params={
            "status": status,
            "vendor_id": vendor_id,
            "due_before": due_before,
        })
        return [parse_vendor_bill(b) for b in _items(body, "bills")]

    def approve_vendor_bill(self, bill_id: str, approved_by: str) -> GoVendorBill:
        body = self._client.post(
            f"/v1/financial/vendor-bills/{_segment(bill_id)}/approve",
            {"approved_by": approved_by},
            entity=("VendorBill", bill_id),
        )
        return parse_vendor_bill(body)

    def create_ap_payment_run(self, command: CreateAPPaymentRunCommand) -> GoAPPaymentRun:
        body = self._client.post("/ap/payment-runs", {
            "run_date": command.run_date,
            "bill_ids": list(command.bill_ids),
            "payment_method": command.payment_method,
            "created_by": command.created_by,
        })
        return parse_payment_run(body)

    def get_ap_payment_run(self, run_id: str) -> GoAPPaymentRun:
        body = self._client.get(
            f"/ap/payment-runs/{_segment(run_id)}", entity=("APPaymentRun", run_id),
        )
        return parse_payment_run(body)

    def approve_ap_payment_run(self, run_id: str, approved_by: str) -> GoAPPaymentRun:
        body = self._client.post(
            f"/ap/payment-runs/{_segment(run_id)}/approve",
            {"approved_by": approved_by},
            entity=("APPaymentRun", run_id),
        )
        return parse_payment_run(body)

    def execute_ap_payment_run(self, run_id: str) -> GoAPPaymentRunExecution:
        body = self._client.post(
            f"/ap/payment-runs/{_segment(run_id)}/execute",
            entity=("APPaymentRun", run_id),
        )
        return GoAPPaymentRunExecution(
            payment_run_id=body.get("payment_run_id", run_id),
            status=body.get("status", ""),
            executed=int(body.get("executed") or 0),
            executed_at=_parse_datetime(body.get("executed_at")),
            gl_journal_id=body.get("gl_journal_id"),
        )

    def get_budget_variance(self, period_end: date) -> list[GoBudgetLine]:
        body = self._client.get(
            "/v1/financial/budget-variance", params={"period": period_end},
        )
        return [
            GoBudgetLine(
                account_number=line.get("account_number", ""),
                account_name=line.get("account_name", ""),
                budget_amount=_dec(line, "budget_amount"),
                actual_amount=_dec(line, "actual_amount"),
            )
            for line in _items(body, "accounts")
        ]


class HttpGoInventoryAdapter(GoInventoryPort):

    def __init__(self, client: GoBackendClient):
        self._client = client

    def get_item(self, item_id: str) -> GoInventoryItem:
        body = self._client.get(
            f"/v1/inventory/items/{_segment(item_id)}", entity=("InventoryItem", item_id),
        )
        return parse_inventory_item(body)

    def list_items(self, category: str | None = None, status: str | None = None) -> list[GoInventoryItem]:
        body = self._client.get(
            "/v1/inventory/items", params={"category": category, "status": status},
        )
        return [parse_inventory_item(i) for i in _items(body, "items")]

    def get_balance(self, item_id: str, location_id: str) -> GoInventoryBalance:
        body = self._client.get(
            "/v1/inventory/balances",
            params={"item_id": item_id, "location_id": location_id},
            entity=("InventoryBalance", f"{item_id}@{location_id}"),
        )
        if isinstance(body, list):
            if not body:
                raise NotFoundError("InventoryBalance", f"{item_id}@{location_id}")
            body = body[0]
        return parse_inventory_balance(body)

    def get_balances_across_locations(self, item_id: str) -> list[GoInventoryBalance]:
        body = self._client.get("/v1/inventory/balances", params={"item_id": item_id})
        return [parse_inventory_balance(b) for b in _items(body, "balances")]

    def reserve_inventory(self, command: ReserveInventoryCommand) -> GoInventoryReservation:
        body = self._client.post("/v1/inventory/reservations", {
            "item_id": command.item_id,
            "quantity": command.quantity,
            "location_id": command.location_id,
            "case_id": command.case_id,
            "contract_id": command.contract_id,
            "expires_in_days": command.expires_in_days,
        })
        return parse_reservation(body)

    def commit_reservation(self, reservation_id: str) -> None:
        self._client.post(
            f"/v1/inventory/reservations/{_segment(reservation_id)}/commit",
            entity=("InventoryReservation", reservation_id),
        )

    def release_reservation(self, reservation_id: str) -> None:
        self._client.post(
            f"/v1/inventory/reservations/{_segment(reservation_id)}/release",
            entity=("InventoryReservation", reservation_id),
        )

    def get_reservations_by_case(self, case_id: str) -> list[GoInventoryReservation]:
        body = self._client.get("/v1/inventory/reservations", params={"case_id": case_id})
        return [parse_reservation(r) for r in _items(body, "reservations")]

    def receive_inventory(self, command: ReceiveInventoryCommand) -> GoInventoryTransaction:
        body = self._client.post("/v1/inventory/receive", {
            "item_id": command.item_id,
            "quantity": command.quantity,
            "location_id": command.location_id,
            "unit_cost": command.unit_cost,
            "purchase_order_id": command.purchase_order_id,
            "notes": command.notes,
        })
        return parse_inventory_transaction(body)

    def adjust_inventory(self, command: AdjustInventoryCommand) -> GoInventoryTransaction:
        body = self._client.post("/v1/inventory/adjust", {
            "item_id": command.item_id,
            "location_id": command.location_id,
            "quantity": command.quantity,
            "reason": command.reason,
            "notes": command.notes,
        })
        return parse_inventory_transaction(body)

    def transfer_inventory(self, command: TransferInventoryCommand) -> GoInventoryTransaction:
        body = self._client.post("/v1/inventory/transfer", {
            "item_id": command.item_id,
            "from_location_id": command.from_location_id,
            "to_location_id": command.to_location_id,
            "quantity": command.quantity,
            "notes": command.notes,
        })
        return parse_inventory_transaction(body)


class HttpGoProcurementAdapter(GoProcurementPort):

    def __init__(self, client: GoBackendClient):
        self._client = client

    def get_purchase_order(self, po_id: str) -> GoPurchaseOrder:
        body = self._client.get(
            f"/v1/procurement/pos/{_segment(po_id)}", entity=("PurchaseOrder", po_id),
        )
        return parse_purchase_order(body)

    def get_receipts_by_purchase_order(self, po_id: str) -> list[GoReceipt]:
        body = self._client.get("/v1/procurement/receipts", params={"po_id": po_id})
        return [parse_receipt(r) for r in _items(body, "receipts")]

    def create_receipt(self, command: CreateReceiptCommand) -> GoReceipt:
        body = self._client.post("/v1/procurement/receipts", {
            "purchase_order_id": command.purchase_order_id,
            "received_date": command.received_date,
            "received_by": command.received_by,
            "notes": command.notes,
            "line_items": [
                {
                    "po_line_item_id": line.po_line_item_id,
                    "quantity_received": line.quantity_received,
                    "quantity_rejected": line.quantity_rejected,
                    "rejection_reason": line.rejection_reason,
                }
                for line in command.line_items
            ],
        }, entity=("PurchaseOrder", command.purchase_order_id))
        return parse_receipt(body)


class HttpGoContractAdapter(GoContractPort):

    def __init__(self, client: GoBackendClient):
        self._client = client

    def get_contract(self, contract_id: str) -> GoContract:
        body = self._client.get(
            f"/v1/contracts/{_segment(contract_id)}", entity=("Contract", contract_id),
        )
        return parse_contract(body)

    def create_contract(self, command: CreateGoContractCommand) -> GoContract:
        def encode(items):
            return [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "total_price": item.total_price,
                    "gl_account_id": item.gl_account_id,
                }
                for item in items
            ]

        body = self._client.post("/v1/contracts", {
            "case_id": command.case_id,
            "services": encode(command.services),
            "products": encode(command.products),
        })
        return parse_contract(body)


class HttpGoHRAdapter(GoHRPort):

    def __init__(self, client: GoBackendClient):
        self._client = client

    def hire_employee(self, command: HireEmployeeCommand) -> GoEmployee:
        body = self._client.post("/v1/hcm/employees/hire", {
            "first_name": command.first_name,
            "last_name": command.last_name,
            "email": command.email,
            "hire_date": command.hire_date,
            "position_id": command.position_id,
            "position_title": command.position_title,
            "department": command.department,
        })
        return parse_employee(body)

    def get_onboarding_tasks(self, employee_id: str) -> list[GoChecklistTask]:
        body = self._client.get(
            f"/v1/hcm/employees/{_segment(employee_id)}/onboarding/tasks",
            entity=("Employee", employee_id),
        )
        return [parse_checklist_task(t) for t in _items(body, "tasks")]

    def terminate_employee(self, employee_id: str, termination_date: date, reason: str) -> None:
        self._client.post(
            f"/v1/hcm/employees/{_segment(employee_id)}/terminate",
            {"termination_date": termination_date, "reason": reason},
            entity=("Employee", employee_id),
        )

    def get_exit_checklist(self, employee_id: str) -> list[GoChecklistTask]:
        body = self._client.get(
            f"/v1/hcm/employees/{_segment(employee_id)}/exit/checklist",
            entity=("Employee", employee_id),
        )
        return [parse_checklist_task(t) for t in _items(body, "items")]

    def process_final_paycheck(self, employee_id: str) -> None:
        self._client.post(
            f"/v1/hcm/employees/{_segment(employee_id)}/exit/final-paycheck",
            entity=("Employee", employee_id),
        )
