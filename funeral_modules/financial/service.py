"""
Financial Service (``funeral_modules.financial.service``).

Responsibility
--------------
Orchestrate general-ledger, receivables and payables operations in the Go
backend on behalf of a funeral case or the AP department:

* revenue recognition when a case is finalized,
* customer payments and case balances,
* invoices generated from signed contracts,
* vendor bills with PO/receipt/bill three-way matching,
* AP payment runs,
* sales tax and budget variance reports.

The Go backend is the ledger of record.  The only local write is the new
case version carrying the finalization journal entry.

Failure semantics
-----------------
Steps run in order; the first failure propagates as a typed error and no
compensation is attempted for Go-side effects already performed.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from funeral_engines.matching import (
    BilledLine,
    MatchTolerance,
    PurchaseOrderLine,
    ReceivedLine,
    ThreeWayMatcher,
)
from funeral_kernel.db.types import ZERO, parse_decimal, round_money
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import NotFoundError, ValidationError
from funeral_kernel.logging_config import LogContext, get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.case.models import CaseStatus
from funeral_modules.case.repository import CaseRepository
from funeral_modules.financial.gl_accounts import GLAccountMap
from funeral_modules.financial.models import (
    MICHIGAN_SALES_TAX,
    BillLine,
    BudgetVarianceReport,
    CaseBalance,
    CasePaymentResult,
    FinalizeCaseResult,
    InvoiceResult,
    MatchStatus,
    PaymentRunPreview,
    PaymentRunResult,
    PaymentRunStatus,
    SalesTaxReport,
    TaxJurisdiction,
    VendorBillResult,
    VendorPaymentTotal,
)
from funeral_modules.financial.reports import build_budget_variance_report, build_sales_tax_report
from funeral_services.ports import (
    CreateAPPaymentRunCommand,
    CreateInvoiceCommand,
    CreateJournalEntryCommand,
    CreateVendorBillCommand,
    GoBillLineItem,
    GoContract,
    GoContractPort,
    GoFinancialPort,
    GoInvoice,
    GoInvoiceLineItem,
    GoJournalEntryLine,
    GoProcurementPort,
    GoVendorBill,
    RecordPaymentCommand,
)

logger = get_logger("modules.financial.service")

DEFAULT_PAYMENT_TERMS_DAYS = 30
MAX_BILL_FETCH_WORKERS = 4
MAX_REPORT_RANGE_DAYS = 366

_FINALIZABLE_CASE_STATUSES = (CaseStatus.ACTIVE, CaseStatus.COMPLETED)
_FINALIZABLE_CONTRACT_STATUSES = ("active", "completed")
_INVOICEABLE_CONTRACT_STATUSES = ("approved", "active", "completed")


class FinancialService:
    """GL, AR and AP orchestration against the Go backend."""

    def __init__(
        self,
        session: Session,
        financial_port: GoFinancialPort,
        contract_port: GoContractPort | None = None,
        procurement_port: GoProcurementPort | None = None,
        clock: Clock | None = None,
        gl_accounts: GLAccountMap | None = None,
        payment_terms_days: int = DEFAULT_PAYMENT_TERMS_DAYS,
        match_tolerance: MatchTolerance | None = None,
        tax_jurisdiction: TaxJurisdiction | None = None,
    ):
        self._session = session
        self._financial = financial_port
        self._contract_port = contract_port
        self._procurement = procurement_port
        self._clock = clock or SystemClock()
        self._accounts = gl_accounts or GLAccountMap()
        self._payment_terms_days = payment_terms_days
        self._tolerance = match_tolerance or MatchTolerance()
        self._tax_jurisdiction = tax_jurisdiction or MICHIGAN_SALES_TAX
        self._matcher = ThreeWayMatcher()
        self._cases = CaseRepository(session, self._clock)

    # ------------------------------------------------------------------
    # Revenue recognition
    # ------------------------------------------------------------------

    def finalize_case_with_gl_posting(self, case_id: str, actor_id: str) -> FinalizeCaseResult:
        """
        Recognize the revenue of a case's Go contract and close the case financially.

        Journal: DR accounts receivable for the contract total, CR service
        revenue and CR merchandise revenue for their non-zero parts.

        Raises:
            NotFoundError: Unknown case, or unknown contract in Go.
            ValidationError: No linked contract, or case/contract status
                does not allow finalization.
            BusinessRuleViolationError: Case already finalized.
        """
        with LogContext.bind(case_id=case_id, use_case="finalize_case_with_gl_posting"):
            case = self._cases.get_current(case_id)
            if not case.go_contract_id:
                raise ValidationError(
                    "Case must have an active contract before finalization",
                    field="go_contract_id",
                )
            if case.status not in _FINALIZABLE_CASE_STATUSES:
                raise ValidationError(
                    f"Case cannot be finalized from status: {case.status.value}", field="status",
                )
            contract = self._require_contract_port().get_contract(case.go_contract_id)
            if contract.status not in _FINALIZABLE_CONTRACT_STATUSES:
                raise ValidationError(
                    f"Contract must be active or completed. Current status: {contract.status}",
                    field="contract_status",
                )

            service_revenue = round_money(sum((i.total_price for i in contract.services), ZERO))
            merchandise_revenue = round_money(sum((i.total_price for i in contract.products), ZERO))
            total = round_money(contract.total_amount)

            ar = self._financial.get_gl_account_by_number(self._accounts.accounts_receivable)
            lines = [GoJournalEntryLine(
                account_id=ar.id, debit=total, credit=ZERO,
                description=f"AR - Case {case.business_key}",
            )]
            posted = [ar.account_number]
            if service_revenue > 0:
                account = self._financial.get_gl_account_by_number(self._accounts.service_revenue)
                lines.append(GoJournalEntryLine(
                    account_id=account.id, debit=ZERO, credit=service_revenue,
                    description="Professional services revenue",
                ))
                posted.append(account.account_number)
            if merchandise_revenue > 0:
                account = self._financial.get_gl_account_by_number(self._accounts.merchandise_revenue)
                lines.append(GoJournalEntryLine(
                    account_id=account.id, debit=ZERO, credit=merchandise_revenue,
                    description="Merchandise revenue",
                ))
                posted.append(account.account_number)

            now = self._clock.now()
            entry = self._financial.create_journal_entry(CreateJournalEntryCommand(
                entry_date=now.date(),
                description=f"Revenue recognition for case {case.business_key} - {case.decedent_name}",
                lines=tuple(lines),
            ))
            self._financial.post_journal_entry(entry.id)

            with unit_of_work(self._session, "finalize_case_with_gl_posting"):
                self._cases.save(case.finalize(entry.id, total, now), actor_id)

            logger.info("case_finalized_with_gl_posting", extra={
                "journal_entry_id": entry.id,
                "total_amount": str(total),
                "gl_accounts_posted": posted,
            })
            return FinalizeCaseResult(
                case_id=case.business_key,
                journal_entry_id=entry.id,
                total_amount=total,
                service_revenue=service_revenue,
                merchandise_revenue=merchandise_revenue,
                gl_accounts_posted=tuple(posted),
                finalized_at=now,
            )

    # ------------------------------------------------------------------
    # Receivables
    # ------------------------------------------------------------------

    def process_case_payment(
        self,
        case_id: str,
        amount: Decimal,
        payment_method: str,
        received_by: str,
        reference: str | None = None,
        invoice_id: str | None = None,
    ) -> CasePaymentResult:
        """
        Record a customer payment in Go AR against the case's open invoice.

        Without ``invoice_id`` the oldest case invoice with an amount due is used.
        """
        amount = parse_decimal(amount, "amount")
        if amount <= 0:
            raise ValidationError(
                f"Payment amount must be greater than zero (got: {amount})", field="amount",
            )
        case = self._cases.get_current(case_id)
        if not case.go_contract_id:
            raise ValidationError(
                "Case must have an associated contract to process payments",
                field="go_contract_id",
            )
        invoice = self._open_invoice(case.business_key, invoice_id)
        if amount > invoice.amount_due:
            raise ValidationError(
                f"Payment {amount} exceeds the amount due {invoice.amount_due} "
                f"on invoice {invoice.invoice_number}",
                field="amount",
            )

        payment = self._financial.record_payment(RecordPaymentCommand(
            invoice_id=invoice.id,
            payment_date=self._clock.today(),
            payment_method=payment_method,
            amount=round_money(amount),
            reference_number=reference,
        ))
        remaining = round_money(invoice.amount_due - amount)
        logger.info("case_payment_recorded", extra={
            "case_id": case.business_key,
            "invoice_id": invoice.id,
            "payment_id": payment.id,
            "amount": str(amount),
            "remaining_balance": str(remaining),
            "received_by": received_by,
        })
        return CasePaymentResult(
            case_id=case.business_key,
            invoice_id=invoice.id,
            payment=payment,
            remaining_balance=remaining,
        )

    def get_case_balance(self, case_id: str) -> CaseBalance:
        case = self._cases.get_current(case_id)
        invoices = self._financial.list_invoices(case_id=case.business_key)
        return CaseBalance(
            case_id=case.business_key,
            invoice_count=len(invoices),
            invoice_total=round_money(sum((i.total_amount for i in invoices), ZERO)),
            payments_total=round_money(sum((i.amount_paid for i in invoices), ZERO)),
        )

    def create_invoice_from_contract(
        self,
        contract_id: str,
        case_id: str,
        invoice_date: date | None = None,
        due_date: date | None = None,
        payment_terms_days: int | None = None,
    ) -> InvoiceResult:
        contract = self._require_contract_port().get_contract(contract_id)
        if contract.status not in _INVOICEABLE_CONTRACT_STATUSES:
            raise ValidationError(
                f"Contract must be approved or active. Current status: {contract.status}",
                field="contract_status",
            )
        if not contract.signed_by:
            raise ValidationError(
                "Contract must be signed before creating an invoice",
                field="contract_signatures",
            )
        case = self._cases.get_current(case_id)
        if case.go_contract_id != contract_id:
            raise ValidationError(
                f"Contract {contract_id} is not associated with case {case_id}",
                field="contract_id",
            )

        invoice_date = invoice_date or self._clock.today()
        terms = self._payment_terms_days if payment_terms_days is None else payment_terms_days
        due_date = due_date or invoice_date + timedelta(days=terms)

        invoice = self._financial.create_invoice(CreateInvoiceCommand(
            case_id=case.business_key,
            contract_id=contract.id,
            customer_id=case.business_key,
            invoice_date=invoice_date,
            due_date=due_date,
            line_items=_invoice_lines(contract),
        ))
        logger.info("invoice_created_from_contract", extra={
            "case_id": case.business_key,
            "contract_id": contract.id,
            "invoice_id": invoice.id,
            "total_amount": str(invoice.total_amount),
            "due_date": invoice.due_date.isoformat(),
        })
        return InvoiceResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            case_id=case.business_key,
            total_amount=invoice.total_amount,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
        )

    # ------------------------------------------------------------------
    # Payables
    # ------------------------------------------------------------------

    def process_vendor_bill(
        self,
        vendor_id: str,
        bill_date: date,
        due_date: date,
        line_items: Sequence[BillLine],
        created_by: str,
        bill_number: str | None = None,
        purchase_order_id: str | None = None,
    ) -> VendorBillResult:
        """
        Create a vendor bill, three-way matching it when it references a PO.

        A matched bill is created ``approved``; anything else waits in
        ``pending_approval``.
        """
        if not line_items:
            raise ValidationError(
                "Vendor bill must have at least one line item", field="line_items",
            )
        total = round_money(sum((line.total_price for line in line_items), ZERO))

        match = None
        status = MatchStatus.NOT_APPLICABLE
        if purchase_order_id:
            match = self._three_way_match(purchase_order_id, line_items)
            status = MatchStatus.THREE_WAY_MATCH if match.is_valid else MatchStatus.NO_MATCH

        bill = self._financial.create_vendor_bill(CreateVendorBillCommand(
            vendor_id=vendor_id,
            bill_date=bill_date,
            due_date=due_date,
            bill_number=bill_number,
            purchase_order_id=purchase_order_id,
            status="approved" if status is MatchStatus.THREE_WAY_MATCH else "pending_approval",
            line_items=tuple(
                GoBillLineItem(
                    description=line.description,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=round_money(line.total_price),
                    gl_account_id=line.gl_account_id,
                    po_line_id=line.po_line_id,
                )
                for line in line_items
            ),
        ))
        logger.info("vendor_bill_processed", extra={
            "bill_id": bill.id,
            "vendor_id": vendor_id,
            "purchase_order_id": purchase_order_id,
            "total_amount": str(total),
            "match_status": status.value,
            "created_by": created_by,
        })
        return VendorBillResult(bill=bill, total_amount=total, match_status=status, match=match)

    def create_ap_payment_run(
        self,
        bill_ids: Sequence[str],
        run_date: date,
        payment_method: str,
        created_by: str,
        auto_approve: bool = False,
        auto_execute: bool = False,
    ) -> PaymentRunResult:
        """
        Pay a batch of approved vendor bills.

        ``auto_execute`` only takes effect together with ``auto_approve``.

        Raises:
            ValidationError: No bills, or any bill not approved (the message
                lists the offending bill numbers).
        """
        if not bill_ids:
            raise ValidationError("Payment run must include at least one bill", field="bill_ids")
        bills = self._fetch_bills(bill_ids)
        unapproved = [b for b in bills if b.status != "approved"]
        if unapproved:
            raise ValidationError(
                f"{len(unapproved)} bill(s) are not approved: "
                f"{', '.join(b.bill_number for b in unapproved)}",
                field="bill_ids",
            )
        total = round_money(sum((b.amount_due for b in bills), ZERO))

        run = self._financial.create_ap_payment_run(CreateAPPaymentRunCommand(
            run_date=run_date,
            bill_ids=tuple(bill_ids),
            payment_method=payment_method,
            created_by=created_by,
        ))
        status = PaymentRunStatus.DRAFT
        executed = False
        gl_journal_id = None
        if auto_approve:
            run = self._financial.approve_ap_payment_run(run.id, created_by)
            status = PaymentRunStatus.APPROVED
            if auto_execute:
                execution = self._financial.execute_ap_payment_run(run.id)
                executed = True
                gl_journal_id = execution.gl_journal_id
                status = PaymentRunStatus.COMPLETED

        logger.info("ap_payment_run_created", extra={
            "payment_run_id": run.id,
            "bill_count": len(bills),
            "total_amount": str(total),
            "status": status.value,
            "executed": executed,
        })
        return PaymentRunResult(
            payment_run=run,
            bill_count=len(bills),
            total_amount=total,
            status=status,
            executed=executed,
            gl_journal_id=gl_journal_id,
        )

    def list_approved_bills_for_payment(
        self,
        due_before: date | None = None,
        vendor_id: str | None = None,
    ) -> list[GoVendorBill]:
        bills = self._financial.list_vendor_bills(
            status="approved", vendor_id=vendor_id, due_before=due_before,
        )
        if due_before is not None:
            bills = [b for b in bills if b.due_date <= due_before]
        return bills

    def get_payment_run_preview(self, bill_ids: Sequence[str]) -> PaymentRunPreview:
        bills = self._fetch_bills(bill_ids)
        by_vendor: dict[str, list[GoVendorBill]] = {}
        for bill in bills:
            by_vendor.setdefault(bill.vendor_id, []).append(bill)
        vendors = tuple(
            VendorPaymentTotal(
                vendor_id=vendor_id,
                vendor_name=group[0].vendor_name,
                bill_count=len(group),
                amount=round_money(sum((b.amount_due for b in group), ZERO)),
            )
            for vendor_id, group in by_vendor.items()
        )
        return PaymentRunPreview(
            bill_count=len(bills),
            total_amount=round_money(sum((b.amount_due for b in bills), ZERO)),
            vendors=vendors,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def generate_sales_tax_report(
        self,
        start_date: date,
        end_date: date,
        generated_by: str,
        jurisdiction: str | None = None,
    ) -> SalesTaxReport:
        """
        Sales tax collected over a period of at most a year, per jurisdiction.

        Raises:
            ValidationError: Every problem with the request, joined by "; ".
        """
        errors = []
        if start_date is None:
            errors.append("Start date is required")
        if end_date is None:
            errors.append("End date is required")
        if start_date is not None and end_date is not None:
            if start_date > end_date:
                errors.append("Start date must be before or equal to end date")
            if (end_date - start_date).days > MAX_REPORT_RANGE_DAYS:
                errors.append(f"Date range cannot exceed {MAX_REPORT_RANGE_DAYS} days")
        if not (generated_by or "").strip():
            errors.append("Generated by user is required")
        if errors:
            raise ValidationError("; ".join(errors))

        report = build_sales_tax_report(
            self._financial.list_invoices(),
            start_date=start_date,
            end_date=end_date,
            jurisdiction=self._tax_jurisdiction,
            generated_by=generated_by,
            generated_at=self._clock.now(),
            jurisdiction_filter=jurisdiction,
        )
        logger.info("sales_tax_report_generated", extra={
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "jurisdiction_count": report.jurisdiction_count,
            "total_tax_collected": str(report.total_tax_collected),
            "generated_by": generated_by,
        })
        return report

    def generate_budget_variance_report(self, period_end: date) -> BudgetVarianceReport:
        """Budget against actual per GL account for the period ending ``period_end``."""
        if period_end is None:
            raise ValidationError("Report period is required", field="period_end")
        report = build_budget_variance_report(
            self._financial.get_budget_variance(period_end), period_end,
        )
        logger.info("budget_variance_report_generated", extra={
            "period_end": period_end.isoformat(),
            "account_count": len(report.accounts),
            "significant_count": report.significant_count,
            "total_variance": str(report.total_variance),
        })
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_contract_port(self) -> GoContractPort:
        if self._contract_port is None:
            raise ValidationError("No Go contract port configured", field="contract_port")
        return self._contract_port

    def _open_invoice(self, case_id: str, invoice_id: str | None) -> GoInvoice:
        if invoice_id is not None:
            invoice = self._financial.get_invoice(invoice_id)
            if invoice.case_id != case_id:
                raise ValidationError(
                    f"Invoice {invoice_id} does not belong to case {case_id}", field="invoice_id",
                )
            return invoice
        open_invoices = sorted(
            (i for i in self._financial.list_invoices(case_id=case_id) if i.amount_due > 0),
            key=lambda i: i.invoice_date,
        )
        if not open_invoices:
            raise NotFoundError("Invoice", case_id, f"No open invoice for case {case_id}")
        return open_invoices[0]

    def _three_way_match(self, purchase_order_id: str, line_items: Sequence[BillLine]):
        if self._procurement is None:
            raise ValidationError(
                "No procurement port configured for purchase order matching",
                field="purchase_order_id",
            )
        po = self._procurement.get_purchase_order(purchase_order_id)
        receipts = self._procurement.get_receipts_by_purchase_order(purchase_order_id)
        return self._matcher.match(
            po_lines=[PurchaseOrderLine(pl.id, pl.quantity, pl.unit_price) for pl in po.line_items],
            received_lines=[
                ReceivedLine(r.po_line_item_id, r.quantity_received)
                for receipt in receipts for r in receipt.line_items
            ],
            billed_lines=[
                BilledLine(line.description, line.quantity, line.unit_price, line.po_line_id)
                for line in line_items
            ],
            tolerance=self._tolerance,
        )

    def _fetch_bills(self, bill_ids: Sequence[str]) -> list[GoVendorBill]:
        if not bill_ids:
            return []
        workers = min(MAX_BILL_FETCH_WORKERS, len(bill_ids))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self._financial.get_vendor_bill, bill_ids))


def _invoice_lines(contract: GoContract) -> tuple[GoInvoiceLineItem, ...]:
    return tuple(
        GoInvoiceLineItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total_price=item.total_price,
            gl_account_id=item.gl_account_id,
        )
        for item in contract.items
    )
