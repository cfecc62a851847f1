"""
Financial use-case inputs and results (``funeral_modules.financial.models``).

Frozen value objects returned by ``FinancialService``.  Nothing here is
persisted locally; the ledger of record is the Go backend.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from funeral_engines.matching import ThreeWayMatchResult
from funeral_kernel.db.types import parse_decimal
from funeral_kernel.exceptions import ValidationError
from funeral_services.ports import GoAPPaymentRun, GoPayment, GoVendorBill


class MatchStatus(str, Enum):
    THREE_WAY_MATCH = "3-way-match"
    NO_MATCH = "no-match"
    NOT_APPLICABLE = "not-applicable"


class PaymentRunStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    COMPLETED = "completed"


@dataclass(frozen=True)
class FinalizeCaseResult:
    case_id: str
    journal_entry_id: str
    total_amount: Decimal
    service_revenue: Decimal
    merchandise_revenue: Decimal
    gl_accounts_posted: tuple[str, ...]
    finalized_at: datetime


@dataclass(frozen=True)
class CasePaymentResult:
    case_id: str
    invoice_id: str
    payment: GoPayment
    remaining_balance: Decimal


@dataclass(frozen=True)
class CaseBalance:
    case_id: str
    invoice_count: int
    invoice_total: Decimal
    payments_total: Decimal

    @property
    def balance_due(self) -> Decimal:
        return self.invoice_total - self.payments_total


@dataclass(frozen=True)
class InvoiceResult:
    invoice_id: str
    invoice_number: str
    case_id: str
    total_amount: Decimal
    invoice_date: date
    due_date: date


@dataclass(frozen=True)
class BillLine:
    """One line of a vendor bill as entered by AP staff."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    gl_account_id: str = ""
    po_line_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", parse_decimal(self.quantity, "quantity"))
        object.__setattr__(self, "unit_price", parse_decimal(self.unit_price, "unit_price"))
        if self.quantity <= 0 or self.unit_price <= 0:
            raise ValidationError(
                "Line item quantity and price must be positive", field="line_items",
            )

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class VendorBillResult:
    bill: GoVendorBill
    total_amount: Decimal
    match_status: MatchStatus
    match: ThreeWayMatchResult | None = None

    @property
    def is_approved(self) -> bool:
        return self.match_status is MatchStatus.THREE_WAY_MATCH


@dataclass(frozen=True)
class PaymentRunResult:
    payment_run: GoAPPaymentRun
    bill_count: int
    total_amount: Decimal
    status: PaymentRunStatus
    executed: bool
    gl_journal_id: str | None = None


@dataclass(frozen=True)
class VendorPaymentTotal:
    vendor_id: str
    vendor_name: str
    bill_count: int
    amount: Decimal


@dataclass(frozen=True)
class PaymentRunPreview:
    bill_count: int
    total_amount: Decimal
    vendors: tuple[VendorPaymentTotal, ...]

    @property
    def vendor_count(self) -> int:
        return len(self.vendors)


class TaxJurisdictionType(str, Enum):
    STATE = "state"
    COUNTY = "county"
    CITY = "city"
    SPECIAL = "special"


@dataclass(frozen=True)
class TaxJurisdiction:
    name: str
    jurisdiction_type: TaxJurisdictionType
    rate: Decimal


MICHIGAN_SALES_TAX = TaxJurisdiction("Michigan", TaxJurisdictionType.STATE, Decimal("0.06"))


@dataclass(frozen=True)
class JurisdictionTaxSummary:
    jurisdiction: str
    jurisdiction_type: TaxJurisdictionType
    tax_rate: Decimal
    taxable_amount: Decimal
    tax_collected: Decimal
    transaction_count: int


@dataclass(frozen=True)
class SalesTaxReport:
    """Tax collected per jurisdiction, largest first."""

    start_date: date
    end_date: date
    jurisdictions: tuple[JurisdictionTaxSummary, ...]
    generated_at: datetime
    generated_by: str

    @property
    def total_taxable_amount(self) -> Decimal:
        return sum((j.taxable_amount for j in self.jurisdictions), Decimal("0"))

    @property
    def total_tax_collected(self) -> Decimal:
        return sum((j.tax_collected for j in self.jurisdictions), Decimal("0"))

    @property
    def total_transactions(self) -> int:
        return sum(j.transaction_count for j in self.jurisdictions)

    @property
    def jurisdiction_count(self) -> int:
        return len(self.jurisdictions)


class BudgetCategory(str, Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"
    OTHER = "other"


@dataclass(frozen=True)
class BudgetVarianceLine:
    account_number: str
    account_name: str
    budget_amount: Decimal
    actual_amount: Decimal
    variance: Decimal
    variance_percent: Decimal
    category: BudgetCategory
    is_favorable: bool
    is_significant: bool
    recommendation: str


@dataclass(frozen=True)
class LargestVariance:
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class BudgetVarianceReport:
    period_end: date
    total_budget: Decimal
    total_actual: Decimal
    total_variance: Decimal
    total_variance_percent: Decimal
    accounts: tuple[BudgetVarianceLine, ...]
    significant_count: int
    favorable_count: int
    unfavorable_count: int
    largest_favorable: LargestVariance
    largest_unfavorable: LargestVariance
