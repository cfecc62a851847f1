"""
Financial reports (``funeral_modules.financial.reports``).

Pure builders behind ``FinancialService``'s reporting operations: they take
what the Go backend returned and produce the frozen report objects.  No
I/O here; fetching, validation and logging stay in the service.

Sales tax
---------
Only ``paid`` and ``partial`` invoices carry a tax liability.  Each invoice
is attributed to a single jurisdiction (the funeral home's state) and
contributes its subtotal as the taxable amount.

Budget variance
---------------
The account category comes from the first digit of the account number:
``4`` revenue, ``5`` expense, anything else other.  A variance is
significant when its percentage exceeds 10 in either direction.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal

from funeral_engines.variance import VarianceCalculator
from funeral_kernel.db.types import ZERO, round_money
from funeral_modules.financial.models import (
    BudgetCategory,
    BudgetVarianceLine,
    BudgetVarianceReport,
    JurisdictionTaxSummary,
    LargestVariance,
    SalesTaxReport,
    TaxJurisdiction,
)
from funeral_services.ports import GoBudgetLine, GoInvoice

TAX_LIABLE_INVOICE_STATUSES = ("paid", "partial")
SIGNIFICANT_VARIANCE_PERCENT = Decimal("10")

_RECOMMENDATIONS = {
    (True, BudgetCategory.REVENUE): "Positive variance - investigate revenue drivers for replication",
    (True, BudgetCategory.EXPENSE): "Under budget - review for cost savings opportunities",
    (True, BudgetCategory.OTHER): "Monitor trend - favorable variance",
    (False, BudgetCategory.REVENUE): "Revenue shortfall - implement corrective action plan immediately",
    (False, BudgetCategory.EXPENSE): "Over budget - require expense justification and cost control measures",
    (False, BudgetCategory.OTHER): "Monitor trend - unfavorable variance",
}
WITHIN_RANGE_RECOMMENDATION = "Variance within acceptable range - no action required"


def build_sales_tax_report(
    invoices: Iterable[GoInvoice],
    start_date: date,
    end_date: date,
    jurisdiction: TaxJurisdiction,
    generated_by: str,
    generated_at: datetime,
    jurisdiction_filter: str | None = None,
) -> SalesTaxReport:
    """Aggregate tax collected per jurisdiction for invoices dated in the period."""
    totals: dict[str, list] = {}
    for invoice in invoices:
        if invoice.status not in TAX_LIABLE_INVOICE_STATUSES:
            continue
        if invoice.invoice_date is None or not start_date <= invoice.invoice_date <= end_date:
            continue
        if jurisdiction_filter and jurisdiction.name != jurisdiction_filter:
            continue
        entry = totals.setdefault(jurisdiction.name, [jurisdiction, ZERO, ZERO, 0])
        entry[1] += invoice.subtotal
        entry[2] += invoice.tax_amount
        entry[3] += 1

    summaries = sorted(
        (
            JurisdictionTaxSummary(
                jurisdiction=j.name,
                jurisdiction_type=j.jurisdiction_type,
                tax_rate=j.rate,
                taxable_amount=round_money(taxable),
                tax_collected=round_money(tax),
                transaction_count=count,
            )
            for j, taxable, tax, count in totals.values()
        ),
        key=lambda s: s.tax_collected,
        reverse=True,
    )
    return SalesTaxReport(
        start_date=start_date,
        end_date=end_date,
        jurisdictions=tuple(summaries),
        generated_at=generated_at,
        generated_by=generated_by,
    )


def categorize_account(account_number: str) -> BudgetCategory:
    if account_number.startswith("4"):
        return BudgetCategory.REVENUE
    if account_number.startswith("5"):
        return BudgetCategory.EXPENSE
    return BudgetCategory.OTHER


def is_favorable(category: BudgetCategory, variance: Decimal) -> bool:
    """More revenue or less expense than budgeted; other accounts favor non-negative."""
    if category is BudgetCategory.REVENUE:
        return variance > 0
    if category is BudgetCategory.EXPENSE:
        return variance < 0
    return variance >= 0


def recommend(category: BudgetCategory, favorable: bool, significant: bool) -> str:
    if not significant:
        return WITHIN_RANGE_RECOMMENDATION
    return _RECOMMENDATIONS[(favorable, category)]


def analyze_budget_line(line: GoBudgetLine, calculator: VarianceCalculator) -> BudgetVarianceLine:
    change = calculator.value_change(line.budget_amount, line.actual_amount)
    category = categorize_account(line.account_number)
    favorable = is_favorable(category, change.variance)
    significant = abs(change.variance_percent) > SIGNIFICANT_VARIANCE_PERCENT
    return BudgetVarianceLine(
        account_number=line.account_number,
        account_name=line.account_name,
        budget_amount=line.budget_amount,
        actual_amount=line.actual_amount,
        variance=change.variance,
        variance_percent=change.variance_percent,
        category=category,
        is_favorable=favorable,
        is_significant=significant,
        recommendation=recommend(category, favorable, significant),
    )


def _largest(lines: list[BudgetVarianceLine]) -> LargestVariance:
    if not lines:
        return LargestVariance(account_name="None", amount=ZERO)
    top = max(lines, key=lambda line: abs(line.variance))
    return LargestVariance(account_name=top.account_name, amount=top.variance)


def build_budget_variance_report(
    budget_lines: Iterable[GoBudgetLine],
    period_end: date,
    calculator: VarianceCalculator | None = None,
) -> BudgetVarianceReport:
    calculator = calculator or VarianceCalculator()
    accounts = tuple(analyze_budget_line(line, calculator) for line in budget_lines)
    total_budget = sum((a.budget_amount for a in accounts), ZERO)
    total_actual = sum((a.actual_amount for a in accounts), ZERO)
    total = calculator.value_change(total_budget, total_actual)
    significant = [a for a in accounts if a.is_significant]
    return BudgetVarianceReport(
        period_end=period_end,
        total_budget=round_money(total_budget),
        total_actual=round_money(total_actual),
        total_variance=round_money(total.variance),
        total_variance_percent=total.variance_percent,
        accounts=accounts,
        significant_count=len(significant),
        favorable_count=sum(1 for a in significant if a.is_favorable),
        unfavorable_count=sum(1 for a in significant if not a.is_favorable),
        largest_favorable=_largest([a for a in accounts if a.is_favorable]),
        largest_unfavorable=_largest([a for a in accounts if not a.is_favorable]),
    )
