"""
Financial Module (``funeral_modules.financial``).

Revenue recognition, receivables, payables and reporting orchestrated
against the Go backend ledger.  No local tables; the case version written
at finalization is owned by ``funeral_modules.case``.
"""

from funeral_modules.financial.gl_accounts import GLAccountMap
from funeral_modules.financial.models import (
    MICHIGAN_SALES_TAX,
    BillLine,
    BudgetCategory,
    BudgetVarianceLine,
    BudgetVarianceReport,
    CaseBalance,
    CasePaymentResult,
    FinalizeCaseResult,
    InvoiceResult,
    JurisdictionTaxSummary,
    LargestVariance,
    MatchStatus,
    PaymentRunPreview,
    PaymentRunResult,
    PaymentRunStatus,
    SalesTaxReport,
    TaxJurisdiction,
    TaxJurisdictionType,
    VendorBillResult,
    VendorPaymentTotal,
)
from funeral_modules.financial.service import FinancialService

__all__ = [
    "MICHIGAN_SALES_TAX",
    "BillLine",
    "BudgetCategory",
    "BudgetVarianceLine",
    "BudgetVarianceReport",
    "CaseBalance",
    "CasePaymentResult",
    "FinalizeCaseResult",
    "FinancialService",
    "GLAccountMap",
    "InvoiceResult",
    "JurisdictionTaxSummary",
    "LargestVariance",
    "MatchStatus",
    "PaymentRunPreview",
    "PaymentRunResult",
    "PaymentRunStatus",
    "SalesTaxReport",
    "TaxJurisdiction",
    "TaxJurisdictionType",
    "VendorBillResult",
    "VendorPaymentTotal",
]
