"""
Funeral Home Modules.

Use-case services over the funeral kernel, engines and Go backend ports.
Modules with local state keep SCD2-versioned entities (models, orm,
repository, workflows); the rest orchestrate the Go backend only.

Modules:
- case: Case lifecycle and finalization
- payments: Payments, refunds and approvals
- contracts: Contract versions with approval and signing
- contacts: Contact deduplication and merge
- memorial: Memorial document templates and rendering
- preplanning: Pre-need appointments and director availability
- financial: Revenue posting, invoices, vendor bills, AP payment runs
- inventory: Case reservations, COGS, cycle counts, transfers, valuation
- hr: Employee onboarding and offboarding
"""

__all__ = [
    "case",
    "contacts",
    "contracts",
    "financial",
    "hr",
    "inventory",
    "memorial",
    "payments",
    "preplanning",
]
