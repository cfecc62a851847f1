"""
funeral_services -- Ports and adapters for external collaborators.

Responsibility:
    Port ABCs for the Go ERP backend and the email gateway, the DTOs they
    carry, and the concrete adapters (``requests`` for the Go REST API,
    ``smtplib`` for email).

Architecture position:
    Services -- outbound integration.
        funeral_modules/  -> funeral_services.ports  (allowed)
        funeral_services/ -> funeral_kernel/          (allowed)
        funeral_services/ -> funeral_modules/         (FORBIDDEN)
"""

from funeral_services.mailer import SmtpEmailAdapter
from funeral_services.go_backend import (
    GoBackendClient,
    HttpGoContractAdapter,
    HttpGoFinancialAdapter,
    HttpGoHRAdapter,
    HttpGoInventoryAdapter,
    HttpGoProcurementAdapter,
)
from funeral_services.ports import (
    EmailPort,
    GoContractPort,
    GoFinancialPort,
    GoHRPort,
    GoInventoryPort,
    GoProcurementPort,
)

__all__ = [
    "EmailPort",
    "GoBackendClient",
    "GoContractPort",
    "GoFinancialPort",
    "GoHRPort",
    "GoInventoryPort",
    "GoProcurementPort",
    "HttpGoContractAdapter",
    "HttpGoFinancialAdapter",
    "HttpGoHRAdapter",
    "HttpGoInventoryAdapter",
    "HttpGoProcurementAdapter",
    "SmtpEmailAdapter",
]
