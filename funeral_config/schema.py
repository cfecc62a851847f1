"""
Application settings schema (``funeral_config.schema``).

Frozen dataclasses describing deployment settings.  Each validates itself
in ``__post_init__`` and raises ``ValueError`` on bad values.  Domain
policies (refund windows, merge precedence) are not settings; they are
versioned per funeral home in the database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

_VALID_ENVIRONMENTS = frozenset({"development", "test", "staging", "production"})

DEFAULT_GL_ACCOUNTS: dict[str, str] = {
    "accounts_receivable": "1200",
    "inventory_asset": "1300",
    "service_revenue": "4100",
    "merchandise_revenue": "4200",
    "cogs_merchandise": "5100",
    "cogs_professional_services": "5200",
    "cogs_facilities": "5300",
    "cogs_transportation": "5400",
}


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 10

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")


@dataclass(frozen=True)
class GoBackendSettings:
    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 10.0
    api_token: str | None = None

    def __post_init__(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"go_backend.base_url must be an http(s) URL, got {self.base_url!r}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError("go_backend.timeout_seconds must be positive")


@dataclass(frozen=True)
class EmailSettings:
    smtp_host: str = "localhost"
    smtp_port: int = 587
    sender: str = "no-reply@localhost"
    username: str | None = None
    password: str | None = None
    use_tls: bool = True

    def __post_init__(self) -> None:
        if not 0 < self.smtp_port < 65536:
            raise ValueError(f"email.smtp_port out of range: {self.smtp_port}")
        if "@" not in self.sender:
            raise ValueError(f"email.sender must be an address, got {self.sender!r}")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if not isinstance(logging.getLevelName(self.level.upper()), int):
            raise ValueError(f"logging.level is not a logging level: {self.level!r}")


@dataclass(frozen=True)
class BusinessSettings:
    """Funeral home wide defaults."""

    timezone: str = "UTC"
    funeral_home_name: str = ""
    invoice_payment_terms_days: int = 30

    def __post_init__(self) -> None:
        if self.invoice_payment_terms_days < 0:
            raise ValueError("business.invoice_payment_terms_days cannot be negative")


@dataclass(frozen=True)
class AppConfig:
    environment: str = "development"
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    go_backend: GoBackendSettings = field(default_factory=GoBackendSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    business: BusinessSettings = field(default_factory=BusinessSettings)
    gl_accounts: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_GL_ACCOUNTS))

    def __post_init__(self) -> None:
        if self.environment not in _VALID_ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {sorted(_VALID_ENVIRONMENTS)}, "
                f"got {self.environment!r}"
            )
        unknown = set(self.gl_accounts) - set(DEFAULT_GL_ACCOUNTS)
        if unknown:
            raise ValueError(f"Unknown gl_accounts keys: {sorted(unknown)}")
