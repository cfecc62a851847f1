"""
GL Account Map (``funeral_modules.financial.gl_accounts``).

Chart-of-accounts numbers the financial and inventory use cases post to.
Built from the ``gl_accounts`` section of the application config; the
defaults match the standard funeral home chart.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields

from funeral_config.schema import DEFAULT_GL_ACCOUNTS
from funeral_kernel.exceptions import ValidationError


@dataclass(frozen=True)
class GLAccountMap:
    accounts_receivable: str = DEFAULT_GL_ACCOUNTS["accounts_receivable"]
    inventory_asset: str = DEFAULT_GL_ACCOUNTS["inventory_asset"]
    service_revenue: str = DEFAULT_GL_ACCOUNTS["service_revenue"]
    merchandise_revenue: str = DEFAULT_GL_ACCOUNTS["merchandise_revenue"]
    cogs_merchandise: str = DEFAULT_GL_ACCOUNTS["cogs_merchandise"]
    cogs_professional_services: str = DEFAULT_GL_ACCOUNTS["cogs_professional_services"]
    cogs_facilities: str = DEFAULT_GL_ACCOUNTS["cogs_facilities"]
    cogs_transportation: str = DEFAULT_GL_ACCOUNTS["cogs_transportation"]

    def __post_init__(self) -> None:
        for f in fields(self):
            if not getattr(self, f.name):
                raise ValidationError(f"GL account number for {f.name} is required", field=f.name)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> GLAccountMap:
        """Overlay ``mapping`` (e.g. ``AppConfig.gl_accounts``) on the defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ValidationError(f"Unknown GL account keys: {', '.join(unknown)}", field=unknown[0])
        return cls(**{k: str(v) for k, v in mapping.items()})

    def cogs_account_for_category(self, category: str) -> str:
        """COGS account for an inventory item category; merchandise when unrecognised."""
        normalized = (category or "").lower()
        if normalized in ("casket", "urn", "vault"):
            return self.cogs_merchandise
        if normalized in ("service", "professional_services"):
            return self.cogs_professional_services
        if normalized in ("facility", "facility_use"):
            return self.cogs_facilities
        if normalized == "transportation":
            return self.cogs_transportation
        return self.cogs_merchandise
