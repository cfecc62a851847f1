"""
Contract Service (``funeral_modules.contracts.service``).

Responsibility
--------------
Lifecycle of the locally versioned contract document (review, signature,
cancellation) and renewal of executed contracts held in the Go backend.

Transaction boundary
--------------------
Local writes commit per call.  ``renew_contract`` writes only to the Go
backend and opens no local transaction.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal

from sqlalchemy.orm import Session

from funeral_kernel.db.types import ZERO, parse_decimal, round_money
from funeral_kernel.domain.clock import Clock, SystemClock
from funeral_kernel.exceptions import ValidationError
from funeral_kernel.logging_config import get_logger
from funeral_modules._unit_of_work import unit_of_work
from funeral_modules.case.repository import CaseRepository
from funeral_modules.contracts.models import (
    Contract,
    ContractItem,
    PriceComparison,
    RenewalMetadata,
    RenewContractResult,
)
from funeral_modules.contracts.repository import ContractRepository
from funeral_services.ports import (
    CreateGoContractCommand,
    GoContract,
    GoContractItem,
    GoContractPort,
)

logger = get_logger("modules.contracts.service")

RENEWABLE_STATUSES = ("active", "completed")
MIN_ADJUSTMENT_FACTOR = Decimal("0.5")
MAX_ADJUSTMENT_FACTOR = Decimal("1.5")


class ContractService:
    """Contract drafting, signature and renewal."""

    def __init__(
        self,
        session: Session,
        contract_port: GoContractPort | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._contracts = ContractRepository(session, self._clock)
        self._cases = CaseRepository(session, self._clock)
        self._contract_port = contract_port

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_contract(self, business_key: str) -> Contract:
        return self._contracts.get_current(business_key)

    def get_contract_history(self, business_key: str) -> list[Contract]:
        return self._contracts.find_history(business_key)

    def list_contracts_for_case(self, case_id: str) -> list[Contract]:
        return self._contracts.find_by_case(case_id)

    # ------------------------------------------------------------------
    # Local lifecycle
    # ------------------------------------------------------------------

    def create_contract(
        self,
        case_id: str,
        terms_and_conditions: str,
        actor_id: str,
        services: Sequence[ContractItem] = (),
        products: Sequence[ContractItem] = (),
    ) -> Contract:
        self._cases.get_current(case_id)
        contract = Contract.create(
            case_id=case_id,
            terms_and_conditions=terms_and_conditions,
            created_by=actor_id,
            services=tuple(services),
            products=tuple(products),
        )
        with unit_of_work(self._session, "create_contract"):
            saved = self._contracts.save(contract, actor_id)
        logger.info("contract_created", extra={
            "contract_id": saved.business_key,
            "case_id": case_id,
            "total_amount": str(saved.total_amount),
        })
        return saved

    def submit_for_review(self, business_key: str, actor_id: str) -> Contract:
        return self._apply(business_key, actor_id, "contract_submitted", Contract.submit_for_review)

    def approve_for_signature(self, business_key: str, actor_id: str) -> Contract:
        return self._apply(
            business_key, actor_id, "contract_approved_for_signature",
            Contract.approve_for_signature,
        )

    def return_to_draft(self, business_key: str, actor_id: str) -> Contract:
        return self._apply(
            business_key, actor_id, "contract_returned_to_draft", Contract.return_to_draft,
        )

    def sign_contract(
        self,
        business_key: str,
        signer_id: str,
        actor_id: str,
        final_signature: bool = False,
    ) -> Contract:
        """Record a signature; ``final_signature`` also marks the contract fully signed."""
        def sign(contract: Contract) -> Contract:
            signed = contract.add_signature(signer_id)
            return signed.mark_fully_signed() if final_signature else signed

        return self._apply(business_key, actor_id, "contract_signed", sign)

    def cancel_contract(self, business_key: str, actor_id: str) -> Contract:
        return self._apply(business_key, actor_id, "contract_cancelled", Contract.cancel)

    # ------------------------------------------------------------------
    # Renewal (Go backend)
    # ------------------------------------------------------------------

    def renew_contract(
        self,
        original_contract_id: str,
        renewal_reason: str,
        renewed_by: str,
        price_adjustment_factor: Decimal | str | None = None,
        updated_services: Sequence[GoContractItem] | None = None,
        updated_products: Sequence[GoContractItem] | None = None,
        notes: str | None = None,
    ) -> RenewContractResult:
        """
        Re-issue an active or completed Go contract on the same case.

        Items are repriced by ``price_adjustment_factor`` (unit prices
        rounded to cents) unless replacement service or product lists are
        given.
        """
        port = self._require_port()
        factor = _validate_renewal(
            original_contract_id, renewal_reason, renewed_by,
            price_adjustment_factor, updated_services, updated_products,
        )

        original = port.get_contract(original_contract_id)
        if original.status not in RENEWABLE_STATUSES:
            raise ValidationError(
                f"Contract cannot be renewed in {original.status} status. "
                "Only active or completed contracts can be renewed.",
                field="status",
            )
        if not original.services and not original.products:
            raise ValidationError(
                "Contract has no services or products. Cannot renew empty contract.",
                field="items",
            )

        case = self._cases.get_current(original.case_id)

        services = (
            tuple(updated_services) if updated_services is not None
            else _reprice(original.services, factor)
        )
        products = (
            tuple(updated_products) if updated_products is not None
            else _reprice(original.products, factor)
        )
        new_contract = port.create_contract(CreateGoContractCommand(
            case_id=case.business_key, services=services, products=products,
        ))

        comparison = _compare_prices(original, new_contract)
        logger.info("contract_renewed", extra={
            "original_contract_id": original_contract_id,
            "new_contract_id": new_contract.id,
            "case_id": case.business_key,
            "difference": str(comparison.difference),
        })
        return RenewContractResult(
            new_contract=new_contract,
            original_contract=original,
            case_id=case.business_key,
            price_comparison=comparison,
            renewal_metadata=RenewalMetadata(
                renewal_reason=renewal_reason,
                renewed_by=renewed_by,
                renewed_at=self._clock.now(),
                original_contract_id=original_contract_id,
                price_adjustment_factor=factor,
                notes=notes,
            ),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_port(self) -> GoContractPort:
        if self._contract_port is None:
            raise ValidationError("No Go contract port configured", field="contract_port")
        return self._contract_port

    def _apply(
        self,
        business_key: str,
        actor_id: str,
        event: str,
        change: Callable[[Contract], Contract],
    ) -> Contract:
        with unit_of_work(self._session, event):
            saved = self._contracts.save(change(self._contracts.get_current(business_key)), actor_id)
        logger.info(event, extra={
            "contract_id": business_key,
            "version": saved.version,
            "status": saved.status.value,
        })
        return saved


def _validate_renewal(
    original_contract_id: str,
    renewal_reason: str,
    renewed_by: str,
    price_adjustment_factor: Decimal | str | None,
    updated_services: Sequence[GoContractItem] | None,
    updated_products: Sequence[GoContractItem] | None,
) -> Decimal:
    if not original_contract_id or not original_contract_id.strip():
        raise ValidationError("Original contract ID is required", field="original_contract_id")
    if not renewal_reason or not renewal_reason.strip():
        raise ValidationError("Renewal reason is required", field="renewal_reason")
    if not renewed_by or not renewed_by.strip():
        raise ValidationError("Renewed by (user ID) is required", field="renewed_by")

    factor = Decimal("1")
    if price_adjustment_factor is not None:
        factor = parse_decimal(price_adjustment_factor, "price_adjustment_factor")
        if factor <= 0:
            raise ValidationError(
                f"Price adjustment factor must be positive, got: {factor}",
                field="price_adjustment_factor",
            )
        if not MIN_ADJUSTMENT_FACTOR <= factor <= MAX_ADJUSTMENT_FACTOR:
            raise ValidationError(
                f"Price adjustment factor {factor} is outside reasonable range (0.5-1.5)",
                field="price_adjustment_factor",
            )

    for label, items in (("services", updated_services), ("products", updated_products)):
        if items is None:
            continue
        if not items:
            raise ValidationError(
                f"Updated {label} cannot be empty. Omit the field to keep original {label}.",
                field=f"updated_{label}",
            )
        for item in items:
            if not item.description or not item.description.strip():
                raise ValidationError("Item description is required", field=f"updated_{label}")
            if item.quantity <= 0:
                raise ValidationError(
                    f"Quantity must be positive: {item.description}", field=f"updated_{label}",
                )
            if item.unit_price < 0:
                raise ValidationError(
                    f"Unit price cannot be negative: {item.description}",
                    field=f"updated_{label}",
                )
    return factor


def _reprice(items: Sequence[GoContractItem], factor: Decimal) -> tuple[GoContractItem, ...]:
    repriced = []
    for item in items:
        unit_price = round_money(item.unit_price * factor)
        repriced.append(GoContractItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=round_money(unit_price * item.quantity),
            gl_account_id=item.gl_account_id,
        ))
    return tuple(repriced)


def _compare_prices(original: GoContract, renewed: GoContract) -> PriceComparison:
    difference = renewed.total_amount - original.total_amount
    if original.total_amount > 0:
        percent = round_money(difference / original.total_amount * 100)
    else:
        percent = ZERO
    return PriceComparison(
        original_total=original.total_amount,
        new_total=renewed.total_amount,
        difference=difference,
        percent_change=percent,
    )
