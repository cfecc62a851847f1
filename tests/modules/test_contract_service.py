"""
Tests for contracts (``funeral_modules.contracts``).

Local contract lifecycle draft -> review -> signatures -> fully signed,
6% tax arithmetic, and renewal of Go backend contracts.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from funeral_kernel.exceptions import (
    BusinessRuleViolationError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from funeral_modules.contracts.models import Contract, ContractItem, ContractStatus
from funeral_modules.contracts.service import ContractService
from funeral_services.ports import GoContract, GoContractItem

TERMS = "Payment due within 30 days of service."


def _go_item(description, quantity, unit_price):
    quantity, unit_price = Decimal(quantity), Decimal(unit_price)
    return GoContractItem(description, quantity, unit_price, quantity * unit_price)


@pytest.fixture
def contract_service(session, contract_port, deterministic_clock):
    return ContractService(session, contract_port=contract_port, clock=deterministic_clock)


@pytest.fixture
def items():
    services = (ContractItem("Professional services", 1, "2995.00"),)
    products = (
        ContractItem("Oak casket", 1, "3450.00"),
        ContractItem("Memorial folders", 100, "1.25"),
    )
    return services, products


@pytest.fixture
def draft(contract_service, active_case, test_actor_id, items):
    services, products = items
    return contract_service.create_contract(
        active_case.business_key, TERMS, test_actor_id, services, products,
    )


@pytest.fixture
def go_contract(contract_port, active_case):
    return contract_port.add_contract(GoContract(
        id="go-contract-1",
        case_id=active_case.business_key,
        version=1,
        status="active",
        services=(_go_item("Professional services", "1", "4000.00"),),
        products=(_go_item("Oak casket", "1", "3500.00"),),
        total_amount=Decimal("7500.00"),
    ))


class TestContractEntity:

    def test_totals_include_six_percent_tax(self, items):
        services, products = items
        contract = Contract.create("case-1", TERMS, "staff-001", services, products)

        assert contract.subtotal == Decimal("6570.00")
        assert contract.tax == Decimal("394.20")
        assert contract.total_amount == Decimal("6964.20")

    def test_terms_required(self):
        with pytest.raises(ValidationError) as exc_info:
            Contract.create("case-1", "  ", "staff-001")
        assert exc_info.value.field == "terms_and_conditions"

    def test_item_validation(self):
        with pytest.raises(ValidationError):
            ContractItem("Casket", 0, "100")
        with pytest.raises(ValidationError):
            ContractItem("Casket", 1, "-1")
        with pytest.raises(ValidationError):
            ContractItem(" ", 1, "1")
        with pytest.raises(ValidationError) as exc_info:
            ContractItem("Casket", 1, "NaN")
        assert exc_info.value.field == "unit_price"

    def test_empty_contract_cannot_be_submitted(self):
        contract = Contract.create("case-1", TERMS, "staff-001")
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            contract.submit_for_review()
        assert exc_info.value.rule == "contract_not_empty"

    def test_signatures_only_while_pending(self, items):
        contract = Contract.create("case-1", TERMS, "staff-001", *items)
        with pytest.raises(BusinessRuleViolationError):
            contract.add_signature("family-1")

    def test_signer_signs_once(self, items):
        contract = Contract.create("case-1", TERMS, "s", *items).submit_for_review()
        contract = contract.approve_for_signature().add_signature("family-1")
        with pytest.raises(BusinessRuleViolationError):
            contract.add_signature("family-1")

    def test_signed_contract_is_immutable(self, items):
        contract = (
            Contract.create("case-1", TERMS, "s", *items)
            .submit_for_review()
            .approve_for_signature()
            .add_signature("family-1")
            .mark_fully_signed()
        )
        with pytest.raises(BusinessRuleViolationError) as exc_info:
            contract.cancel()
        assert exc_info.value.rule == "signed_contract_immutable"

    def test_item_dict_round_trip_keeps_decimals(self):
        item = ContractItem("Folders", 100, "1.25", gl_account_id="acct-4200")
        assert ContractItem.from_dict(item.to_dict()) == item


class TestContractService:

    def test_create_requires_existing_case(self, contract_service, test_actor_id, items):
        with pytest.raises(NotFoundError):
            contract_service.create_contract("missing-case", TERMS, test_actor_id, *items)

    def test_create_persists_items(self, contract_service, draft):
        stored = contract_service.get_contract(draft.business_key)

        assert stored.status is ContractStatus.DRAFT
        assert stored.products[1].quantity == Decimal("100")
        assert stored.total_amount == Decimal("6964.20")

    def test_signature_flow(self, contract_service, draft, test_actor_id):
        key = draft.business_key
        contract_service.submit_for_review(key, test_actor_id)
        contract_service.approve_for_signature(key, test_actor_id)
        contract_service.sign_contract(key, "spouse-1", test_actor_id)
        signed = contract_service.sign_contract(key, "child-1", test_actor_id, final_signature=True)

        assert signed.status is ContractStatus.FULLY_SIGNED
        assert signed.signed_by == ("spouse-1", "child-1")
        assert [c.version for c in contract_service.get_contract_history(key)] == [1, 2, 3, 4, 5]

    def test_return_to_draft(self, contract_service, draft, test_actor_id):
        contract_service.submit_for_review(draft.business_key, test_actor_id)
        returned = contract_service.return_to_draft(draft.business_key, test_actor_id)
        assert returned.status is ContractStatus.DRAFT

    def test_cannot_skip_review(self, contract_service, draft, test_actor_id):
        with pytest.raises(InvalidStateTransitionError):
            contract_service.approve_for_signature(draft.business_key, test_actor_id)

    def test_list_for_case(self, contract_service, draft, active_case):
        contracts = contract_service.list_contracts_for_case(active_case.business_key)
        assert [c.business_key for c in contracts] == [draft.business_key]


class TestRenewContract:

    def test_renew_with_price_adjustment(self, contract_service, go_contract, contract_port):
        result = contract_service.renew_contract(
            go_contract.id, "Annual price update", "staff-001", price_adjustment_factor="1.10",
        )

        assert result.price_comparison.original_total == Decimal("7500.00")
        assert result.price_comparison.new_total == Decimal("8250.00")
        assert result.price_comparison.difference == Decimal("750.00")
        assert result.price_comparison.percent_change == Decimal("10.00")
        assert result.case_id == go_contract.case_id
        assert result.renewal_metadata.price_adjustment_factor == Decimal("1.10")
        command = contract_port.created[0]
        assert command.products[0].unit_price == Decimal("3850.00")

    def test_renew_keeps_prices_without_factor(self, contract_service, go_contract):
        result = contract_service.renew_contract(go_contract.id, "Re-issue", "staff-001")
        assert result.price_comparison.difference == Decimal("0.00")

    def test_replacement_products(self, contract_service, go_contract):
        result = contract_service.renew_contract(
            go_contract.id, "Upgrade", "staff-001",
            updated_products=[_go_item("Bronze casket", "1", "6000.00")],
        )
        assert result.new_contract.total_amount == Decimal("10000.00")

    @pytest.mark.parametrize("factor", ["0.4", "1.6", "0", "abc", "NaN", "Infinity"])
    def test_factor_out_of_range(self, contract_service, go_contract, factor):
        with pytest.raises(ValidationError) as exc_info:
            contract_service.renew_contract(
                go_contract.id, "x", "staff-001", price_adjustment_factor=factor,
            )
        assert exc_info.value.field == "price_adjustment_factor"

    def test_empty_replacement_list_rejected(self, contract_service, go_contract):
        with pytest.raises(ValidationError) as exc_info:
            contract_service.renew_contract(go_contract.id, "x", "s", updated_services=[])
        assert exc_info.value.field == "updated_services"

    def test_draft_go_contract_not_renewable(self, contract_service, go_contract, contract_port):
        contract_port.add_contract(replace(go_contract, status="draft"))

        with pytest.raises(ValidationError, match="cannot be renewed"):
            contract_service.renew_contract(go_contract.id, "x", "staff-001")

    def test_reason_required(self, contract_service, go_contract):
        with pytest.raises(ValidationError) as exc_info:
            contract_service.renew_contract(go_contract.id, " ", "staff-001")
        assert exc_info.value.field == "renewal_reason"

    def test_unknown_go_contract(self, contract_service):
        with pytest.raises(NotFoundError):
            contract_service.renew_contract("missing", "x", "staff-001")

    def test_requires_port(self, session, deterministic_clock, go_contract):
        service = ContractService(session, clock=deterministic_clock)
        with pytest.raises(ValidationError):
            service.renew_contract(go_contract.id, "x", "staff-001")
