from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.core.barter.agreement import (
    DEFAULT_DISPUTE_RESOLUTION,
    DEFAULT_EXCHANGE_SCHEDULE,
    DEFAULT_QUALITY_STANDARDS,
    generate_barter_agreement,
)
from src.core.barter.validation import validate_barter_proposal
from tests.factories import barter_proposal, service_item


def _agreement_for(proposal):
    validation = validate_barter_proposal(proposal)
    assert validation.valid is True
    return generate_barter_agreement(
        proposal=proposal,
        equivalence=validation.equivalence,
        settlement=validation.settlement,
    )


def test_agreement_generation_is_idempotent():
    proposal = barter_proposal(
        offered=[service_item("design", "120000")],
        requested=[service_item("install", "100000")],
        settlement_rule="ALLOW_DIFFERENCE_WITH_CASH",
        cash_component="20000",
    )

    first = _agreement_for(proposal)
    second = _agreement_for(proposal)

    assert first == second
    assert first.agreement_id == second.agreement_id
    assert first.terms_hash.startswith("sha256:")
    assert first.agreement_id.startswith("ba_")


def test_cash_balanced_agreement_is_hybrid_with_cash_detail():
    proposal = barter_proposal(
        offered=[service_item("design", "120000")],
        requested=[service_item("install", "100000")],
        settlement_rule="ALLOW_DIFFERENCE_WITH_CASH",
        cash_component="20000",
    )

    agreement = _agreement_for(proposal)

    assert agreement.agreement_type == "HYBRID"
    assert agreement.settlement.outcome == "CASH_BALANCED"
    assert agreement.settlement.cash_component == Decimal("20000")
    assert agreement.settlement.cash_direction == "REQUESTER_PAYS"
    assert agreement.balance == Decimal("20000")


def test_equal_agreement_uses_defaults_for_missing_terms():
    proposal = barter_proposal(
        offered=[service_item("design", "100000")],
        requested=[service_item("install", "100000")],
    )

    agreement = _agreement_for(proposal)

    assert agreement.agreement_type == "BARTER"
    assert agreement.settlement.outcome == "EQUAL"
    assert agreement.exchange_schedule == DEFAULT_EXCHANGE_SCHEDULE
    assert agreement.quality_standards == DEFAULT_QUALITY_STANDARDS
    assert agreement.dispute_resolution == DEFAULT_DISPUTE_RESOLUTION


def test_waived_agreement_carries_waived_amount_and_custom_terms():
    proposal = barter_proposal(
        offered=[service_item("design", "120000")],
        requested=[service_item("install", "100000")],
        settlement_rule="ACCEPT_AS_IS",
        explicit_waiver=True,
        exchange_schedule="Phased",
        terms={"warranty_months": 12},
    )

    agreement = _agreement_for(proposal)

    assert agreement.agreement_type == "BARTER"
    assert agreement.settlement.outcome == "WAIVED"
    assert agreement.settlement.waived_amount == Decimal("20000")
    assert agreement.exchange_schedule == "Phased"
    assert agreement.terms == {"warranty_months": 12}


def test_agreement_terms_are_immutable():
    proposal = barter_proposal(
        offered=[service_item("design", "100000")],
        requested=[service_item("install", "100000")],
    )
    agreement = _agreement_for(proposal)

    with pytest.raises(ValidationError):
        agreement.currency = "USD"
    assert isinstance(agreement.services_offered, tuple)
    assert isinstance(agreement.services_requested, tuple)
    with pytest.raises(AttributeError):
        agreement.services_offered.append(service_item("extra", "1"))


def test_agreement_changes_when_the_version_changes():
    offered = [service_item("design", "100000")]
    requested = [service_item("install", "100000")]

    first = _agreement_for(barter_proposal(offered=offered, requested=requested, version=2))
    second = _agreement_for(barter_proposal(offered=offered, requested=requested, version=3))

    assert first.terms_hash != second.terms_hash
