"""
FILE: src/core/barter/hybrid.py
Hybrid payments: a cash component paid alongside service items.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

from src.core.barter.errors import structural_error
from src.core.barter.models import (
    CashComponent,
    EngineError,
    HybridComposition,
    HybridContractTerms,
    HybridProposal,
    HybridValidationResult,
)
from src.core.barter.service_items import (
    ServiceItemNormalizer,
    StandardServiceItemNormalizer,
    validate_service_items,
)

DEFAULT_PAYMENT_TERMS = "milestone_based"


def _share(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * 100 if whole > 0 else Decimal("0")


def compose_hybrid_payment(
    cash: Optional[CashComponent],
    services: Sequence[Any],
    *,
    normalizer: Optional[ServiceItemNormalizer] = None,
) -> HybridComposition:
    resolved = normalizer or StandardServiceItemNormalizer()
    cash_component = cash or CashComponent(amount=Decimal("0"))
    items = [resolved.normalize(raw) for raw in services or []]

    service_total = resolved.total(items)
    service_by_currency = resolved.total_by_currency(items)
    total_value = cash_component.amount + service_total

    return HybridComposition(
        cash_component=cash_component,
        service_components=items,
        service_total=service_total,
        service_by_currency=service_by_currency,
        total_value=total_value,
        currency=cash_component.currency,
        currency_mismatch=any(
            currency != cash_component.currency for currency in service_by_currency
        ),
        cash_percentage=_share(cash_component.amount, total_value),
        service_percentage=_share(service_total, total_value),
    )


def validate_hybrid_proposal(
    proposal: HybridProposal, *, normalizer: Optional[ServiceItemNormalizer] = None
) -> HybridValidationResult:
    errors: list[EngineError] = []

    if proposal.cash_component is None:
        errors.append(
            structural_error(
                "CASH_COMPONENT_REQUIRED", "Cash component is required for hybrid payment"
            )
        )
    else:
        if proposal.cash_component.amount < 0:
            errors.append(
                structural_error(
                    "CASH_AMOUNT_NEGATIVE",
                    "Cash component amount must be a non-negative number",
                    amount=proposal.cash_component.amount,
                )
            )
        if not proposal.cash_component.currency:
            errors.append(
                structural_error("CASH_CURRENCY_REQUIRED", "Cash component currency is required")
            )
    if not proposal.service_components:
        errors.append(
            structural_error(
                "SERVICE_COMPONENTS_REQUIRED", "Service components are required for hybrid payment"
            )
        )

    if errors:
        return HybridValidationResult(valid=False, errors=errors)

    composition = compose_hybrid_payment(
        proposal.cash_component, proposal.service_components, normalizer=normalizer
    )
    if composition.currency_mismatch:
        errors.append(
            structural_error(
                "CURRENCY_MISMATCH",
                "Service components currency does not match cash component currency",
                cash_currency=composition.currency,
                service_currencies=",".join(sorted(composition.service_by_currency)),
            )
        )
    errors.extend(
        validate_service_items(composition.service_components, side="service_components")
    )
    if composition.cash_component.amount == 0 and composition.service_total == 0:
        errors.append(
            structural_error(
                "EMPTY_HYBRID_VALUE", "Hybrid payment must have at least one component with value"
            )
        )

    return HybridValidationResult(valid=not errors, errors=errors, composition=composition)


def generate_hybrid_contract_terms(
    proposal: HybridProposal, composition: HybridComposition
) -> HybridContractTerms:
    return HybridContractTerms(
        cash_amount=composition.cash_component.amount,
        cash_currency=composition.cash_component.currency,
        payment_terms=proposal.payment_terms or DEFAULT_PAYMENT_TERMS,
        payment_schedule=list(proposal.payment_schedule),
        service_components=list(composition.service_components),
        service_total=composition.service_total,
        total_value=composition.total_value,
        currency=composition.currency,
        cash_percentage=composition.cash_percentage,
        service_percentage=composition.service_percentage,
        terms=dict(proposal.terms),
        timeline=dict(proposal.timeline),
        deliverables=list(proposal.deliverables),
    )
