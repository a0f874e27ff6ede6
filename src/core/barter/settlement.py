"""
FILE: src/core/barter/settlement.py
Settlement policy enforcement on top of an equivalence result.
"""

from decimal import Decimal
from typing import Optional

from src.core.barter.equivalence import calculate_equivalence
from src.core.barter.errors import format_amount, settlement_violation
from src.core.barter.models import (
    BarterProposal,
    CashBalancedSettlement,
    CashDirection,
    EqualSettlement,
    EquivalenceResult,
    SettlementDecision,
    WaivedSettlement,
)
from src.core.barter.service_items import ServiceItemNormalizer

CASH_MATCH_TOLERANCE = Decimal("0.01")

CONSENT_RULES = {"ALLOW_DIFFERENCE_WITH_CASH", "ACCEPT_AS_IS"}


def cash_direction_for(equivalence: EquivalenceResult) -> CashDirection:
    # The side holding the smaller basket tops up with cash.
    return "REQUESTER_PAYS" if equivalence.balance > 0 else "OFFERER_PAYS"


def apply_settlement_rule(
    equivalence: EquivalenceResult,
    rule: Optional[str],
    *,
    cash_component: Optional[Decimal] = None,
    explicit_waiver: bool = False,
) -> SettlementDecision:
    """
    Resolves a settlement outcome for the given rule.

    Balanced baskets settle as EQUAL under any rule, including an unknown one.
    """
    if equivalence.is_equal:
        return SettlementDecision(valid=True, settlement=EqualSettlement(rule=rule))

    absolute_balance = equivalence.absolute_balance

    if rule == "EQUAL_VALUE_ONLY":
        return SettlementDecision(
            valid=False,
            errors=[
                settlement_violation(
                    "VALUE_MISMATCH",
                    (
                        "Values must match exactly. Difference: "
                        f"{format_amount(absolute_balance)} {equivalence.currency}"
                    ),
                    rule=rule,
                    difference=format_amount(absolute_balance),
                    currency=equivalence.currency,
                    percentage_difference=format_amount(equivalence.percentage_difference),
                )
            ],
        )

    if rule == "ALLOW_DIFFERENCE_WITH_CASH":
        direction = cash_direction_for(equivalence)
        if cash_component is None:
            return SettlementDecision(
                valid=True,
                settlement=CashBalancedSettlement(
                    cash_component=absolute_balance,
                    cash_direction=direction,
                    cash_pending=True,
                ),
            )
        provided = Decimal(cash_component)
        if abs(absolute_balance - provided) > CASH_MATCH_TOLERANCE:
            return SettlementDecision(
                valid=False,
                errors=[
                    settlement_violation(
                        "CASH_COMPONENT_MISMATCH",
                        (
                            f"Cash component ({format_amount(provided)}) does not match "
                            f"value difference ({format_amount(absolute_balance)})"
                        ),
                        rule=rule,
                        expected=format_amount(absolute_balance),
                        provided=format_amount(provided),
                        currency=equivalence.currency,
                    )
                ],
            )
        return SettlementDecision(
            valid=True,
            settlement=CashBalancedSettlement(cash_component=provided, cash_direction=direction),
        )

    if rule == "ACCEPT_AS_IS":
        if explicit_waiver is not True:
            return SettlementDecision(
                valid=False,
                errors=[
                    settlement_violation(
                        "EXPLICIT_WAIVER_REQUIRED",
                        "Explicit waiver consent is required for ACCEPT_AS_IS settlement rule",
                        rule=rule,
                        difference=format_amount(absolute_balance),
                    )
                ],
            )
        return SettlementDecision(
            valid=True,
            settlement=WaivedSettlement(waived_amount=absolute_balance),
        )

    return SettlementDecision(
        valid=False,
        errors=[
            settlement_violation(
                "UNKNOWN_SETTLEMENT_RULE",
                f"Unknown settlement rule: {rule}",
                rule=rule,
            )
        ],
    )


def requires_consent(
    proposal: BarterProposal, *, normalizer: Optional[ServiceItemNormalizer] = None
) -> bool:
    if not proposal.settlement_rule:
        return False
    equivalence = calculate_equivalence(
        proposal.services_offered, proposal.services_requested, normalizer=normalizer
    )
    if equivalence.is_equal:
        return False
    return proposal.settlement_rule in CONSENT_RULES
