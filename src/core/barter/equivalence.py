"""
FILE: src/core/barter/equivalence.py
Value parity between an offered and a requested basket.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

from src.core.barter.models import DEFAULT_CURRENCY, EquivalenceResult, ServiceItem
from src.core.barter.service_items import ServiceItemNormalizer, StandardServiceItemNormalizer

# Percent, not a ratio: 0.01 means one hundredth of one percent.
EQUAL_VALUE_TOLERANCE = Decimal("0.01")


def _as_items(items: Sequence[Any], normalizer: ServiceItemNormalizer) -> list[ServiceItem]:
    return [item if isinstance(item, ServiceItem) else normalizer.normalize(item) for item in items]


def calculate_equivalence(
    offered: Sequence[Any],
    requested: Sequence[Any],
    *,
    normalizer: Optional[ServiceItemNormalizer] = None,
) -> EquivalenceResult:
    """
    Compares basket totals without converting currencies.

    balance is offered minus requested, so swapping the baskets negates it.
    """
    resolved = normalizer or StandardServiceItemNormalizer()
    offered_items = _as_items(offered or [], resolved)
    requested_items = _as_items(requested or [], resolved)

    total_offered = resolved.total(offered_items)
    total_requested = resolved.total(requested_items)
    balance = total_offered - total_requested
    absolute_balance = abs(balance)

    average = (total_offered + total_requested) / 2
    if average > 0:
        percentage_difference = absolute_balance / average * 100
    else:
        percentage_difference = Decimal("0")

    offered_by_currency = resolved.total_by_currency(offered_items)
    requested_by_currency = resolved.total_by_currency(requested_items)
    currencies = set(offered_by_currency) | set(requested_by_currency)

    return EquivalenceResult(
        total_offered=total_offered,
        total_requested=total_requested,
        balance=balance,
        absolute_balance=absolute_balance,
        percentage_difference=percentage_difference,
        is_equal=percentage_difference <= EQUAL_VALUE_TOLERANCE,
        offered_by_currency=offered_by_currency,
        requested_by_currency=requested_by_currency,
        currency=offered_items[0].currency if offered_items else DEFAULT_CURRENCY,
        currency_mismatch=len(currencies) > 1,
    )
