from decimal import Decimal

from src.core.barter.equivalence import calculate_equivalence
from tests.factories import raw_item, service_item


def test_equivalence_reports_signed_balance_and_percentage():
    result = calculate_equivalence(
        [service_item("design", "120000")],
        [service_item("install", "100000")],
    )

    assert result.total_offered == Decimal("120000")
    assert result.total_requested == Decimal("100000")
    assert result.balance == Decimal("20000")
    assert result.absolute_balance == Decimal("20000")
    assert result.percentage_difference.quantize(Decimal("0.01")) == Decimal("18.18")
    assert result.is_equal is False
    assert result.currency == "SAR"


def test_equivalence_balance_is_antisymmetric():
    offered = [service_item("design", "120000")]
    requested = [service_item("install", "100000")]

    forward = calculate_equivalence(offered, requested)
    backward = calculate_equivalence(requested, offered)

    assert forward.balance == -backward.balance
    assert forward.absolute_balance == backward.absolute_balance
    assert forward.percentage_difference == backward.percentage_difference


def test_equivalence_treats_differences_within_tolerance_as_equal():
    result = calculate_equivalence(
        [service_item("design", "100005")],
        [service_item("install", "100000")],
    )

    assert result.balance == Decimal("5")
    assert result.is_equal is True


def test_equivalence_of_empty_baskets_is_equal_with_zero_percentage():
    result = calculate_equivalence([], [])

    assert result.total_offered == Decimal("0")
    assert result.percentage_difference == Decimal("0")
    assert result.is_equal is True


def test_equivalence_flags_mixed_currencies_without_converting():
    result = calculate_equivalence(
        [service_item("design", "1000", currency="USD")],
        [service_item("install", "1000", currency="SAR")],
    )

    assert result.currency == "USD"
    assert result.currency_mismatch is True
    assert result.offered_by_currency == {"USD": Decimal("1000")}
    assert result.requested_by_currency == {"SAR": Decimal("1000")}
    assert result.is_equal is True


def test_equivalence_normalizes_raw_and_legacy_items():
    result = calculate_equivalence(
        [raw_item("Design", "5000"), {"item": "Survey", "price": "250", "quantity": "4"}],
        [{"item": "Cabling", "total": "6000"}],
    )

    assert result.total_offered == Decimal("6000")
    assert result.total_requested == Decimal("6000")
    assert result.is_equal is True
