"""
Service item normalization and basket arithmetic.

The normalizer is an injected collaborator: the engine only relies on
``normalize``, ``total`` and ``total_by_currency``. ``StandardServiceItemNormalizer``
accepts already-normalized items as well as the legacy shapes still found in stored
proposals (``item``/``price``/``total``/``unit`` keys).
"""

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Protocol, Sequence

from pydantic import BaseModel

from src.core.barter.errors import format_amount, structural_error
from src.core.barter.models import DEFAULT_CURRENCY, EngineError, ServiceItem
from src.core.common.canonical import hash_canonical_payload

ITEM_TOTAL_TOLERANCE = Decimal("0.01")


class ServiceItemNormalizer(Protocol):
    def normalize(self, raw: Any) -> ServiceItem: ...

    def total(self, items: Sequence[ServiceItem]) -> Decimal: ...

    def total_by_currency(self, items: Sequence[ServiceItem]) -> dict[str, Decimal]: ...


def sum_items(items: Iterable[ServiceItem]) -> Decimal:
    return sum((item.total_reference_value for item in items), Decimal("0"))


def sum_by_currency(items: Iterable[ServiceItem]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for item in items:
        currency = item.currency or DEFAULT_CURRENCY
        totals[currency] = totals.get(currency, Decimal("0")) + item.total_reference_value
    return totals


def _to_decimal(value: Any, *, field_name: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        # floats go through str() so 0.1 stays 0.1
        return Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc


class StandardServiceItemNormalizer:
    def __init__(self, *, default_currency: str = DEFAULT_CURRENCY) -> None:
        self._default_currency = default_currency

    def normalize(self, raw: Any) -> ServiceItem:
        if isinstance(raw, ServiceItem):
            return raw
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        if not isinstance(raw, Mapping):
            raise TypeError(f"service item must be a mapping, got {type(raw).__name__}")

        service_name = raw.get("service_name") or raw.get("item") or raw.get("description") or ""
        quantity = _to_decimal(raw.get("quantity"), field_name="quantity")
        if quantity is None:
            quantity = Decimal("1")
        unit_price = _to_decimal(
            raw.get("unit_price", raw.get("price")), field_name="unit_price"
        )
        total = _to_decimal(
            raw.get("total_reference_value", raw.get("total")),
            field_name="total_reference_value",
        )

        if total is None:
            total = quantity * (unit_price if unit_price is not None else Decimal("0"))
        if unit_price is None:
            unit_price = total / quantity if quantity != 0 else total

        payload = {
            "service_name": str(service_name),
            "description": str(raw.get("description") or service_name),
            "unit_of_measure": str(raw.get("unit_of_measure") or raw.get("unit") or "unit"),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_reference_value": total,
            "currency": str(raw.get("currency") or self._default_currency),
            "category": raw.get("category"),
        }
        item_id = raw.get("item_id") or raw.get("id") or _content_item_id(payload)
        return ServiceItem(item_id=str(item_id), **payload)

    def normalize_many(self, raw_items: Optional[Iterable[Any]]) -> list[ServiceItem]:
        return [self.normalize(raw) for raw in (raw_items or [])]

    def total(self, items: Sequence[ServiceItem]) -> Decimal:
        return sum_items(items)

    def total_by_currency(self, items: Sequence[ServiceItem]) -> dict[str, Decimal]:
        return sum_by_currency(items)


def _content_item_id(payload: dict[str, Any]) -> str:
    digest = hash_canonical_payload({key: str(value) for key, value in payload.items()})
    return f"si_{digest.split(':', 1)[1][:8]}"


def validate_service_item(item: ServiceItem, *, label: str) -> list[EngineError]:
    errors: list[EngineError] = []
    if item.quantity <= 0:
        errors.append(
            structural_error(
                "ITEM_QUANTITY_NOT_POSITIVE",
                f"{label}: quantity must be a positive number",
                item=label,
                quantity=item.quantity,
            )
        )
    if item.unit_price <= 0:
        errors.append(
            structural_error(
                "ITEM_UNIT_PRICE_NOT_POSITIVE",
                f"{label}: unit price must be a positive number",
                item=label,
                unit_price=item.unit_price,
            )
        )
    if not item.currency or not item.currency.strip():
        errors.append(
            structural_error(
                "ITEM_CURRENCY_REQUIRED",
                f"{label}: currency is required",
                item=label,
            )
        )
    expected_total = item.quantity * item.unit_price
    if abs(item.total_reference_value - expected_total) > ITEM_TOTAL_TOLERANCE:
        errors.append(
            structural_error(
                "ITEM_TOTAL_MISMATCH",
                (
                    f"{label}: total reference value ({format_amount(item.total_reference_value)}) "
                    f"does not match quantity x unit price ({format_amount(expected_total)})"
                ),
                item=label,
                total_reference_value=format_amount(item.total_reference_value),
                expected=format_amount(expected_total),
            )
        )
    return errors


def validate_service_items(items: Sequence[ServiceItem], *, side: str) -> list[EngineError]:
    errors: list[EngineError] = []
    for index, item in enumerate(items):
        errors.extend(validate_service_item(item, label=f"{side}[{index}]"))
    return errors
