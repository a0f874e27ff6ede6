from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from src.core.barter.models import BarterProposal, BarterProposalDraft, ServiceItem

OWNER = "company_owner"
BIDDER = "company_bidder"
OUTSIDER = "company_outsider"

COMMENT = "Adjusted scope after site visit"

_FIXED_TIME = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def service_item(
    item_id: str,
    total: str,
    *,
    quantity: str = "1",
    unit_price: Optional[str] = None,
    currency: str = "SAR",
    service_name: Optional[str] = None,
) -> ServiceItem:
    return ServiceItem(
        item_id=item_id,
        service_name=service_name or item_id,
        description=service_name or item_id,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price) if unit_price is not None else Decimal(total),
        total_reference_value=Decimal(total),
        currency=currency,
    )


def raw_item(name: str, total: str, *, currency: str = "SAR", **extra: Any) -> dict[str, Any]:
    return {
        "service_name": name,
        "quantity": "1",
        "unit_price": total,
        "total_reference_value": total,
        "currency": currency,
        **extra,
    }


def barter_proposal(
    *,
    offered: Iterable[ServiceItem] = (),
    requested: Iterable[ServiceItem] = (),
    settlement_rule: Optional[str] = "EQUAL_VALUE_ONLY",
    cash_component: Optional[str] = None,
    explicit_waiver: bool = False,
    proposal_id: str = "bp_test00000001",
    version: int = 1,
    status: str = "SUBMITTED",
    negotiation_status: str = "INITIAL",
    submitted_by: str = BIDDER,
    lineage_root_id: Optional[str] = None,
    **extra: Any,
) -> BarterProposal:
    return BarterProposal(
        id=proposal_id,
        lineage_root_id=lineage_root_id or proposal_id,
        version=version,
        owner_id=OWNER,
        bidder_id=BIDDER,
        submitted_by=submitted_by,
        status=status,
        negotiation_status=negotiation_status,
        services_offered=list(offered),
        services_requested=list(requested),
        settlement_rule=settlement_rule,
        cash_component=Decimal(cash_component) if cash_component is not None else None,
        explicit_waiver=explicit_waiver,
        created_at=_FIXED_TIME,
        updated_at=_FIXED_TIME,
        **extra,
    )


def draft(
    *,
    offered: Iterable[Any] = (),
    requested: Iterable[Any] = (),
    settlement_rule: Optional[str] = "ALLOW_DIFFERENCE_WITH_CASH",
    cash_component: Optional[str] = None,
    **extra: Any,
) -> BarterProposalDraft:
    return BarterProposalDraft(
        owner_id=OWNER,
        opportunity_id="opp_tower_fitout",
        services_offered=list(offered),
        services_requested=list(requested),
        settlement_rule=settlement_rule,
        cash_component=Decimal(cash_component) if cash_component is not None else None,
        **extra,
    )


def unbalanced_draft(**extra: Any) -> BarterProposalDraft:
    """Offered 120000 against requested 100000."""
    return draft(
        offered=[raw_item("Structural design", "120000")],
        requested=[raw_item("MEP installation", "100000")],
        **extra,
    )
