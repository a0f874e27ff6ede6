"""
FILE: src/core/barter/agreement.py
Agreement terms for downstream contract creation.
"""

from src.core.barter.models import (
    BarterAgreementTerms,
    BarterProposal,
    EquivalenceResult,
    SettlementOutcome,
)
from src.core.common.canonical import hash_canonical_payload

DEFAULT_EXCHANGE_SCHEDULE = "Concurrent"
DEFAULT_QUALITY_STANDARDS = "All services must meet project specifications"
DEFAULT_DISPUTE_RESOLUTION = "Disputes to be resolved through platform mediation"


def generate_barter_agreement(
    *,
    proposal: BarterProposal,
    equivalence: EquivalenceResult,
    settlement: SettlementOutcome,
) -> BarterAgreementTerms:
    """
    Builds immutable agreement terms from a validated proposal version.

    No clock or random input is read, so identical inputs give identical terms,
    including agreement_id and terms_hash.
    """
    proposal_json = proposal.model_dump(mode="json")
    body = {
        "agreement_type": "HYBRID" if settlement.outcome == "CASH_BALANCED" else "BARTER",
        "lineage_root_id": proposal.lineage_root_id,
        "proposal_id": proposal.id,
        "version": proposal.version,
        "owner_id": proposal.owner_id,
        "bidder_id": proposal.bidder_id,
        "services_offered": proposal_json["services_offered"],
        "services_requested": proposal_json["services_requested"],
        "total_offered": str(equivalence.total_offered),
        "total_requested": str(equivalence.total_requested),
        "balance": str(equivalence.balance),
        "currency": equivalence.currency,
        "settlement_rule": proposal.settlement_rule,
        "settlement": settlement.model_dump(mode="json"),
        "terms": proposal_json["terms"],
        "exchange_schedule": proposal.exchange_schedule or DEFAULT_EXCHANGE_SCHEDULE,
        "quality_standards": proposal.quality_standards or DEFAULT_QUALITY_STANDARDS,
        "dispute_resolution": proposal.dispute_resolution or DEFAULT_DISPUTE_RESOLUTION,
    }
    terms_hash = hash_canonical_payload(body)
    agreement_id = f"ba_{terms_hash.split(':', 1)[1][:12]}"
    return BarterAgreementTerms.model_validate(
        {**body, "agreement_id": agreement_id, "terms_hash": terms_hash}
    )
