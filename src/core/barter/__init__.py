from src.core.barter.agreement import generate_barter_agreement
from src.core.barter.diff import changed_fields, compare_versions
from src.core.barter.equivalence import calculate_equivalence
from src.core.barter.errors import (
    LineageNotFoundError,
    LineageRepositoryError,
    LineageVersionConflictError,
)
from src.core.barter.hybrid import (
    compose_hybrid_payment,
    generate_hybrid_contract_terms,
    validate_hybrid_proposal,
)
from src.core.barter.models import (
    BarterAgreementTerms,
    BarterProposal,
    BarterProposalDraft,
    EngineError,
    EquivalenceResult,
    NegotiationThreadEntry,
    ProposalUpdate,
    ServiceItem,
    SettlementDecision,
    TransitionResult,
    ValidationResult,
    VersionComparison,
    VersionResult,
)
from src.core.barter.negotiation import NegotiationStateMachine
from src.core.barter.repository import LineageRepository
from src.core.barter.service_items import ServiceItemNormalizer, StandardServiceItemNormalizer
from src.core.barter.settlement import apply_settlement_rule, requires_consent
from src.core.barter.validation import BarterProposalValidator, validate_barter_proposal
from src.core.barter.versioning import ProposalVersionStore

__all__ = [
    "BarterAgreementTerms",
    "BarterProposal",
    "BarterProposalDraft",
    "BarterProposalValidator",
    "EngineError",
    "EquivalenceResult",
    "LineageNotFoundError",
    "LineageRepository",
    "LineageRepositoryError",
    "LineageVersionConflictError",
    "NegotiationStateMachine",
    "NegotiationThreadEntry",
    "ProposalUpdate",
    "ProposalVersionStore",
    "ServiceItem",
    "ServiceItemNormalizer",
    "SettlementDecision",
    "StandardServiceItemNormalizer",
    "TransitionResult",
    "ValidationResult",
    "VersionComparison",
    "VersionResult",
    "apply_settlement_rule",
    "calculate_equivalence",
    "changed_fields",
    "compare_versions",
    "compose_hybrid_payment",
    "generate_barter_agreement",
    "generate_hybrid_contract_terms",
    "requires_consent",
    "validate_barter_proposal",
    "validate_hybrid_proposal",
]
