import logging
from typing import Optional

from src.core.barter.equivalence import calculate_equivalence
from src.core.barter.errors import structural_error
from src.core.barter.models import BarterProposal, EngineError, ValidationResult
from src.core.barter.service_items import (
    ServiceItemNormalizer,
    StandardServiceItemNormalizer,
    validate_service_items,
)
from src.core.barter.settlement import apply_settlement_rule

logger = logging.getLogger(__name__)


class BarterProposalValidator:
    """
    Runs structural checks, equivalence and settlement in one pass.

    Every problem found is reported; nothing short-circuits, so callers can show the
    full list at once.
    """

    def __init__(self, *, normalizer: Optional[ServiceItemNormalizer] = None) -> None:
        self._normalizer = normalizer or StandardServiceItemNormalizer()

    def validate(self, proposal: BarterProposal) -> ValidationResult:
        errors: list[EngineError] = []

        if not proposal.services_offered:
            errors.append(
                structural_error("SERVICES_OFFERED_REQUIRED", "Services offered are required")
            )
        if not proposal.services_requested:
            errors.append(
                structural_error("SERVICES_REQUESTED_REQUIRED", "Services requested are required")
            )
        if not proposal.settlement_rule:
            errors.append(
                structural_error("SETTLEMENT_RULE_REQUIRED", "Barter settlement rule is required")
            )

        errors.extend(validate_service_items(proposal.services_offered, side="services_offered"))
        errors.extend(
            validate_service_items(proposal.services_requested, side="services_requested")
        )

        equivalence = calculate_equivalence(
            proposal.services_offered,
            proposal.services_requested,
            normalizer=self._normalizer,
        )

        settlement = None
        if proposal.services_offered and proposal.services_requested and proposal.settlement_rule:
            decision = apply_settlement_rule(
                equivalence,
                proposal.settlement_rule,
                cash_component=proposal.cash_component,
                explicit_waiver=proposal.explicit_waiver,
            )
            errors.extend(decision.errors)
            settlement = decision.settlement

        if errors:
            logger.debug(
                "barter.validation.failed",
                extra={
                    "extra_fields": {
                        "proposal_id": proposal.id,
                        "version": proposal.version,
                        "error_codes": [error.code for error in errors],
                    }
                },
            )

        return ValidationResult(
            valid=not errors,
            errors=errors,
            equivalence=equivalence,
            settlement=settlement,
        )


def validate_barter_proposal(
    proposal: BarterProposal, *, normalizer: Optional[ServiceItemNormalizer] = None
) -> ValidationResult:
    return BarterProposalValidator(normalizer=normalizer).validate(proposal)
