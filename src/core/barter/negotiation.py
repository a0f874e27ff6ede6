import logging
from typing import Callable, Optional

from src.core.barter.agreement import generate_barter_agreement
from src.core.barter.diff import SETTLEMENT_FIELDS
from src.core.barter.errors import negotiation_state_error, structural_error
from src.core.barter.models import (
    TERMINAL_STATUSES,
    BarterAgreementTerms,
    BarterProposal,
    BarterProposalDraft,
    EngineError,
    NegotiationAction,
    ProposalUpdate,
    StatusChange,
    TransitionResult,
    ValidationResult,
)
from src.core.barter.validation import BarterProposalValidator
from src.core.barter.versioning import ProposalVersionStore

logger = logging.getLogger(__name__)

AgreementGenerator = Callable[..., BarterAgreementTerms]

TRANSITION_TARGETS: dict[NegotiationAction, StatusChange] = {
    "COUNTEROFFER": StatusChange(status="NEGOTIATION", negotiation_status="COUNTEROFFER"),
    "REVISION": StatusChange(negotiation_status="REVISION"),
    "ACCEPTED": StatusChange(status="ACCEPTED", negotiation_status="ACCEPTED"),
    "REJECTED": StatusChange(status="REJECTED", negotiation_status="REJECTED"),
}


class NegotiationStateMachine:
    """
    Legal transitions between negotiation states.

    INITIAL -> COUNTEROFFER <-> REVISION, and any non-terminal state -> ACCEPTED or
    REJECTED. Each committed transition writes a new version plus one thread entry
    through the version store. When a transition touches baskets, rule, cash or
    waiver, the merged candidate is validated first and an invalid settlement blocks
    the commit.
    """

    def __init__(
        self,
        *,
        store: ProposalVersionStore,
        validator: Optional[BarterProposalValidator] = None,
        agreement_generator: AgreementGenerator = generate_barter_agreement,
    ) -> None:
        self._store = store
        self._validator = validator or BarterProposalValidator()
        self._agreement_generator = agreement_generator

    def open(self, *, draft: BarterProposalDraft, actor_id: str) -> TransitionResult:
        result = self._store.open_lineage(draft=draft, actor_id=actor_id)
        return TransitionResult(
            success=result.success, proposal=result.proposal, errors=result.errors
        )

    def counteroffer(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        updates: Optional[ProposalUpdate],
        actor_id: str,
        comment: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        error = self._check_active(base_proposal, actor_id)
        if error is None and (
            actor_id != base_proposal.owner_id or actor_id == base_proposal.submitted_by
        ):
            error = negotiation_state_error(
                "COUNTEROFFER_NOT_PERMITTED",
                "Only the opportunity owner can counter a version submitted by the other party",
                actor_id=actor_id,
                owner_id=base_proposal.owner_id,
                submitted_by=base_proposal.submitted_by,
            )
        if error is not None:
            return self._blocked("COUNTEROFFER", base_proposal, actor_id, [error])
        return self._commit(
            lineage_root_id, base_proposal, updates, actor_id, comment, "COUNTEROFFER", notes
        )

    def revise(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        updates: Optional[ProposalUpdate],
        actor_id: str,
        comment: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        error = self._check_active(base_proposal, actor_id)
        if error is None and not (
            base_proposal.negotiation_status == "COUNTEROFFER"
            or base_proposal.status == "NEGOTIATION"
        ):
            error = negotiation_state_error(
                "REVISION_NOT_PERMITTED",
                "Revisions are only allowed once the proposal is under negotiation",
                negotiation_status=base_proposal.negotiation_status,
                status=base_proposal.status,
            )
        if error is not None:
            return self._blocked("REVISION", base_proposal, actor_id, [error])
        return self._commit(
            lineage_root_id, base_proposal, updates, actor_id, comment, "REVISION", notes
        )

    def accept(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        actor_id: str,
        comment: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        error = self._check_active(base_proposal, actor_id)
        if error is not None:
            return self._blocked("ACCEPTED", base_proposal, actor_id, [error])
        result = self._commit(
            lineage_root_id,
            base_proposal,
            None,
            actor_id,
            comment,
            "ACCEPTED",
            notes,
            force_validation=True,
            require_agreement=True,
        )
        if not result.success or result.proposal is None or result.validation is None:
            return result

        validation = result.validation
        agreement = self._agreement_generator(
            proposal=result.proposal,
            equivalence=validation.equivalence,
            settlement=validation.settlement,
        )
        logger.info(
            "negotiation.agreement.generated",
            extra={
                "extra_fields": {
                    "lineage_root_id": lineage_root_id,
                    "agreement_id": agreement.agreement_id,
                    "agreement_type": agreement.agreement_type,
                }
            },
        )
        return result.model_copy(update={"agreement": agreement})

    def reject(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        actor_id: str,
        comment: Optional[str],
        *,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        error = self._check_active(base_proposal, actor_id)
        if error is not None:
            return self._blocked("REJECTED", base_proposal, actor_id, [error])
        return self._commit(
            lineage_root_id, base_proposal, None, actor_id, comment, "REJECTED", notes
        )

    def _commit(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        updates: Optional[ProposalUpdate],
        actor_id: str,
        comment: Optional[str],
        action: NegotiationAction,
        notes: Optional[str],
        *,
        force_validation: bool = False,
        require_agreement: bool = False,
    ) -> TransitionResult:
        comment_error = self._store.check_comment(comment)
        if comment_error is not None:
            return self._blocked(action, base_proposal, actor_id, [comment_error])

        status_change = TRANSITION_TARGETS[action]

        validation = None
        touched = updates.model_fields_set if updates is not None else set()
        if force_validation or touched.intersection(SETTLEMENT_FIELDS):
            preview = self._store.merge(
                base_proposal,
                updates,
                actor_id=actor_id,
                comment=comment,
                status_change=status_change,
            )
            if not preview.success or preview.proposal is None:
                return self._blocked(action, base_proposal, actor_id, preview.errors)
            validation = self._validator.validate(preview.proposal)
            if not validation.valid:
                blocked = self._blocked(action, base_proposal, actor_id, validation.errors)
                return blocked.model_copy(update={"validation": validation})
            if require_agreement:
                agreement_error = self._check_agreement(preview.proposal, validation)
                if agreement_error is not None:
                    blocked = self._blocked(action, base_proposal, actor_id, [agreement_error])
                    return blocked.model_copy(update={"validation": validation})

        written = self._store.create_version(
            lineage_root_id,
            base_proposal,
            updates,
            actor_id,
            comment,
            action=action,
            notes=notes,
            status_change=status_change,
        )
        if not written.success:
            result = self._blocked(action, base_proposal, actor_id, written.errors)
            return result.model_copy(update={"validation": validation})

        logger.info(
            "negotiation.transition.committed",
            extra={
                "extra_fields": {
                    "lineage_root_id": lineage_root_id,
                    "action": action,
                    "actor_id": actor_id,
                    "version": written.proposal.version if written.proposal else None,
                }
            },
        )
        return TransitionResult(success=True, proposal=written.proposal, validation=validation)

    def _check_agreement(
        self, candidate: BarterProposal, validation: ValidationResult
    ) -> Optional[EngineError]:
        # Dry run on the preview; nothing terminal is written if terms cannot be built.
        if validation.equivalence is None or validation.settlement is None:
            return structural_error(
                "AGREEMENT_GENERATION_FAILED",
                "Accepted version has no settlement outcome to build agreement terms from",
            )
        try:
            self._agreement_generator(
                proposal=candidate,
                equivalence=validation.equivalence,
                settlement=validation.settlement,
            )
        except (TypeError, ValueError) as exc:
            return structural_error(
                "AGREEMENT_GENERATION_FAILED",
                f"Agreement terms could not be generated: {exc}",
            )
        return None

    def _check_active(self, base_proposal: BarterProposal, actor_id: str) -> Optional[EngineError]:
        if base_proposal.status in TERMINAL_STATUSES:
            return negotiation_state_error(
                "TERMINAL_LINEAGE",
                f"Proposal is {base_proposal.status}; no further transitions are allowed",
                lineage_root_id=base_proposal.lineage_root_id,
                status=base_proposal.status,
            )
        if actor_id not in (base_proposal.owner_id, base_proposal.bidder_id):
            return negotiation_state_error(
                "NOT_A_PARTY",
                "Actor is not a party to this negotiation",
                actor_id=actor_id,
            )
        return None

    def _blocked(
        self,
        action: NegotiationAction,
        base_proposal: BarterProposal,
        actor_id: str,
        errors: list[EngineError],
    ) -> TransitionResult:
        logger.info(
            "negotiation.transition.blocked",
            extra={
                "extra_fields": {
                    "lineage_root_id": base_proposal.lineage_root_id,
                    "version": base_proposal.version,
                    "action": action,
                    "actor_id": actor_id,
                    "error_codes": [error.code for error in errors],
                }
            },
        )
        return TransitionResult(success=False, errors=errors)
