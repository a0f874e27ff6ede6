import logging
import uuid
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from src.core.barter.diff import changed_fields
from src.core.barter.errors import (
    LineageNotFoundError,
    LineageRepositoryError,
    LineageVersionConflictError,
    lineage_error,
    negotiation_state_error,
    structural_error,
)
from src.core.barter.models import (
    TERMINAL_STATUSES,
    BarterProposal,
    BarterProposalDraft,
    EngineError,
    NegotiationAction,
    NegotiationThreadEntry,
    ProposalUpdate,
    ProposalVersionSnapshot,
    ServiceItem,
    StatusChange,
    VersionResult,
)
from src.core.barter.repository import LineageRepository
from src.core.barter.service_items import ServiceItemNormalizer, StandardServiceItemNormalizer
from src.core.common.canonical import hash_canonical_payload, strip_keys

logger = logging.getLogger(__name__)

MIN_COMMENT_LENGTH = 10

_SNAPSHOT_EXCLUDED_KEYS = {"version_history", "negotiation_thread"}


class ProposalVersionStore:
    """
    Append-only version history for proposal lineages.

    Every edit produces a new BarterProposal; the base version is never modified.
    Writes go through the repository's compare-and-append, so two writers racing on
    the same base version cannot both succeed.
    """

    def __init__(
        self,
        *,
        repository: LineageRepository,
        normalizer: Optional[ServiceItemNormalizer] = None,
        min_comment_length: int = MIN_COMMENT_LENGTH,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._normalizer = normalizer or StandardServiceItemNormalizer()
        self._min_comment_length = min_comment_length
        self._clock = clock or _utc_now

    def open_lineage(self, *, draft: BarterProposalDraft, actor_id: str) -> VersionResult:
        offered, offered_errors = self._normalize_basket(
            draft.services_offered, "services_offered"
        )
        requested, requested_errors = self._normalize_basket(
            draft.services_requested, "services_requested"
        )
        if offered_errors or requested_errors:
            return VersionResult(success=False, errors=[*offered_errors, *requested_errors])

        now = self._clock()
        proposal_id = f"bp_{uuid.uuid4().hex[:12]}"
        proposal = BarterProposal(
            id=proposal_id,
            lineage_root_id=proposal_id,
            version=1,
            owner_id=draft.owner_id,
            bidder_id=actor_id,
            submitted_by=actor_id,
            opportunity_id=draft.opportunity_id,
            status="SUBMITTED",
            negotiation_status="INITIAL",
            services_offered=offered,
            services_requested=requested,
            settlement_rule=draft.settlement_rule,
            cash_component=draft.cash_component,
            explicit_waiver=draft.explicit_waiver,
            total=draft.total,
            currency=draft.currency,
            timeline=draft.timeline,
            terms=draft.terms,
            payment_details=draft.payment_details,
            exchange_schedule=draft.exchange_schedule,
            quality_standards=draft.quality_standards,
            dispute_resolution=draft.dispute_resolution,
            comment=draft.comment,
            negotiation_thread=[
                NegotiationThreadEntry(
                    version=1,
                    action="CREATED",
                    actor_id=actor_id,
                    changed_fields=[],
                    timestamp=now,
                    comment=draft.comment,
                )
            ],
            created_at=now,
            updated_at=now,
        )
        try:
            self._repository.create_lineage(proposal)
        except LineageRepositoryError as exc:
            return VersionResult(
                success=False,
                errors=[
                    lineage_error("LINEAGE_WRITE_FAILED", str(exc), lineage_root_id=proposal_id)
                ],
            )

        logger.info(
            "negotiation.lineage.opened",
            extra={"extra_fields": {"lineage_root_id": proposal_id, "actor_id": actor_id}},
        )
        return VersionResult(success=True, proposal=proposal)

    def create_version(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        updates: Optional[ProposalUpdate],
        actor_id: str,
        comment: Optional[str],
        *,
        action: NegotiationAction = "REVISION",
        notes: Optional[str] = None,
        status_change: Optional[StatusChange] = None,
    ) -> VersionResult:
        comment_error = self.check_comment(comment)
        if comment_error is not None:
            return VersionResult(success=False, errors=[comment_error])

        latest = self._repository.get_latest_version(lineage_root_id=lineage_root_id)
        protocol_error = self._check_base(lineage_root_id, base_proposal, latest)
        if protocol_error is not None:
            return VersionResult(success=False, errors=[protocol_error])

        merged = self.merge(
            base_proposal,
            updates,
            actor_id=actor_id,
            comment=comment,
            status_change=status_change,
        )
        if not merged.success or merged.proposal is None:
            return merged
        candidate = merged.proposal

        candidate.negotiation_thread = [
            *candidate.negotiation_thread,
            NegotiationThreadEntry(
                version=candidate.version,
                action=action,
                actor_id=actor_id,
                changed_fields=changed_fields(base_proposal, candidate),
                timestamp=candidate.updated_at,
                notes=notes,
                comment=candidate.comment,
            ),
        ]

        try:
            self._repository.append_version(candidate, expected_version=base_proposal.version)
        except LineageVersionConflictError:
            return VersionResult(
                success=False,
                errors=[_stale_base_error(lineage_root_id, base_proposal.version, None)],
            )
        except LineageNotFoundError:
            return VersionResult(
                success=False,
                errors=[_unknown_lineage_error(lineage_root_id)],
            )

        logger.info(
            "negotiation.version.created",
            extra={
                "extra_fields": {
                    "lineage_root_id": lineage_root_id,
                    "version": candidate.version,
                    "action": action,
                    "actor_id": actor_id,
                }
            },
        )
        return VersionResult(success=True, proposal=candidate)

    def merge(
        self,
        base_proposal: BarterProposal,
        updates: Optional[ProposalUpdate],
        *,
        actor_id: str,
        comment: Optional[str] = None,
        status_change: Optional[StatusChange] = None,
    ) -> VersionResult:
        """
        Builds the next version in memory without writing it.

        The candidate is validated as a whole, so an update that leaves a required
        field empty is reported as a structural error instead of being stored.
        """
        changes, errors = self._resolve_updates(updates)
        if errors:
            return VersionResult(success=False, errors=errors)

        history = list(base_proposal.version_history)
        if not history or history[-1].version != base_proposal.version:
            history.append(self._snapshot(base_proposal))

        data = base_proposal.model_dump()
        data.update(deepcopy(changes))
        if status_change is not None:
            data.update(status_change.model_dump(exclude_none=True))
        data.update(
            {
                "id": f"bp_{uuid.uuid4().hex[:12]}",
                "lineage_root_id": base_proposal.lineage_root_id,
                "version": base_proposal.version + 1,
                "submitted_by": actor_id,
                "comment": comment.strip() if comment else None,
                "version_history": [snapshot.model_dump() for snapshot in history],
                "updated_at": self._clock(),
            }
        )
        try:
            candidate = BarterProposal.model_validate(data)
        except ValidationError as exc:
            fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
            return VersionResult(
                success=False,
                errors=[
                    structural_error(
                        "PROPOSAL_UPDATE_INVALID",
                        f"Update leaves invalid values in: {', '.join(fields)}",
                        fields=",".join(fields),
                    )
                ],
            )
        return VersionResult(success=True, proposal=candidate)

    def get_versions(self, lineage_root_id: str) -> list[BarterProposal]:
        return self._repository.list_versions(lineage_root_id=lineage_root_id)

    def get_version(self, lineage_root_id: str, version: int) -> Optional[BarterProposal]:
        return self._repository.get_version(lineage_root_id=lineage_root_id, version=version)

    def get_latest_version(self, lineage_root_id: str) -> Optional[BarterProposal]:
        return self._repository.get_latest_version(lineage_root_id=lineage_root_id)

    def get_negotiation_thread(self, lineage_root_id: str) -> list[NegotiationThreadEntry]:
        latest = self._repository.get_latest_version(lineage_root_id=lineage_root_id)
        return list(latest.negotiation_thread) if latest is not None else []

    def check_comment(self, comment: Optional[str]) -> Optional[EngineError]:
        length = len(comment.strip()) if isinstance(comment, str) else 0
        if length < self._min_comment_length:
            return negotiation_state_error(
                "COMMENT_TOO_SHORT",
                (
                    "Comment is required and must be at least "
                    f"{self._min_comment_length} characters long"
                ),
                min_length=self._min_comment_length,
                length=length,
            )
        return None

    def _check_base(
        self,
        lineage_root_id: str,
        base_proposal: BarterProposal,
        latest: Optional[BarterProposal],
    ) -> Optional[EngineError]:
        if latest is None:
            return _unknown_lineage_error(lineage_root_id)
        if base_proposal.lineage_root_id != lineage_root_id:
            return lineage_error(
                "LINEAGE_MISMATCH",
                "Base proposal belongs to a different lineage",
                lineage_root_id=lineage_root_id,
                base_lineage_root_id=base_proposal.lineage_root_id,
            )
        if latest.status in TERMINAL_STATUSES:
            return negotiation_state_error(
                "TERMINAL_LINEAGE",
                f"Lineage is {latest.status}; no further versions can be created",
                lineage_root_id=lineage_root_id,
                status=latest.status,
            )
        if base_proposal.version != latest.version:
            return _stale_base_error(lineage_root_id, base_proposal.version, latest.version)

        history_versions = [snapshot.version for snapshot in base_proposal.version_history]
        expected = list(range(1, base_proposal.version))
        if history_versions not in (expected, [*expected, base_proposal.version]):
            return lineage_error(
                "MISSING_PARENT_SNAPSHOT",
                "Version history does not cover every prior version",
                lineage_root_id=lineage_root_id,
                version=base_proposal.version,
                history_length=len(history_versions),
            )
        return None

    def _resolve_updates(
        self, updates: Optional[ProposalUpdate]
    ) -> tuple[dict[str, Any], list[EngineError]]:
        if updates is None:
            return {}, []
        changes = {
            field: getattr(updates, field) for field in updates.model_dump(exclude_unset=True)
        }
        errors: list[EngineError] = []
        for side in ("services_offered", "services_requested"):
            if side in changes:
                items, side_errors = self._normalize_basket(changes[side], side)
                changes[side] = items
                errors.extend(side_errors)
        return changes, errors

    def _normalize_basket(
        self, raw_items: Optional[list[Any]], side: str
    ) -> tuple[list[ServiceItem], list[EngineError]]:
        items: list[ServiceItem] = []
        errors: list[EngineError] = []
        for index, raw in enumerate(raw_items or []):
            try:
                items.append(self._normalizer.normalize(raw))
            except (TypeError, ValueError) as exc:
                errors.append(
                    structural_error(
                        "ITEM_MALFORMED",
                        f"{side}[{index}]: {exc}",
                        item=f"{side}[{index}]",
                    )
                )
        return items, errors

    def _snapshot(self, proposal: BarterProposal) -> ProposalVersionSnapshot:
        data = strip_keys(proposal.model_dump(mode="json"), exclude=_SNAPSHOT_EXCLUDED_KEYS)
        return ProposalVersionSnapshot(
            version=proposal.version,
            proposal_id=proposal.id,
            proposal_data=data,
            snapshot_hash=hash_canonical_payload(data),
            created_at=proposal.updated_at,
            created_by=proposal.submitted_by,
        )


def _unknown_lineage_error(lineage_root_id: str) -> EngineError:
    return lineage_error(
        "UNKNOWN_LINEAGE",
        f"Lineage {lineage_root_id} not found",
        lineage_root_id=lineage_root_id,
    )


def _stale_base_error(
    lineage_root_id: str, base_version: int, latest_version: Optional[int]
) -> EngineError:
    return negotiation_state_error(
        "STALE_BASE_VERSION",
        f"Version {base_version} is no longer the latest version of the lineage",
        lineage_root_id=lineage_root_id,
        base_version=base_version,
        latest_version=latest_version,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
