from typing import Any, Iterable

from src.core.barter.models import BarterProposal, FieldChange, VersionComparison
from src.core.common.canonical import canonical_equal

DIFF_FIELD_CATEGORIES = {
    "total": "pricing",
    "currency": "pricing",
    "timeline": "timeline",
    "terms": "terms",
    "services_offered": "services",
    "services_requested": "services",
    "payment_details": "payment",
}

SETTLEMENT_FIELDS = (
    "services_offered",
    "services_requested",
    "settlement_rule",
    "cash_component",
    "explicit_waiver",
)

THREAD_WATCH_FIELDS = (
    *DIFF_FIELD_CATEGORIES,
    "status",
    "settlement_rule",
    "cash_component",
    "explicit_waiver",
)


def _json_dump(proposal: BarterProposal, fields: Iterable[str]) -> dict[str, Any]:
    return proposal.model_dump(mode="json", include=set(fields))


def changed_fields(
    before: BarterProposal,
    after: BarterProposal,
    fields: Iterable[str] = THREAD_WATCH_FIELDS,
) -> list[str]:
    watched = list(fields)
    left = _json_dump(before, watched)
    right = _json_dump(after, watched)
    return [field for field in watched if not canonical_equal(left[field], right[field])]


def compare_versions(before: BarterProposal, after: BarterProposal) -> VersionComparison:
    """
    Field-level change set between two versions.

    Values are compared whole, so a basket with the same items in another order
    counts as changed.
    """
    left = _json_dump(before, DIFF_FIELD_CATEGORIES)
    right = _json_dump(after, DIFF_FIELD_CATEGORIES)
    changes = {
        field: FieldChange(
            field=field,
            category=category,
            from_value=left[field],
            to_value=right[field],
        )
        for field, category in DIFF_FIELD_CATEGORIES.items()
        if not canonical_equal(left[field], right[field])
    }
    change_count = len(changes)
    summary = (
        f"{change_count} field(s) changed between version {before.version} and {after.version}"
        if change_count
        else "No changes detected"
    )
    return VersionComparison(
        from_version=before.version,
        to_version=after.version,
        changes=changes,
        change_count=change_count,
        summary=summary,
    )
