import pytest

from src.core.barter.errors import (
    LineageNotFoundError,
    LineageRepositoryError,
    LineageVersionConflictError,
)
from src.infrastructure.barter import InMemoryLineageRepository
from tests.factories import barter_proposal, service_item


def _version(number: int, *, root: str = "bp_root00000001"):
    return barter_proposal(
        offered=[service_item("design", "1000")],
        proposal_id=f"bp_v{number}",
        lineage_root_id=root,
        version=number,
    )


def test_create_and_read_lineage():
    repository = InMemoryLineageRepository()
    repository.create_lineage(_version(1))
    repository.append_version(_version(2), expected_version=1)

    assert repository.get_latest_version(lineage_root_id="bp_root00000001").version == 2
    assert repository.get_version(lineage_root_id="bp_root00000001", version=1).id == "bp_v1"
    assert repository.get_version(lineage_root_id="bp_root00000001", version=9) is None
    assert [p.version for p in repository.list_versions(lineage_root_id="bp_root00000001")] == [
        1,
        2,
    ]
    assert repository.get_latest_version(lineage_root_id="bp_missing") is None
    assert repository.list_versions(lineage_root_id="bp_missing") == []


def test_create_lineage_rejects_duplicates_and_non_initial_versions():
    repository = InMemoryLineageRepository()
    repository.create_lineage(_version(1))

    with pytest.raises(LineageRepositoryError, match="LINEAGE_ALREADY_EXISTS"):
        repository.create_lineage(_version(1))
    with pytest.raises(LineageRepositoryError, match="LINEAGE_MUST_START_AT_VERSION_1"):
        repository.create_lineage(_version(2, root="bp_other"))


def test_append_version_is_compare_and_append():
    repository = InMemoryLineageRepository()
    repository.create_lineage(_version(1))
    repository.append_version(_version(2), expected_version=1)

    with pytest.raises(LineageVersionConflictError):
        repository.append_version(_version(2), expected_version=1)
    with pytest.raises(LineageVersionConflictError):
        repository.append_version(_version(4), expected_version=2)
    with pytest.raises(LineageNotFoundError):
        repository.append_version(_version(2, root="bp_missing"), expected_version=1)


def test_reads_return_copies():
    repository = InMemoryLineageRepository()
    repository.create_lineage(_version(1))

    stored = repository.get_latest_version(lineage_root_id="bp_root00000001")
    stored.services_offered.clear()

    reread = repository.get_latest_version(lineage_root_id="bp_root00000001")
    assert len(reread.services_offered) == 1
