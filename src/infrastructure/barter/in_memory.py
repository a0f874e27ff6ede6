from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.barter.errors import (
    LineageNotFoundError,
    LineageRepositoryError,
    LineageVersionConflictError,
)
from src.core.barter.models import BarterProposal
from src.core.barter.repository import LineageRepository


class InMemoryLineageRepository(LineageRepository):
    def __init__(self) -> None:
        self._lock = Lock()
        self._lineages: dict[str, list[BarterProposal]] = {}

    def create_lineage(self, proposal: BarterProposal) -> None:
        with self._lock:
            if proposal.lineage_root_id in self._lineages:
                raise LineageRepositoryError("LINEAGE_ALREADY_EXISTS")
            if proposal.version != 1:
                raise LineageRepositoryError("LINEAGE_MUST_START_AT_VERSION_1")
            self._lineages[proposal.lineage_root_id] = [deepcopy(proposal)]

    def append_version(self, proposal: BarterProposal, *, expected_version: int) -> None:
        with self._lock:
            versions = self._lineages.get(proposal.lineage_root_id)
            if versions is None:
                raise LineageNotFoundError("LINEAGE_NOT_FOUND")
            latest = versions[-1].version
            if latest != expected_version or proposal.version != expected_version + 1:
                raise LineageVersionConflictError(
                    f"STALE_BASE_VERSION: expected {expected_version}, latest {latest}"
                )
            versions.append(deepcopy(proposal))

    def get_version(self, *, lineage_root_id: str, version: int) -> Optional[BarterProposal]:
        with self._lock:
            versions = self._lineages.get(lineage_root_id, [])
            match = next((row for row in versions if row.version == version), None)
            return deepcopy(match) if match is not None else None

    def get_latest_version(self, *, lineage_root_id: str) -> Optional[BarterProposal]:
        with self._lock:
            versions = self._lineages.get(lineage_root_id)
            return deepcopy(versions[-1]) if versions else None

    def list_versions(self, *, lineage_root_id: str) -> list[BarterProposal]:
        with self._lock:
            versions = self._lineages.get(lineage_root_id, [])
            return [deepcopy(row) for row in versions]
