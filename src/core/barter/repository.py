from typing import Optional, Protocol

from src.core.barter.models import BarterProposal


class LineageRepository(Protocol):
    """
    Storage port for proposal lineages.

    append_version is a compare-and-append: it raises LineageVersionConflictError
    when expected_version is no longer the latest stored version, and
    LineageNotFoundError for an unknown lineage.
    """

    def create_lineage(self, proposal: BarterProposal) -> None: ...

    def append_version(self, proposal: BarterProposal, *, expected_version: int) -> None: ...

    def get_version(self, *, lineage_root_id: str, version: int) -> Optional[BarterProposal]: ...

    def get_latest_version(self, *, lineage_root_id: str) -> Optional[BarterProposal]: ...

    def list_versions(self, *, lineage_root_id: str) -> list[BarterProposal]: ...
