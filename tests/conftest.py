"""
FILE: tests/conftest.py
Shared fixtures for negotiation engine tests.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from src.core.barter.negotiation import NegotiationStateMachine
from src.core.barter.versioning import ProposalVersionStore
from src.infrastructure.barter import InMemoryLineageRepository


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if (
            _has_marker(item, "unit")
            or _has_marker(item, "integration")
            or _has_marker(item, "e2e")
        ):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        if "/tests/e2e/" in path:
            item.add_marker(pytest.mark.e2e)
            continue
        item.add_marker(pytest.mark.unit)


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def __call__(self) -> datetime:
        current = self._now
        self._now = current + timedelta(seconds=1)
        return current


@pytest.fixture(autouse=True)
def negotiation_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("NEGOTIATION_STORE_BACKEND", raising=False)
    monkeypatch.delenv("NEGOTIATION_MIN_COMMENT_LENGTH", raising=False)
    monkeypatch.delenv("NEGOTIATION_DEFAULT_CURRENCY", raising=False)


@pytest.fixture
def clock():
    return StepClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository():
    return InMemoryLineageRepository()


@pytest.fixture
def store(repository, clock):
    return ProposalVersionStore(repository=repository, clock=clock)


@pytest.fixture
def machine(store):
    return NegotiationStateMachine(store=store)
