import pytest

from src.core.barter.config import (
    build_repository,
    build_state_machine,
    load_settings,
    negotiation_store_backend_name,
)
from src.core.barter.models import ProposalUpdate
from src.infrastructure.barter import InMemoryLineageRepository
from tests.factories import BIDDER, OWNER, draft


def test_default_settings():
    settings = load_settings()

    assert settings.store_backend == "IN_MEMORY"
    assert settings.min_comment_length == 10
    assert settings.default_currency == "SAR"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", " in_memory ")
    monkeypatch.setenv("NEGOTIATION_MIN_COMMENT_LENGTH", "20")
    monkeypatch.setenv("NEGOTIATION_DEFAULT_CURRENCY", "usd")

    settings = load_settings()

    assert settings.store_backend == "IN_MEMORY"
    assert settings.min_comment_length == 20
    assert settings.default_currency == "USD"


def test_unsupported_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_STORE_BACKEND", "POSTGRES")

    with pytest.raises(RuntimeError, match="NEGOTIATION_STORE_BACKEND_UNSUPPORTED"):
        negotiation_store_backend_name()


@pytest.mark.parametrize("value", ["ten", "0"])
def test_invalid_comment_length_is_rejected(monkeypatch, value):
    monkeypatch.setenv("NEGOTIATION_MIN_COMMENT_LENGTH", value)

    with pytest.raises(RuntimeError, match="NEGOTIATION_MIN_COMMENT_LENGTH_INVALID"):
        load_settings()


def test_build_repository_returns_in_memory_repository():
    assert isinstance(build_repository(), InMemoryLineageRepository)


def test_build_state_machine_applies_settings(monkeypatch):
    monkeypatch.setenv("NEGOTIATION_MIN_COMMENT_LENGTH", "20")
    monkeypatch.setenv("NEGOTIATION_DEFAULT_CURRENCY", "USD")
    machine = build_state_machine()

    opened = machine.open(
        draft=draft(
            offered=[{"service_name": "Design", "unit_price": "100"}],
            requested=[{"service_name": "Install", "unit_price": "100"}],
        ),
        actor_id=BIDDER,
    ).proposal
    result = machine.counteroffer(
        opened.lineage_root_id, opened, ProposalUpdate(), OWNER, "Fifteen chars.."
    )

    assert opened.services_offered[0].currency == "USD"
    assert result.errors[0].code == "COMMENT_TOO_SHORT"
    assert result.errors[0].details["min_length"] == "20"
