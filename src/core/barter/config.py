import os
from typing import Optional, cast

from pydantic import BaseModel, Field

from src.core.barter.models import DEFAULT_CURRENCY
from src.core.barter.negotiation import NegotiationStateMachine
from src.core.barter.repository import LineageRepository
from src.core.barter.service_items import StandardServiceItemNormalizer
from src.core.barter.validation import BarterProposalValidator
from src.core.barter.versioning import MIN_COMMENT_LENGTH, ProposalVersionStore
from src.infrastructure.barter import InMemoryLineageRepository


class NegotiationEngineSettings(BaseModel):
    store_backend: str = Field(
        default="IN_MEMORY",
        description="Lineage repository backend. Only IN_MEMORY ships with the engine.",
        examples=["IN_MEMORY"],
    )
    min_comment_length: int = Field(
        default=MIN_COMMENT_LENGTH,
        ge=1,
        description="Minimum trimmed length of the comment required on every new version.",
        examples=[10],
    )
    default_currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="Currency assigned to raw service items that carry none.",
        examples=["SAR"],
    )


def negotiation_store_backend_name() -> str:
    backend = os.getenv("NEGOTIATION_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend != "IN_MEMORY":
        raise RuntimeError("NEGOTIATION_STORE_BACKEND_UNSUPPORTED")
    return backend


def negotiation_min_comment_length() -> int:
    raw = os.getenv("NEGOTIATION_MIN_COMMENT_LENGTH")
    if raw is None or not raw.strip():
        return MIN_COMMENT_LENGTH
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise RuntimeError("NEGOTIATION_MIN_COMMENT_LENGTH_INVALID") from exc
    if value < 1:
        raise RuntimeError("NEGOTIATION_MIN_COMMENT_LENGTH_INVALID")
    return value


def negotiation_default_currency() -> str:
    return os.getenv("NEGOTIATION_DEFAULT_CURRENCY", DEFAULT_CURRENCY).strip().upper() or (
        DEFAULT_CURRENCY
    )


def load_settings() -> NegotiationEngineSettings:
    return NegotiationEngineSettings(
        store_backend=negotiation_store_backend_name(),
        min_comment_length=negotiation_min_comment_length(),
        default_currency=negotiation_default_currency(),
    )


def build_repository(settings: Optional[NegotiationEngineSettings] = None) -> LineageRepository:
    settings = settings or load_settings()
    if settings.store_backend != "IN_MEMORY":
        raise RuntimeError("NEGOTIATION_STORE_BACKEND_UNSUPPORTED")
    return cast(LineageRepository, InMemoryLineageRepository())


def build_version_store(
    settings: Optional[NegotiationEngineSettings] = None,
    *,
    repository: Optional[LineageRepository] = None,
) -> ProposalVersionStore:
    settings = settings or load_settings()
    return ProposalVersionStore(
        repository=repository or build_repository(settings),
        normalizer=StandardServiceItemNormalizer(default_currency=settings.default_currency),
        min_comment_length=settings.min_comment_length,
    )


def build_state_machine(
    settings: Optional[NegotiationEngineSettings] = None,
    *,
    repository: Optional[LineageRepository] = None,
) -> NegotiationStateMachine:
    settings = settings or load_settings()
    normalizer = StandardServiceItemNormalizer(default_currency=settings.default_currency)
    return NegotiationStateMachine(
        store=build_version_store(settings, repository=repository),
        validator=BarterProposalValidator(normalizer=normalizer),
    )
