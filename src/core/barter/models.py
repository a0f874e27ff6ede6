"""
FILE: src/core/barter/models.py
Data model for barter/hybrid negotiation and settlement.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

SettlementRule = Literal["EQUAL_VALUE_ONLY", "ALLOW_DIFFERENCE_WITH_CASH", "ACCEPT_AS_IS"]
SETTLEMENT_RULES: tuple[str, ...] = (
    "EQUAL_VALUE_ONLY",
    "ALLOW_DIFFERENCE_WITH_CASH",
    "ACCEPT_AS_IS",
)

ProposalStatus = Literal["SUBMITTED", "NEGOTIATION", "ACCEPTED", "REJECTED"]
NegotiationStatus = Literal["INITIAL", "COUNTEROFFER", "REVISION", "ACCEPTED", "REJECTED"]
NegotiationAction = Literal["CREATED", "COUNTEROFFER", "REVISION", "ACCEPTED", "REJECTED"]
CashDirection = Literal["REQUESTER_PAYS", "OFFERER_PAYS"]
EngineErrorKind = Literal["STRUCTURAL", "SETTLEMENT_VIOLATION", "NEGOTIATION_STATE", "LINEAGE"]

TERMINAL_STATUSES = {"ACCEPTED", "REJECTED"}

DEFAULT_CURRENCY = "SAR"


class ServiceItem(BaseModel):
    item_id: str = Field(description="Service item identifier.", examples=["si_3f9a2c71"])
    service_name: str = Field(
        default="",
        description="Short service name.",
        examples=["Structural design review"],
    )
    description: str = Field(default="", description="Free-text service description.")
    unit_of_measure: str = Field(
        default="unit",
        description="Unit the quantity is expressed in.",
        examples=["hour", "unit"],
    )
    quantity: Decimal = Field(description="Quantity of units supplied.", examples=["40"])
    unit_price: Decimal = Field(description="Reference price per unit.", examples=["250"])
    total_reference_value: Decimal = Field(
        description="Reference value of the line (quantity x unit price).",
        examples=["10000"],
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="ISO currency code of the reference value.",
        examples=["SAR"],
    )
    category: Optional[str] = Field(default=None, description="Optional service category.")


class EngineError(BaseModel):
    kind: EngineErrorKind = Field(
        description="Error taxonomy bucket.",
        examples=["SETTLEMENT_VIOLATION"],
    )
    code: str = Field(description="Stable error code.", examples=["CASH_COMPONENT_MISMATCH"])
    message: str = Field(
        description="Human-readable error message.",
        examples=["Cash component (19000.00) does not match value difference (20000.00)"],
    )
    details: Dict[str, str] = Field(
        default_factory=dict,
        description="Deterministic structured details for the error.",
    )


class EquivalenceResult(BaseModel):
    total_offered: Decimal = Field(description="Sum of offered basket reference values.")
    total_requested: Decimal = Field(description="Sum of requested basket reference values.")
    balance: Decimal = Field(
        description="Signed difference, offered minus requested.",
        examples=["20000"],
    )
    absolute_balance: Decimal = Field(description="Absolute value of balance.")
    percentage_difference: Decimal = Field(
        description="Absolute balance as a percentage of the average basket total.",
        examples=["18.18"],
    )
    is_equal: bool = Field(description="Whether baskets are equal within tolerance.")
    offered_by_currency: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="Offered subtotals keyed by currency.",
    )
    requested_by_currency: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="Requested subtotals keyed by currency.",
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="Reporting currency, taken from the first offered item.",
    )
    currency_mismatch: bool = Field(
        default=False,
        description="True when more than one currency appears across both baskets.",
    )


class EqualSettlement(BaseModel):
    outcome: Literal["EQUAL"] = Field(default="EQUAL", description="Outcome discriminator.")
    rule: Optional[str] = Field(default=None, description="Settlement rule evaluated.")
    cash_component: Decimal = Field(default=Decimal("0"), description="Always zero.")
    requires_consent: Literal[False] = Field(default=False)
    explicit_waiver: Literal[False] = Field(default=False)


class CashBalancedSettlement(BaseModel):
    outcome: Literal["CASH_BALANCED"] = Field(
        default="CASH_BALANCED", description="Outcome discriminator."
    )
    rule: Literal["ALLOW_DIFFERENCE_WITH_CASH"] = Field(default="ALLOW_DIFFERENCE_WITH_CASH")
    cash_component: Decimal = Field(
        description="Cash amount that balances the baskets.",
        examples=["20000"],
    )
    cash_direction: CashDirection = Field(
        description="Which side pays the cash component.",
        examples=["REQUESTER_PAYS"],
    )
    cash_pending: bool = Field(
        default=False,
        description="True when no cash amount was supplied and cash_component is advisory.",
    )
    requires_consent: Literal[True] = Field(default=True)
    explicit_waiver: Literal[False] = Field(default=False)


class WaivedSettlement(BaseModel):
    outcome: Literal["WAIVED"] = Field(default="WAIVED", description="Outcome discriminator.")
    rule: Literal["ACCEPT_AS_IS"] = Field(default="ACCEPT_AS_IS")
    waived_amount: Decimal = Field(
        description="Value difference both parties agree to forgo.",
        examples=["20000"],
    )
    requires_consent: Literal[True] = Field(default=True)
    explicit_waiver: Literal[True] = Field(default=True)


SettlementOutcome = Annotated[
    Union[EqualSettlement, CashBalancedSettlement, WaivedSettlement],
    Field(discriminator="outcome"),
]


class SettlementDecision(BaseModel):
    valid: bool = Field(description="Whether the settlement rule is satisfied.")
    errors: List[EngineError] = Field(default_factory=list)
    settlement: Optional[SettlementOutcome] = Field(
        default=None,
        description="Settlement outcome when valid.",
    )


class ProposalVersionSnapshot(BaseModel):
    version: int = Field(description="Version number the snapshot represents.", examples=[1])
    proposal_id: str = Field(description="Identity of the snapshotted version.")
    proposal_data: Dict[str, Any] = Field(
        description="JSON dump of the version, without its history and thread.",
    )
    snapshot_hash: str = Field(description="Canonical hash of proposal_data.")
    created_at: datetime = Field(description="When the snapshotted version was written.")
    created_by: str = Field(description="Actor that authored the snapshotted version.")


class NegotiationThreadEntry(BaseModel):
    version: int = Field(description="Version produced by the transition.", examples=[2])
    action: NegotiationAction = Field(description="Transition action.", examples=["COUNTEROFFER"])
    actor_id: str = Field(description="Actor that performed the transition.")
    changed_fields: List[str] = Field(
        default_factory=list,
        description="Watched fields that differ from the base version.",
        examples=[["services_offered", "cash_component"]],
    )
    timestamp: datetime = Field(description="UTC time of the transition.")
    notes: Optional[str] = Field(default=None, description="Optional negotiation notes.")
    comment: Optional[str] = Field(default=None, description="Mandatory edit comment.")


class BarterProposal(BaseModel):
    id: str = Field(description="Identity of this version.", examples=["bp_5c2e91d0a4f3"])
    lineage_root_id: str = Field(
        description="Identity of version 1 of the lineage.",
        examples=["bp_5c2e91d0a4f3"],
    )
    version: int = Field(ge=1, description="Version number within the lineage.", examples=[1])
    owner_id: str = Field(description="Opportunity owner.", examples=["company_owner"])
    bidder_id: str = Field(description="Party that opened the lineage.", examples=["company_b"])
    submitted_by: str = Field(description="Party that authored this version.")
    opportunity_id: Optional[str] = Field(default=None, description="Related opportunity.")
    status: ProposalStatus = Field(default="SUBMITTED")
    negotiation_status: NegotiationStatus = Field(default="INITIAL")
    services_offered: List[ServiceItem] = Field(default_factory=list)
    services_requested: List[ServiceItem] = Field(default_factory=list)
    settlement_rule: Optional[SettlementRule] = Field(default=None)
    cash_component: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Cash top-up offered to balance the baskets.",
    )
    explicit_waiver: bool = Field(
        default=False,
        description="Explicit consent to waive any value difference.",
    )
    total: Optional[Decimal] = Field(default=None, description="Headline monetary total.")
    currency: Optional[str] = Field(default=None, description="Headline currency.")
    timeline: Dict[str, Any] = Field(default_factory=dict)
    terms: Dict[str, Any] = Field(default_factory=dict)
    payment_details: Dict[str, Any] = Field(default_factory=dict)
    exchange_schedule: Optional[str] = Field(default=None)
    quality_standards: Optional[str] = Field(default=None)
    dispute_resolution: Optional[str] = Field(default=None)
    comment: Optional[str] = Field(default=None, description="Comment for this version.")
    version_history: List[ProposalVersionSnapshot] = Field(default_factory=list)
    negotiation_thread: List[NegotiationThreadEntry] = Field(default_factory=list)
    created_at: datetime = Field(description="Lineage creation time.")
    updated_at: datetime = Field(description="Time this version was written.")


class BarterProposalDraft(BaseModel):
    """Caller input for version 1; baskets are raw items run through the normalizer."""

    owner_id: str = Field(description="Opportunity owner.")
    opportunity_id: Optional[str] = Field(default=None)
    services_offered: List[Any] = Field(default_factory=list)
    services_requested: List[Any] = Field(default_factory=list)
    settlement_rule: Optional[SettlementRule] = Field(default=None)
    cash_component: Optional[Decimal] = Field(default=None, ge=0)
    explicit_waiver: bool = Field(default=False)
    total: Optional[Decimal] = Field(default=None)
    currency: Optional[str] = Field(default=None)
    timeline: Dict[str, Any] = Field(default_factory=dict)
    terms: Dict[str, Any] = Field(default_factory=dict)
    payment_details: Dict[str, Any] = Field(default_factory=dict)
    exchange_schedule: Optional[str] = Field(default=None)
    quality_standards: Optional[str] = Field(default=None)
    dispute_resolution: Optional[str] = Field(default=None)
    comment: Optional[str] = Field(default=None)


class ProposalUpdate(BaseModel):
    """
    Partial update; only fields explicitly set are merged.

    Status fields are not accepted here: they change only through negotiation
    transitions.
    """

    model_config = ConfigDict(extra="forbid")

    services_offered: Optional[List[Any]] = None
    services_requested: Optional[List[Any]] = None
    settlement_rule: Optional[SettlementRule] = None
    cash_component: Optional[Decimal] = Field(default=None, ge=0)
    explicit_waiver: Optional[bool] = None
    total: Optional[Decimal] = None
    currency: Optional[str] = None
    timeline: Optional[Dict[str, Any]] = None
    terms: Optional[Dict[str, Any]] = None
    payment_details: Optional[Dict[str, Any]] = None
    exchange_schedule: Optional[str] = None
    quality_standards: Optional[str] = None
    dispute_resolution: Optional[str] = None


class StatusChange(BaseModel):
    """Status fields a transition sets on the version it writes."""

    status: Optional[ProposalStatus] = None
    negotiation_status: Optional[NegotiationStatus] = None


class ValidationResult(BaseModel):
    valid: bool = Field(description="True when no structural or settlement error was found.")
    errors: List[EngineError] = Field(default_factory=list)
    equivalence: Optional[EquivalenceResult] = Field(default=None)
    settlement: Optional[SettlementOutcome] = Field(default=None)


class BarterAgreementTerms(BaseModel):
    """
    Agreement terms handed to contract creation.

    Frozen and hashed. Baskets are tuples; ``terms`` is a caller-supplied dict and
    is only shallowly frozen, so ``terms_hash`` is the reference for tamper checks.
    """

    model_config = ConfigDict(frozen=True)

    agreement_id: str = Field(
        description="Deterministic agreement id.",
        examples=["ba_1f0c9e3b7a22"],
    )
    agreement_type: Literal["BARTER", "HYBRID"] = Field(
        description="HYBRID when a cash component balances the exchange.",
    )
    lineage_root_id: str
    proposal_id: str
    version: int
    owner_id: str
    bidder_id: str
    services_offered: Tuple[ServiceItem, ...]
    services_requested: Tuple[ServiceItem, ...]
    total_offered: Decimal
    total_requested: Decimal
    balance: Decimal
    currency: str
    settlement_rule: Optional[str]
    settlement: SettlementOutcome
    terms: Dict[str, Any] = Field(default_factory=dict)
    exchange_schedule: str
    quality_standards: str
    dispute_resolution: str
    terms_hash: str = Field(description="Canonical hash of the terms payload.")


class VersionResult(BaseModel):
    success: bool
    proposal: Optional[BarterProposal] = None
    errors: List[EngineError] = Field(default_factory=list)


class TransitionResult(BaseModel):
    success: bool = Field(description="Whether the transition was committed.")
    proposal: Optional[BarterProposal] = Field(
        default=None,
        description="New version written by the transition.",
    )
    errors: List[EngineError] = Field(default_factory=list)
    validation: Optional[ValidationResult] = Field(
        default=None,
        description="Validator output when settlement-bearing data was checked.",
    )
    agreement: Optional[BarterAgreementTerms] = Field(
        default=None,
        description="Agreement terms generated on acceptance.",
    )


class FieldChange(BaseModel):
    field: str
    category: Literal["pricing", "timeline", "terms", "services", "payment", "other"]
    from_value: Any = None
    to_value: Any = None


class VersionComparison(BaseModel):
    from_version: int
    to_version: int
    changes: Dict[str, FieldChange] = Field(default_factory=dict)
    change_count: int = 0
    summary: str = Field(examples=["3 field(s) changed between version 2 and 3"])


class CashComponent(BaseModel):
    amount: Decimal = Field(description="Cash amount.", examples=["50000"])
    currency: str = Field(default=DEFAULT_CURRENCY, description="Cash currency code.")


class HybridProposal(BaseModel):
    cash_component: Optional[CashComponent] = Field(default=None)
    service_components: List[Any] = Field(default_factory=list)
    payment_terms: Optional[str] = Field(default=None)
    payment_schedule: List[Dict[str, Any]] = Field(default_factory=list)
    terms: Dict[str, Any] = Field(default_factory=dict)
    timeline: Dict[str, Any] = Field(default_factory=dict)
    deliverables: List[str] = Field(default_factory=list)


class HybridComposition(BaseModel):
    cash_component: CashComponent
    service_components: List[ServiceItem] = Field(default_factory=list)
    service_total: Decimal
    service_by_currency: Dict[str, Decimal] = Field(default_factory=dict)
    total_value: Decimal
    currency: str
    currency_mismatch: bool
    cash_percentage: Decimal
    service_percentage: Decimal


class HybridValidationResult(BaseModel):
    valid: bool
    errors: List[EngineError] = Field(default_factory=list)
    composition: Optional[HybridComposition] = None


class HybridContractTerms(BaseModel):
    model_config = ConfigDict(frozen=True)

    agreement_type: Literal["HYBRID"] = "HYBRID"
    cash_amount: Decimal
    cash_currency: str
    payment_terms: str
    payment_schedule: List[Dict[str, Any]] = Field(default_factory=list)
    service_components: List[ServiceItem] = Field(default_factory=list)
    service_total: Decimal
    total_value: Decimal
    currency: str
    cash_percentage: Decimal
    service_percentage: Decimal
    terms: Dict[str, Any] = Field(default_factory=dict)
    timeline: Dict[str, Any] = Field(default_factory=dict)
    deliverables: List[str] = Field(default_factory=list)
