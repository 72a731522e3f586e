"""Pydantic data models for quotes, calculator state, carts and orders."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from cejquote.business import CofferedSize, WorkTypeId
from cejquote.rules import ServiceType, Strength


class CamelModel(BaseModel):
    """Model serialized with camelCase keys for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class NormalizedVolume(FrozenCamelModel):
    """Requested volume after rounding and minimum-order enforcement."""

    requested_m3: float
    rounded_m3: float
    min_m3_for_type: float
    billed_m3: float
    is_below_minimum: bool


class QuoteLineItem(FrozenCamelModel):
    label: str
    value: int = Field(..., description="Amount in cents")
    type: Literal["base", "additive", "surcharge"]


class CalculationDetails(FrozenCamelModel):
    """How an assisted volume was derived, for display."""

    formula: str
    factor_used: Optional[float] = None
    effective_thickness_cm: Optional[float] = None


class QuoteWarning(FrozenCamelModel):
    """Disclosure that billed volume differs from the requested volume."""

    code: Literal["BELOW_MINIMUM", "ROUNDING_POLICY"]
    message: str
    requested_m3: float
    billed_m3: float
    min_m3: Optional[float] = None


class PricingSnapshot(FrozenCamelModel):
    """Identity of the rule set a quote was priced with."""

    rules_version: int
    currency: str
    vat_rate: float


class QuoteBreakdown(FrozenCamelModel):
    """Itemized quote. All money values are integer cents."""

    volume: NormalizedVolume
    strength: Strength
    concrete_type: ServiceType
    unit_price_per_m3: int
    base_subtotal: int
    additives_subtotal: int
    additive_ids: tuple[str, ...] = Field(
        (), description="Additives actually charged, in catalog order"
    )
    subtotal: int
    vat: int
    total: int
    breakdown_lines: tuple[QuoteLineItem, ...]
    warning: Optional[QuoteWarning] = None
    calculation_details: Optional[CalculationDetails] = None
    pricing_snapshot: PricingSnapshot


class CalculatorState(FrozenCamelModel):
    """Calculator draft exactly as entered by the user."""

    mode: Literal["knownM3", "assistM3"] = "knownM3"
    volume_mode: Literal["dimensions", "area"] = "dimensions"
    strength: Optional[Strength] = None
    type: Optional[ServiceType] = None
    m3: str = ""
    work_type: Optional[WorkTypeId] = None
    length: str = ""
    width: str = ""
    thickness_by_dims: str = "10"
    area: str = ""
    thickness_by_area: str = "10"
    has_coffered: Literal["yes", "no"] = "no"
    coffered_size: Optional[CofferedSize] = "7"
    additives: tuple[str, ...] = ()

    @field_validator(
        "m3",
        "length",
        "width",
        "thickness_by_dims",
        "area",
        "thickness_by_area",
        mode="before",
    )
    @classmethod
    def accept_numbers(cls, v: Any) -> Any:
        """Clients may post numbers; the normalizer owns numeric parsing."""
        if v is None:
            return ""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return repr(v) if isinstance(v, float) else str(v)
        return v


DEFAULT_CALCULATOR_STATE = CalculatorState()


class CustomerInfo(FrozenCamelModel):
    """Contact record attached to a lead."""

    name: str = Field(..., min_length=3)
    phone: str
    visitor_id: Optional[str] = None
    email: Optional[str] = Field(None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if len(v) < 3:
            raise ValueError("name is too short")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        digits = "".join(ch for ch in v if ch.isdigit())
        if len(digits) < 10:
            raise ValueError("phone must contain at least 10 digits")
        return digits


class CartItem(FrozenCamelModel):
    """Cart line: a frozen copy of the inputs and the priced result."""

    id: str
    timestamp: datetime
    inputs: CalculatorState
    results: QuoteBreakdown
    label: str
    customer: Optional[CustomerInfo] = None
    folio: Optional[str] = None


class OrderItem(FrozenCamelModel):
    id: str
    label: str
    volume: float = Field(..., gt=0, description="Billed volume in m3")
    service: ServiceType
    subtotal: int = Field(..., ge=0)
    additives: tuple[str, ...] = ()


class OrderFinancials(FrozenCamelModel):
    subtotal: int = Field(..., ge=0)
    vat: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    currency: str = Field(..., pattern=r"^[A-Z]{3}$")


class OrderMetadata(FrozenCamelModel):
    source: Literal["web_calculator"] = "web_calculator"
    pricing_version: Optional[int] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    user_agent: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None


class OrderPayload(FrozenCamelModel):
    """Finalized order handed to the lead submission collaborator."""

    folio: str = Field(..., min_length=1)
    customer: CustomerInfo
    items: tuple[OrderItem, ...] = Field(..., min_length=1)
    financials: OrderFinancials
    breakdown_lines: tuple[QuoteLineItem, ...] = ()
    metadata: OrderMetadata = Field(default_factory=OrderMetadata)


class OrderRequest(CamelModel):
    """Calculator draft plus contact details, priced into an order payload."""

    draft: CalculatorState
    customer: CustomerInfo
    metadata: OrderMetadata = Field(default_factory=OrderMetadata)


class LeadSubmission(CamelModel):
    """Request payload for lead submission."""

    quote: OrderPayload
    visitor_id: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    privacy_accepted: Literal[True]


class LeadSubmissionResult(CamelModel):
    """Outcome of a lead submission; persistence failures still succeed."""

    success: bool
    id: Optional[str] = None
    folio: Optional[str] = None
    warning: Optional[
        Literal["db_not_configured", "db_insert_failed", "server_exception"]
    ] = None


class FormattedTotals(CamelModel):
    unit_price_per_m3: str
    subtotal: str
    vat: str
    total: str


class QuoteResponse(CamelModel):
    """Response payload for the quote endpoint."""

    quote: QuoteBreakdown
    formatted: FormattedTotals
    legend: str


class PricingRulesResponse(CamelModel):
    source: Literal["remote", "fallback"]
    rules: dict[str, Any]
