"""Pricing rule model and validation of externally supplied rule payloads."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Annotated, Any, Literal, Optional

import pycountry
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    WrapSerializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from cejquote.exceptions import PricingRulesValidationError

ServiceType = Literal["direct", "pumped"]
Strength = Literal["100", "150", "200", "250", "300"]
PricingModel = Literal["per_m3", "fixed"]

SERVICE_TYPES: tuple[ServiceType, ...] = ("direct", "pumped")
STRENGTHS: tuple[Strength, ...] = ("100", "150", "200", "250", "300")

_LEGACY_PRICING_MODELS = {"fixed_per_load": "fixed"}


class RuleModel(BaseModel):
    """Immutable rule value; camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class VolumeTier(RuleModel):
    """Unit price applying from `min_m3` upward."""

    min_m3: float = Field(..., ge=0, strict=True, allow_inf_nan=False)
    price_per_m3_cents: int = Field(..., ge=0, strict=True)


def _check_tier_order(tiers: tuple[VolumeTier, ...]) -> tuple[VolumeTier, ...]:
    if not tiers:
        raise ValueError("tier sequence must not be empty")

    previous: Optional[float] = None
    for tier in tiers:
        if previous is not None:
            if tier.min_m3 == previous:
                raise ValueError(f"duplicate tier minM3 {tier.min_m3:g}")
            if tier.min_m3 < previous:
                raise ValueError("tiers must be sorted ascending by minM3")
        previous = tier.min_m3
    return tiers


def _freeze(value: dict[Any, Any]) -> Mapping[Any, Any]:
    return MappingProxyType(value)


def _thaw(value: Mapping[Any, Any], handler: Any) -> Any:
    return handler(dict(value))


TierSequence = Annotated[tuple[VolumeTier, ...], AfterValidator(_check_tier_order)]
MinimumM3 = Annotated[float, Field(gt=0, strict=True, allow_inf_nan=False)]
# Read-only views; rule sets are shared across requests.
StrengthTiers = Annotated[
    dict[Strength, TierSequence], AfterValidator(_freeze), WrapSerializer(_thaw)
]
ServiceTiers = Annotated[
    dict[ServiceType, StrengthTiers], AfterValidator(_freeze), WrapSerializer(_thaw)
]
ServiceMinimums = Annotated[
    dict[ServiceType, MinimumM3], AfterValidator(_freeze), WrapSerializer(_thaw)
]


class Additive(RuleModel):
    """Optional extra charged per cubic meter or once per order."""

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    description: Optional[str] = None
    active: bool = True
    pricing_model: PricingModel
    price_cents: int = Field(..., ge=0, strict=True)

    @field_validator("pricing_model", mode="before")
    @classmethod
    def normalize_legacy_model(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _LEGACY_PRICING_MODELS.get(v, v)
        return v


class PricingRules(RuleModel):
    """Versioned pricing configuration."""

    version: int = Field(..., gt=0, strict=True)
    last_updated: datetime
    vat_rate: float = Field(..., gt=0, le=1, strict=True, allow_inf_nan=False)
    currency: str = Field(default="MXN", pattern=r"^[A-Z]{3}$")
    min_order_quantity: ServiceMinimums
    base: ServiceTiers
    additives: tuple[Additive, ...] = ()

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate currency is a known ISO 4217 code."""
        valid_iso_codes = {c.alpha_3 for c in pycountry.currencies}
        if v not in valid_iso_codes:
            raise ValueError(
                f"Invalid ISO 4217 code: {v}. "
                f"See https://en.wikipedia.org/wiki/ISO_4217"
            )
        return v

    @field_validator("min_order_quantity")
    @classmethod
    def require_every_service_type(
        cls, v: Mapping[ServiceType, float]
    ) -> Mapping[ServiceType, float]:
        missing = [t for t in SERVICE_TYPES if t not in v]
        if missing:
            raise ValueError(f"missing minimum order for: {', '.join(missing)}")
        return v

    @field_validator("additives")
    @classmethod
    def require_unique_additive_ids(
        cls, v: tuple[Additive, ...]
    ) -> tuple[Additive, ...]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for additive in v:
            if additive.id in seen and additive.id not in duplicates:
                duplicates.append(additive.id)
            seen.add(additive.id)
        if duplicates:
            raise ValueError(f"duplicate additive id: {', '.join(duplicates)}")
        return v

    @model_validator(mode="after")
    def require_tiers_cover_minimum(self) -> "PricingRules":
        """Every billable volume must fall inside some tier."""
        uncovered = []
        for service_type, strengths in self.base.items():
            minimum = self.min_order_quantity[service_type]
            for strength, tiers in strengths.items():
                if tiers[0].min_m3 > minimum:
                    uncovered.append(
                        f"base.{service_type}.{strength} starts at "
                        f"{tiers[0].min_m3:g} m3, above minimum order {minimum:g} m3"
                    )
        if uncovered:
            raise ValueError("; ".join(uncovered))
        return self

    def tiers_for(self, service_type: str, strength: str) -> tuple[VolumeTier, ...]:
        """Return configured tiers for a pair, or an empty tuple."""
        return self.base.get(service_type, {}).get(strength, ())  # type: ignore[call-overload]

    def minimum_for(self, service_type: str) -> float:
        return self.min_order_quantity[service_type]  # type: ignore[index]

    def active_additive(self, additive_id: str) -> Optional[Additive]:
        for additive in self.additives:
            if additive.id == additive_id:
                return additive if additive.active else None
        return None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON shape stored remotely."""
        return self.model_dump(mode="json", by_alias=True)

    def __deepcopy__(self, memo: Optional[dict[int, Any]] = None) -> "PricingRules":
        # mappingproxy views cannot be deep-copied; rebuild from a plain dump
        return self.model_validate(self.model_dump())


@dataclass(frozen=True)
class RulesValidationResult:
    """Tagged outcome of validating an untrusted rule payload."""

    rules: Optional[PricingRules]
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.rules is not None and not self.errors


def _format_error(error: Mapping[str, Any]) -> str:
    path = ".".join(str(part) for part in error.get("loc", ()))
    message = str(error.get("msg", "invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{path}: {message}" if path else message


def validate_pricing_rules(payload: Any) -> RulesValidationResult:
    """Validate an arbitrary JSON-like value against the PricingRules shape."""
    if isinstance(payload, PricingRules):
        return RulesValidationResult(rules=payload)

    if not isinstance(payload, Mapping):
        return RulesValidationResult(
            rules=None,
            errors=(
                f"pricing rules must be a JSON object, got {type(payload).__name__}",
            ),
        )

    try:
        rules = PricingRules.model_validate(dict(payload))
    except ValidationError as exc:
        return RulesValidationResult(
            rules=None,
            errors=tuple(_format_error(e) for e in exc.errors()),
        )
    return RulesValidationResult(rules=rules)


def parse_pricing_rules(payload: Any) -> PricingRules:
    """Validate a rule payload, raising PricingRulesValidationError on failure."""
    result = validate_pricing_rules(payload)
    if not result.ok:
        raise PricingRulesValidationError(result.errors)
    assert result.rules is not None
    return result.rules
