"""Custom exceptions for API contract errors."""

from typing import Any, Dict, Iterable, Optional


class ContractError(Exception):
    """Error that maps to a stable API error payload."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class VolumeValidationError(ContractError):
    """User-supplied volume or geometry input was rejected."""

    def __init__(self, field: str, message: str, *, code: str = "INVALID_VOLUME") -> None:
        super().__init__(
            code,
            message,
            status_code=422,
            details={"field": field},
        )
        self.field = field


class PricingNotConfiguredError(ContractError):
    """No price tier covers the requested (service type, strength, volume)."""

    def __init__(self, service_type: str, strength: str, billed_m3: float) -> None:
        super().__init__(
            "PRICING_NOT_CONFIGURED",
            f"No price tier configured for {service_type} f'c {strength} "
            f"at {billed_m3:g} m3",
            status_code=409,
            details={
                "service_type": service_type,
                "strength": strength,
                "billed_m3": billed_m3,
            },
        )


class PricingRulesValidationError(ContractError):
    """A pricing rule payload failed schema validation."""

    def __init__(self, reasons: Iterable[str]) -> None:
        self.reasons = tuple(reasons)
        super().__init__(
            "INVALID_PRICING_RULES",
            "Pricing rules validation failed:\n"
            + "\n".join(f"  - {r}" for r in self.reasons),
            status_code=500,
            details={"reasons": list(self.reasons)},
        )
