"""Convert "how much concrete do I need" inputs into a billable volume."""

import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from cejquote.business import COFFERED_SPECS, SOLID_SLAB_FACTOR
from cejquote.exceptions import VolumeValidationError
from cejquote.models import CalculationDetails, CalculatorState, NormalizedVolume
from cejquote.rules import PricingRules

DEFAULT_STEP_M3 = 0.5
DEFAULT_MAX_WEB_ORDER_M3 = 500.0

# Inclusive input ranges accepted from the assisted-volume form
LENGTH_RANGE_M = (0.1, 1000.0)
AREA_RANGE_M2 = (1.0, 20000.0)
THICKNESS_RANGE_CM = (1.0, 200.0)

_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass(frozen=True)
class VolumeEstimate:
    """Raw requested volume plus how it was obtained."""

    requested_m3: float
    details: CalculationDetails


def parse_quantity(value: Any, field: str) -> float:
    """Parse a user-entered number, stripping whitespace and thousands separators."""
    if value is None or isinstance(value, bool):
        raise VolumeValidationError(field, f"{field} is required")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").replace(" ", "")
        if not cleaned:
            raise VolumeValidationError(field, f"{field} is required")
        if not _NUMBER_PATTERN.match(cleaned):
            raise VolumeValidationError(field, f"{field} must be a valid number")
        number = float(cleaned)
    else:
        raise VolumeValidationError(field, f"{field} must be a valid number")

    if not math.isfinite(number):
        raise VolumeValidationError(field, f"{field} must be finite")
    return number


def _parse_in_range(value: Any, field: str, bounds: tuple[float, float], unit: str) -> float:
    number = parse_quantity(value, field)
    low, high = bounds
    if number < low:
        raise VolumeValidationError(field, f"{field} must be at least {low:g} {unit}")
    if number > high:
        raise VolumeValidationError(field, f"{field} must be at most {high:g} {unit}")
    return number


def known_volume(m3: Any, *, max_m3: float = DEFAULT_MAX_WEB_ORDER_M3) -> VolumeEstimate:
    """Mode A: the customer already knows the volume."""
    requested = parse_quantity(m3, "m3")
    if requested <= 0:
        raise VolumeValidationError("m3", "m3 must be greater than 0")
    if requested > max_m3:
        raise VolumeValidationError(
            "m3",
            f"m3 must be at most {max_m3:g} for web orders; "
            "larger orders are handled by a sales representative",
        )
    return VolumeEstimate(
        requested_m3=requested,
        details=CalculationDetails(formula="Volumen ingresado manualmente"),
    )


def _slab_volume(
    area_m2: float, thickness_cm: Optional[float], coffered_size: Optional[str]
) -> VolumeEstimate:
    if coffered_size is not None:
        spec = COFFERED_SPECS.get(coffered_size)  # type: ignore[call-overload]
        if spec is None:
            raise VolumeValidationError(
                "cofferedSize", f"unknown coffered size: {coffered_size}"
            )
        return VolumeEstimate(
            requested_m3=area_m2 * spec.coefficient,
            details=CalculationDetails(
                formula=f"{area_m2:.2f} m² × {spec.coefficient:.3f} (Coeficiente)",
                factor_used=spec.coefficient,
                effective_thickness_cm=spec.total_thickness_cm,
            ),
        )

    assert thickness_cm is not None
    thickness_m = thickness_cm / 100
    return VolumeEstimate(
        requested_m3=area_m2 * thickness_m * SOLID_SLAB_FACTOR,
        details=CalculationDetails(
            formula=f"{area_m2:.2f} m² × {thickness_m:.2f} m (Grosor)",
            factor_used=SOLID_SLAB_FACTOR,
            effective_thickness_cm=thickness_cm,
        ),
    )


def dimensions_volume(
    length_m: Any,
    width_m: Any,
    thickness_cm: Any = None,
    *,
    coffered_size: Optional[str] = None,
) -> VolumeEstimate:
    """Mode B: slab volume from length × width × thickness.

    For coffered slabs the thickness is implied by the coffer size and the
    entered value is ignored.
    """
    length = _parse_in_range(length_m, "length", LENGTH_RANGE_M, "m")
    width = _parse_in_range(width_m, "width", LENGTH_RANGE_M, "m")
    thickness = None
    if coffered_size is None:
        thickness = _parse_in_range(thickness_cm, "thickness", THICKNESS_RANGE_CM, "cm")
    return _slab_volume(length * width, thickness, coffered_size)


def area_volume(
    area_m2: Any,
    thickness_cm: Any = None,
    *,
    coffered_size: Optional[str] = None,
) -> VolumeEstimate:
    """Mode B: slab volume from a known area and thickness."""
    area = _parse_in_range(area_m2, "area", AREA_RANGE_M2, "m²")
    thickness = None
    if coffered_size is None:
        thickness = _parse_in_range(thickness_cm, "thickness", THICKNESS_RANGE_CM, "cm")
    return _slab_volume(area, thickness, coffered_size)


def estimate_from_state(
    state: CalculatorState, *, max_m3: float = DEFAULT_MAX_WEB_ORDER_M3
) -> VolumeEstimate:
    """Dispatch a calculator draft to known or assisted volume."""
    if state.mode == "knownM3":
        return known_volume(state.m3, max_m3=max_m3)

    coffered_size = state.coffered_size if state.has_coffered == "yes" else None
    if state.has_coffered == "yes" and coffered_size is None:
        raise VolumeValidationError("cofferedSize", "select a coffered slab size")

    if state.volume_mode == "dimensions":
        estimate = dimensions_volume(
            state.length,
            state.width,
            state.thickness_by_dims,
            coffered_size=coffered_size,
        )
    else:
        estimate = area_volume(
            state.area, state.thickness_by_area, coffered_size=coffered_size
        )

    if estimate.requested_m3 > max_m3:
        raise VolumeValidationError(
            "m3",
            f"estimated volume {estimate.requested_m3:.2f} m3 exceeds the web "
            f"order limit of {max_m3:g} m3",
        )
    return estimate


def round_up_to_step(value: float, step: float = DEFAULT_STEP_M3) -> float:
    """Round up to the next multiple of `step`; exact multiples are kept."""
    if step <= 0:
        raise ValueError("step must be positive")
    if not math.isfinite(value) or value <= 0:
        raise ValueError("value must be a positive finite number")
    # Tolerance keeps 2.0000000001 (float noise) from jumping to 2.5
    return max(math.ceil(value / step - 1e-9), 1) * step


def normalize_volume(
    requested_m3: float,
    service_type: str,
    rules: PricingRules,
    *,
    step: float = DEFAULT_STEP_M3,
) -> NormalizedVolume:
    """Apply rounding and the minimum order for `service_type`."""
    if isinstance(requested_m3, bool) or not math.isfinite(requested_m3):
        raise VolumeValidationError("m3", "m3 must be a finite number")
    if requested_m3 <= 0:
        raise VolumeValidationError("m3", "m3 must be greater than 0")

    try:
        minimum = rules.minimum_for(service_type)
    except KeyError:
        raise VolumeValidationError(
            "type", f"unknown service type: {service_type}", code="MISSING_SELECTION"
        ) from None

    rounded = round_up_to_step(requested_m3, step)
    billed = max(rounded, minimum)
    return NormalizedVolume(
        requested_m3=requested_m3,
        rounded_m3=rounded,
        min_m3_for_type=minimum,
        billed_m3=billed,
        is_below_minimum=requested_m3 < minimum,
    )
