"""Quote calculator: normalized volume + pricing rules -> itemized breakdown."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from cejquote.business import SERVICE_LABELS
from cejquote.exceptions import PricingNotConfiguredError, VolumeValidationError
from cejquote.models import (
    CalculationDetails,
    CalculatorState,
    NormalizedVolume,
    PricingSnapshot,
    QuoteBreakdown,
    QuoteLineItem,
    QuoteWarning,
)
from cejquote.rules import PricingRules, VolumeTier
from cejquote.volume import (
    DEFAULT_MAX_WEB_ORDER_M3,
    DEFAULT_STEP_M3,
    estimate_from_state,
    normalize_volume,
)

logger = logging.getLogger(__name__)


def _to_decimal(value: float | int) -> Decimal:
    return Decimal(str(value))


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole cent, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def select_tier(
    tiers: tuple[VolumeTier, ...],
    billed_m3: float,
    *,
    service_type: str,
    strength: str,
) -> VolumeTier:
    """Pick the tier with the greatest `min_m3` not above `billed_m3`."""
    selected: Optional[VolumeTier] = None
    for tier in tiers:
        if tier.min_m3 <= billed_m3 and (selected is None or tier.min_m3 > selected.min_m3):
            selected = tier
    if selected is None:
        raise PricingNotConfiguredError(service_type, strength, billed_m3)
    return selected


def _warning_for(volume: NormalizedVolume) -> Optional[QuoteWarning]:
    if volume.is_below_minimum:
        return QuoteWarning(
            code="BELOW_MINIMUM",
            message=(
                f"Pedido mínimo de {volume.min_m3_for_type:g} m³ para este servicio; "
                f"se cotizan {volume.billed_m3:g} m³ en lugar de "
                f"{volume.requested_m3:.2f} m³."
            ),
            requested_m3=volume.requested_m3,
            billed_m3=volume.billed_m3,
            min_m3=volume.min_m3_for_type,
        )
    if volume.billed_m3 != volume.requested_m3:
        return QuoteWarning(
            code="ROUNDING_POLICY",
            message=(
                f"El volumen se redondea hacia arriba: se cotizan "
                f"{volume.billed_m3:g} m³ para {volume.requested_m3:.2f} m³ solicitados."
            ),
            requested_m3=volume.requested_m3,
            billed_m3=volume.billed_m3,
        )
    return None


def calculate_quote(
    volume: NormalizedVolume,
    strength: str,
    service_type: str,
    additive_ids: Iterable[str],
    rules: PricingRules,
    *,
    details: Optional[CalculationDetails] = None,
) -> QuoteBreakdown:
    """Price a normalized volume against a rule set.

    Deterministic: the result depends only on the arguments. Unknown or
    inactive additive ids are skipped; a missing price tier raises
    PricingNotConfiguredError rather than pricing at zero.
    """
    billed = _to_decimal(volume.billed_m3)
    tier = select_tier(
        rules.tiers_for(service_type, strength),
        volume.billed_m3,
        service_type=service_type,
        strength=strength,
    )
    unit_price = tier.price_per_m3_cents
    base_subtotal = round_half_up(billed * unit_price)

    service_label = SERVICE_LABELS.get(service_type, service_type)  # type: ignore[call-overload]
    lines = [
        QuoteLineItem(
            label=f"Concreto {service_label} f'c {strength} - {volume.billed_m3:g} m³",
            value=base_subtotal,
            type="base",
        )
    ]

    selected: list[str] = []
    for additive_id in additive_ids:
        if additive_id not in selected:
            selected.append(additive_id)

    additives_subtotal = 0
    charged: set[str] = set()
    for additive_id in selected:
        if rules.active_additive(additive_id) is None:
            logger.warning(
                "Ignoring unknown or inactive additive: id=%s rules_version=%s",
                additive_id,
                rules.version,
            )
        else:
            charged.add(additive_id)

    charged_ids: list[str] = []
    # Additive lines follow catalog order, not selection order
    for additive in rules.additives:
        if additive.id not in charged:
            continue
        if additive.pricing_model == "per_m3":
            amount = round_half_up(billed * additive.price_cents)
            label = f"{additive.label} ({volume.billed_m3:g} m³)"
        else:
            amount = additive.price_cents
            label = additive.label
        additives_subtotal += amount
        lines.append(QuoteLineItem(label=label, value=amount, type="additive"))
        charged_ids.append(additive.id)

    subtotal = base_subtotal + additives_subtotal
    vat = round_half_up(Decimal(subtotal) * _to_decimal(rules.vat_rate))

    return QuoteBreakdown(
        volume=volume,
        strength=strength,  # type: ignore[arg-type]
        concrete_type=service_type,  # type: ignore[arg-type]
        unit_price_per_m3=unit_price,
        base_subtotal=base_subtotal,
        additives_subtotal=additives_subtotal,
        additive_ids=tuple(charged_ids),
        subtotal=subtotal,
        vat=vat,
        total=subtotal + vat,
        breakdown_lines=tuple(lines),
        warning=_warning_for(volume),
        calculation_details=details,
        pricing_snapshot=PricingSnapshot(
            rules_version=rules.version,
            currency=rules.currency,
            vat_rate=rules.vat_rate,
        ),
    )


def quote_from_state(
    state: CalculatorState,
    rules: PricingRules,
    *,
    step: float = DEFAULT_STEP_M3,
    max_m3: float = DEFAULT_MAX_WEB_ORDER_M3,
) -> QuoteBreakdown:
    """Estimate, normalize and price a calculator draft."""
    if state.type is None:
        raise VolumeValidationError("type", "select a service type", code="MISSING_SELECTION")
    if state.strength is None:
        raise VolumeValidationError(
            "strength", "select a concrete strength", code="MISSING_SELECTION"
        )

    estimate = estimate_from_state(state, max_m3=max_m3)
    volume = normalize_volume(estimate.requested_m3, state.type, rules, step=step)
    return calculate_quote(
        volume,
        state.strength,
        state.type,
        state.additives,
        rules,
        details=estimate.details,
    )


def format_cents(cents: int, currency: str = "MXN") -> str:
    """Format integer cents for display, e.g. 1438980 -> '$14,389.80'."""
    amount = Decimal(cents) / 100
    sign = "-" if cents < 0 else ""
    symbol = "$" if currency in {"MXN", "USD"} else f"{currency} "
    return f"{sign}{symbol}{abs(amount):,.2f}"
