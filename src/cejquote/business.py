"""Business catalogs and the static fallback pricing rules."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional

from cejquote.rules import Additive, PricingRules, ServiceType, Strength, VolumeTier

WorkTypeId = Literal["slab", "lightInteriorFloor", "vehicleFloor", "footings", "walls"]
CofferedSize = Literal["7", "10", "15"]

VAT_RATE = 0.08  # border-region rate
QUOTE_VALIDITY_DAYS = 7

ESTIMATE_LEGEND = (
    "Precios sujetos a cambio sin previo aviso. "
    "La volumetría final se valida con visita técnica gratuita."
)

SERVICE_LABELS: dict[ServiceType, str] = {
    "direct": "Tiro directo",
    "pumped": "Servicio de bomba",
}

SERVICE_SHORT_LABELS: dict[ServiceType, str] = {
    "direct": "Directo",
    "pumped": "Bomba",
}


@dataclass(frozen=True)
class WorkType:
    id: WorkTypeId
    label: str
    description: str
    recommended_strength: Strength


WORK_TYPES: tuple[WorkType, ...] = (
    WorkType("slab", "Losa", "Azoteas y losas de entrepiso.", "200"),
    WorkType(
        "lightInteriorFloor",
        "Piso interior ligero",
        "Habitaciones y áreas interiores sin vehículos.",
        "150",
    ),
    WorkType(
        "vehicleFloor",
        "Piso exterior / vehículos",
        "Cochera, patios de maniobras ligeros.",
        "200",
    ),
    WorkType("footings", "Cimientos / zapatas", "Cimentaciones corridas y zapatas.", "200"),
    WorkType("walls", "Muros / industrial pesado", "Muros estructurales y cargas pesadas.", "250"),
)


def work_type(work_type_id: str) -> Optional[WorkType]:
    return next((w for w in WORK_TYPES if w.id == work_type_id), None)


@dataclass(frozen=True)
class CofferedSpec:
    """Coffered (waffle) slab: concrete contribution per square meter of slab."""

    label: str
    total_thickness_cm: float
    coefficient: float  # m3 of concrete per m2


COFFERED_SPECS: dict[CofferedSize, CofferedSpec] = {
    "7": CofferedSpec("Casetón 7cm", 12, 0.085),
    "10": CofferedSpec("Casetón 10cm", 15, 0.108),
    "15": CofferedSpec("Casetón 15cm", 20, 0.135),
}

SOLID_SLAB_FACTOR = 0.98


def _pesos(amount: float) -> int:
    return round(amount * 100)


def _tier(min_m3: float, unit_price_pesos: float) -> VolumeTier:
    return VolumeTier(min_m3=float(min_m3), price_per_m3_cents=_pesos(unit_price_pesos))


# Direct pour: 2-2.5 m3 and >= 3 m3. Pumped: 3-4.5 m3 and >= 5 m3.
# Prices exclude VAT.
FALLBACK_PRICING_RULES = PricingRules(
    version=1,
    last_updated=datetime(2025, 1, 1, tzinfo=timezone.utc),
    vat_rate=VAT_RATE,
    currency="MXN",
    min_order_quantity={"direct": 2.0, "pumped": 3.0},
    base={
        "direct": {
            "100": (_tier(2, 2231), _tier(3, 2082)),
            "150": (_tier(2, 2509), _tier(3, 2269)),
            "200": (_tier(2, 2731), _tier(3, 2481)),
            "250": (_tier(2, 3018), _tier(3, 2769)),
            "300": (_tier(2, 3091), _tier(3, 3035)),
        },
        "pumped": {
            "100": (_tier(3, 2527), _tier(5, 2481)),
            "150": (_tier(3, 2758), _tier(5, 2666)),
            "200": (_tier(3, 3008), _tier(5, 2958)),
            "250": (_tier(3, 3259), _tier(5, 3167)),
            "300": (_tier(3, 3478), _tier(5, 3385)),
        },
    },
    additives=(
        Additive(
            id="fiber",
            label="Fibra de polipropileno",
            description="Refuerzo contra agrietamiento por contracción.",
            active=True,
            pricing_model="per_m3",
            price_cents=15000,
        ),
    ),
)
