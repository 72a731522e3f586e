"""Order folios and order payload mapping."""

import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from cejquote.business import SERVICE_SHORT_LABELS
from cejquote.models import (
    CartItem,
    CustomerInfo,
    OrderFinancials,
    OrderItem,
    OrderMetadata,
    OrderPayload,
    QuoteBreakdown,
)

_FOLIO_ALPHABET = string.ascii_uppercase + string.digits
_FOLIO_SUFFIX_LENGTH = 4


def generate_folio(prefix: str = "CEJ", now: Optional[datetime] = None) -> str:
    """Return a human-readable order id such as `CEJ-250114-7KQ2`."""
    now = now or datetime.now(timezone.utc)
    suffix = "".join(
        secrets.choice(_FOLIO_ALPHABET) for _ in range(_FOLIO_SUFFIX_LENGTH)
    )
    return f"{prefix}-{now:%y%m%d}-{suffix}"


def map_quote_to_order(
    folio: str,
    customer: CustomerInfo,
    quote: QuoteBreakdown,
    *,
    metadata: Optional[OrderMetadata] = None,
) -> OrderPayload:
    """Single-quote order; keeps the quote's itemized lines and charged additives."""
    service_label = SERVICE_SHORT_LABELS[quote.concrete_type]
    metadata = metadata or OrderMetadata()
    return OrderPayload(
        folio=folio,
        customer=customer,
        items=(
            OrderItem(
                id=str(uuid.uuid4()),
                label=f"Concreto {service_label} - f'c {quote.strength}",
                volume=quote.volume.billed_m3,
                service=quote.concrete_type,
                subtotal=quote.subtotal,
                additives=quote.additive_ids,
            ),
        ),
        financials=OrderFinancials(
            subtotal=quote.subtotal,
            vat=quote.vat,
            total=quote.total,
            currency=quote.pricing_snapshot.currency,
        ),
        breakdown_lines=quote.breakdown_lines,
        metadata=metadata.model_copy(
            update={"pricing_version": quote.pricing_snapshot.rules_version}
        ),
    )


def map_cart_to_order(
    folio: str,
    customer: CustomerInfo,
    cart: Iterable[CartItem],
    *,
    metadata: Optional[OrderMetadata] = None,
) -> OrderPayload:
    """Multi-item order; financials are the sums of the item snapshots.

    The pricing version is recorded only when every item shares one. Raises
    ValueError when the cart is empty or mixes currencies.
    """
    items = list(cart)
    if not items:
        raise ValueError("cannot build an order from an empty cart")

    versions = {i.results.pricing_snapshot.rules_version for i in items}
    currencies = {i.results.pricing_snapshot.currency for i in items}
    if len(currencies) > 1:
        raise ValueError(f"cart mixes currencies: {sorted(currencies)}")

    metadata = metadata or OrderMetadata()
    if len(versions) == 1:
        metadata = metadata.model_copy(update={"pricing_version": versions.pop()})

    return OrderPayload(
        folio=folio,
        customer=customer,
        items=tuple(
            OrderItem(
                id=i.id,
                label=i.label,
                volume=i.results.volume.billed_m3,
                service=i.results.concrete_type,
                subtotal=i.results.subtotal,
                additives=i.results.additive_ids,
            )
            for i in items
        ),
        financials=OrderFinancials(
            subtotal=sum(i.results.subtotal for i in items),
            vat=sum(i.results.vat for i in items),
            total=sum(i.results.total for i in items),
            currency=currencies.pop(),
        ),
        breakdown_lines=tuple(
            line for i in items for line in i.results.breakdown_lines
        ),
        metadata=metadata,
    )
