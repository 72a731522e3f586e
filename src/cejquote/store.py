"""Observable calculator state and the quote cart."""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from cejquote.business import work_type
from cejquote.models import (
    DEFAULT_CALCULATOR_STATE,
    CalculatorState,
    CartItem,
    CustomerInfo,
    QuoteBreakdown,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

HISTORY_LIMIT = 50

Listener = Callable[[T, T], None]


class StateContainer(Generic[T]):
    """Thread-safe value holder that notifies subscribers on change.

    Listeners receive `(new_value, old_value)` and run outside the lock.
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def get(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            old = self._value
            self._value = value
            listeners = list(self._listeners)
        if value is not old:
            self._notify(listeners, value, old)

    def update(self, fn: Callable[[T], T]) -> T:
        with self._lock:
            old = self._value
            self._value = fn(old)
            value = self._value
            listeners = list(self._listeners)
        if value is not old:
            self._notify(listeners, value, old)
        return value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @staticmethod
    def _notify(listeners: list[Listener], value: Any, old: Any) -> None:
        for listener in listeners:
            listener(value, old)


def cart_label(inputs: CalculatorState) -> str:
    """Human label for a cart line, e.g. "Losa - f'c 250 (+1)"."""
    label = "Carga Manual"
    if inputs.mode == "knownM3":
        label = "Volumen Directo"
    elif inputs.work_type is not None:
        match = work_type(inputs.work_type)
        if match is not None:
            label = match.label

    text = f"{label} - f'c {inputs.strength}"
    if inputs.additives:
        text += f" (+{len(inputs.additives)})"
    return text


class Cart:
    """Priced quotes kept as deep-copied, frozen snapshots.

    Later rule or draft changes never alter an item already in the cart.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[CartItem] = []
        self._history: list[CartItem] = []

    @property
    def items(self) -> tuple[CartItem, ...]:
        with self._lock:
            return tuple(self._items)

    @property
    def history(self) -> tuple[CartItem, ...]:
        with self._lock:
            return tuple(self._history)

    def get(self, item_id: str) -> Optional[CartItem]:
        with self._lock:
            return next((i for i in self._items if i.id == item_id), None)

    def add(self, inputs: CalculatorState, results: QuoteBreakdown) -> CartItem:
        item = CartItem(
            id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            inputs=inputs.model_copy(deep=True),
            results=results.model_copy(deep=True),
            label=cart_label(inputs),
        )
        with self._lock:
            self._items.append(item)
        logger.debug("Added cart item id=%s total=%s", item.id, results.total)
        return item

    def update(
        self, item_id: str, inputs: CalculatorState, results: QuoteBreakdown
    ) -> Optional[CartItem]:
        """Replace an item's snapshot, keeping its id, customer and folio."""
        return self._replace(
            item_id,
            timestamp=datetime.now(timezone.utc),
            inputs=inputs.model_copy(deep=True),
            results=results.model_copy(deep=True),
            label=cart_label(inputs),
        )

    def set_customer(self, item_id: str, customer: CustomerInfo) -> Optional[CartItem]:
        return self._replace(item_id, customer=customer)

    def set_folio(self, item_id: str, folio: str) -> Optional[CartItem]:
        return self._replace(item_id, folio=folio)

    def remove(self, item_id: str) -> bool:
        with self._lock:
            before = len(self._items)
            self._items = [i for i in self._items if i.id != item_id]
            return len(self._items) != before

    def clear(self) -> None:
        with self._lock:
            self._items = []

    def move_to_history(self) -> None:
        """Archive the cart ahead of older history, capped at HISTORY_LIMIT items."""
        with self._lock:
            self._history = (self._items + self._history)[:HISTORY_LIMIT]
            self._items = []

    def load_inputs(self, item_id: str) -> CalculatorState:
        """Draft to re-edit an item; unknown ids give a fresh draft."""
        item = self.get(item_id)
        if item is None:
            return DEFAULT_CALCULATOR_STATE
        return item.inputs.model_copy(deep=True)

    def _replace(self, item_id: str, **changes: Any) -> Optional[CartItem]:
        with self._lock:
            for index, item in enumerate(self._items):
                if item.id == item_id:
                    updated = item.model_copy(update=changes)
                    self._items[index] = updated
                    return updated
        return None
