# gourmetclick/services/cart.py
"""
In-memory shopping cart for one POS terminal.

The cart is owned by a single terminal and is never persisted, except through
the one-shot edit-order hand-off slot (see `repositories/handoff_slots.py`).
Every operation here is a plain in-memory mutation and does not raise for the
documented inputs.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from gourmetclick.schemas.cart import (
    UNKNOWN_PRODUCT_NAME,
    CartLine,
    CartOut,
    EditingOrder,
    Modifier,
    PersistedOrder,
    ProductSnapshot,
)

logger = logging.getLogger("gourmetclick.cart")

_METADATA_FIELDS = ("order_type", "payment_method", "customer_name", "table_number", "delivery_address", "notes")


def new_line_id() -> str:
    return f"line-{uuid4().hex[:12]}"


def _modifier_key(m: Modifier) -> str:
    return m.name


def same_modifiers(a: Iterable[Modifier], b: Iterable[Modifier]) -> bool:
    """
    Order-independent modifier set equality: same length and, sorted by name,
    every pair matches on name, extra_price and value.
    """
    left = sorted(a, key=_modifier_key)
    right = sorted(b, key=_modifier_key)
    if len(left) != len(right):
        return False
    for x, y in zip(left, right):
        if x.name != y.name or x.extra_price != y.extra_price or x.value != y.value:
            return False
    return True


def line_price(base_price: float, modifiers: Iterable[Modifier]) -> float:
    """Effective unit price: base price plus every modifier's extra price."""
    return float(base_price) + sum(float(m.extra_price or 0) for m in modifiers)


class CartComposer:
    """Cart lines plus the order metadata being built on a POS screen."""

    def __init__(self) -> None:
        self.lines: List[CartLine] = []
        self.order_type = "dine_in"
        self.payment_method = "cash"
        self.customer_name = ""
        self.table_number = ""
        self.delivery_address = ""
        self.notes = ""
        self.editing_order: Optional[EditingOrder] = None

    # ---------- lines ----------
    def _find(self, line_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.line_id == line_id:
                return line
        return None

    def add_item(self, product: ProductSnapshot, modifiers: Optional[List[Modifier]] = None,
                 quantity: int = 1) -> CartLine:
        """
        Merges into the line with the same product, price and modifier set;
        appends a new line otherwise. `quantity` is assumed positive.
        """
        modifiers = list(modifiers or [])
        for line in self.lines:
            if (
                line.product_id == product.id
                and line.unit_price == product.price
                and same_modifiers(line.modifiers, modifiers)
            ):
                line.quantity += quantity
                return line

        line = CartLine(
            line_id=new_line_id(),
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            quantity=quantity,
            modifiers=modifiers,
            image_url=product.image_url,
        )
        self.lines.append(line)
        return line

    def remove_item(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.line_id != line_id]

    def update_quantity(self, line_id: str, delta: int) -> None:
        """Applies `delta`; the quantity never drops below 1 (use remove_item)."""
        line = self._find(line_id)
        if line is not None:
            line.quantity = max(1, line.quantity + delta)

    def clear(self) -> None:
        """Empties the cart and resets the customer-facing metadata."""
        self.lines = []
        self.customer_name = ""
        self.table_number = ""
        self.delivery_address = ""
        self.notes = ""
        self.editing_order = None

    def set_metadata(self, **fields: Any) -> None:
        for key, value in fields.items():
            if key not in _METADATA_FIELDS:
                raise AttributeError(f"Unknown cart field: {key}")
            if value is not None:
                setattr(self, key, value)

    # ---------- edit flow ----------
    def restore_from_order(self, order: PersistedOrder | Dict[str, Any]) -> None:
        """
        Rebuilds the cart from a persisted order for editing.
        Missing item fields get defaults: fresh id, quantity 1, price 0,
        placeholder name and no modifiers.
        """
        if not isinstance(order, PersistedOrder):
            order = PersistedOrder.model_validate(order)

        self.lines = [
            CartLine(
                line_id=item.id or new_line_id(),
                product_id=item.product_id or item.id,
                name=item.name or UNKNOWN_PRODUCT_NAME,
                unit_price=item.price or 0.0,
                quantity=item.quantity or 1,
                modifiers=list(item.modifiers or []),
                image_url=item.image_url,
            )
            for item in order.items
        ]
        self.customer_name = order.customer_name or ""
        self.order_type = order.order_type or "dine_in"
        self.table_number = order.table_number or ""
        self.delivery_address = order.delivery_address or ""
        self.notes = order.notes or ""
        if order.payment_method:
            self.payment_method = order.payment_method
        self.editing_order = EditingOrder(id=order.id, status=order.status or "pending", folio=order.folio)

    def restore_from_handoff(self, slots, tenant_id: str, terminal_id: str) -> Optional[EditingOrder]:
        """
        Consumes the edit-order hand-off slot (read and clear) and restores it.
        Returns the editing reference, or None when the slot is empty.
        """
        payload = slots.take(tenant_id, terminal_id, "edit_order")
        if payload is None:
            return None
        self.restore_from_order(payload)
        logger.info("Terminal %s editing order %s", terminal_id, self.editing_order.id)
        return self.editing_order

    # ---------- derived ----------
    @property
    def cart_total(self) -> float:
        return sum(line.unit_price * line.quantity for line in self.lines)

    @property
    def cart_item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def to_order_items(self) -> List[Dict[str, Any]]:
        """Price snapshot of every line, in the shape stored on orders."""
        return [
            {
                "id": line.line_id,
                "product_id": line.product_id,
                "name": line.name,
                "price": line.unit_price,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "modifiers": [m.model_dump() for m in line.modifiers],
                "image_url": line.image_url,
                "subtotal": line.unit_price * line.quantity,
            }
            for line in self.lines
        ]

    def snapshot(self) -> CartOut:
        return CartOut(
            lines=[line.model_copy(deep=True) for line in self.lines],
            order_type=self.order_type,
            payment_method=self.payment_method,
            customer_name=self.customer_name,
            table_number=self.table_number,
            delivery_address=self.delivery_address,
            notes=self.notes,
            editing_order=self.editing_order,
            total=self.cart_total,
            item_count=self.cart_item_count,
        )
