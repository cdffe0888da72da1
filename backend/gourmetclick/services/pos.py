# gourmetclick/services/pos.py
"""
POS checkout: turns the terminal cart into an order.

The cart is cleared only after the order write succeeded; any error leaves
lines and metadata exactly as they were so the cashier can retry.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from pydantic import ValidationError

from gourmetclick.core.errors import backend_call
from gourmetclick.repositories.handoff_slots import HandoffSlots
from gourmetclick.schemas.cart import Modifier, ProductSnapshot
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import orders_helpers
from gourmetclick.services.cart import CartComposer, line_price
from gourmetclick.services.terminals import Terminal

logger = logging.getLogger("gourmetclick.pos")

NOTE_MODIFIER = "Nota"


def add_catalog_item(terminal: Terminal, product_id: str, modifiers: List[Modifier],
                     note: Optional[str] = None, quantity: int = 1):
    """Looks the product up in the terminal catalog and adds it at its effective price."""
    product = terminal.catalog.get(terminal.tenant_id).product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    modifiers = list(modifiers)
    if note and note.strip():
        modifiers.append(Modifier(name=NOTE_MODIFIER, value=note.strip(), extra_price=0))
    snapshot = ProductSnapshot(
        id=product["id"],
        name=product.get("name") or "",
        price=line_price(product.get("price") or 0, modifiers),
        image_url=product.get("image_url"),
    )
    return terminal.cart.add_item(snapshot, modifiers, quantity)


def _validate(cart: CartComposer, principal: Principal) -> None:
    if cart.is_empty():
        raise HTTPException(status_code=400, detail="Cart is empty")
    if cart.order_type == "dine_in" and not (cart.table_number or "").strip():
        raise HTTPException(status_code=400, detail="Table number is required for dine-in orders")
    if cart.editing_order is not None and not principal.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can edit existing orders",
        )


def _order_payload(cart: CartComposer) -> Dict[str, Any]:
    return {
        "items": cart.to_order_items(),
        "order_type": cart.order_type,
        "payment_method": cart.payment_method,
        "customer_name": cart.customer_name or None,
        "table_number": cart.table_number or None,
        "delivery_address": cart.delivery_address or None,
        "notes": cart.notes or None,
    }


def checkout(db, terminal: Terminal, principal: Principal) -> Dict[str, Any]:
    cart = terminal.cart
    _validate(cart, principal)
    payload = _order_payload(cart)
    user_name = principal.display_name or principal.email or principal.uid

    editing = cart.editing_order
    if editing is not None and editing.id:
        order = orders_helpers.update_order(db, terminal.tenant_id, editing.id, payload, user_name)
        logger.info("Terminal %s updated order %s", terminal.terminal_id, editing.id)
    else:
        order = orders_helpers.create_order(db, terminal.tenant_id, payload, user_name)
        logger.info("Terminal %s created order %s", terminal.terminal_id, order["id"])

    cart.clear()
    return order


def prepare_edit(db, tenant_id: str, terminal_id: str, order_id: str) -> Dict[str, Any]:
    """Puts the order in the terminal's edit hand-off slot for the POS to pick up."""
    order = orders_helpers.get_order(db, tenant_id, order_id)
    payload = {
        "id": order["id"],
        "status": order.get("status"),
        "folio": order.get("folio"),
        "items": order.get("items") or [],
        "customer_name": order.get("customer_name"),
        "order_type": order.get("order_type"),
        "payment_method": order.get("payment_method"),
        "table_number": order.get("table_number"),
        "delivery_address": order.get("delivery_address"),
        "notes": order.get("notes"),
    }
    with backend_call("Edit hand-off"):
        HandoffSlots(db).put(tenant_id, terminal_id, "edit_order", payload)
    return payload


def restore_edit(db, terminal: Terminal):
    try:
        with backend_call("Edit hand-off lookup"):
            return terminal.cart.restore_from_handoff(HandoffSlots(db), terminal.tenant_id, terminal.terminal_id)
    except ValidationError as exc:
        logger.warning("Discarded malformed edit hand-off on terminal %s: %s", terminal.terminal_id, exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Malformed order payload")
