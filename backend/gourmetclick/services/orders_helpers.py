# gourmetclick/services/orders_helpers.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException, status
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.schemas.cart import UNKNOWN_PRODUCT_NAME
from gourmetclick.services import cash_sessions

logger = logging.getLogger("gourmetclick.orders")

_ORDERS = collection_name("orders")
_COUNTERS = collection_name("counters")

ORDER_STATUS_LABELS = {
    "pending": "Pendiente",
    "confirmed": "Confirmado",
    "preparing": "En preparación",
    "ready": "Listo",
    "on_the_way": "En camino",
    "delivered": "Entregado",
    "cancelled": "Cancelado",
}

_FLOW = {
    "pending": ["confirmed"],
    "confirmed": ["preparing"],
    "preparing": ["ready"],
    "ready": ["on_the_way", "delivered"],
    "on_the_way": ["delivered"],
}

OPEN_STATUSES = ["pending", "confirmed", "preparing", "ready", "on_the_way"]
CLOSED_STATUSES = ["delivered", "cancelled"]

# customer-originated orders never need an open register
PUBLIC_ORDER_TYPES = ("pickup", "delivery")


# ──────────────────────────────────────────────────────────────────────────────
# Pure helpers
# ──────────────────────────────────────────────────────────────────────────────

def next_statuses(current: str) -> List[str]:
    nxt = list(_FLOW.get(current, []))
    if current in OPEN_STATUSES:
        nxt.append("cancelled")
    return nxt


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def audit_entry(action: str, user: str, details: str) -> Dict[str, Any]:
    return {"action": action, "timestamp": _now_iso(), "user": user or "Sistema", "details": details}


def _as_dict(obj: Any) -> Dict[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return {}


def coerce_item(raw: Any) -> Dict[str, Any]:
    """
    Price snapshot of one order line.
    unit_price wins over price; quantity is at least 1.
    """
    d = _as_dict(raw)
    qty = max(1, int(d.get("quantity") or 1))
    price = d.get("unit_price")
    if price is None:
        price = d.get("price")
    price_dec = Decimal(str(price if price is not None else 0))
    subtotal = (price_dec * qty).quantize(Decimal("0.01"))
    unit_price = float(price_dec)
    return {
        "id": d.get("id"),
        "product_id": d.get("product_id") or d.get("id"),
        "name": d.get("name") or UNKNOWN_PRODUCT_NAME,
        "quantity": qty,
        "price": unit_price,
        "unit_price": unit_price,
        "modifiers": [_as_dict(m) for m in (d.get("modifiers") or [])],
        "image_url": d.get("image_url"),
        "subtotal": float(subtotal),
    }


def calc_total(items: List[Dict[str, Any]]) -> float:
    total = sum((Decimal(str(it["subtotal"])) for it in items), Decimal("0"))
    return float(total.quantize(Decimal("0.01")))


def order_doc_to_out(doc) -> Dict[str, Any]:
    """
    Firestore doc → plain dict compatible with OrderOut.
    Legacy rows scoped by restaurant_id/user_id are accepted.
    """
    data = doc.to_dict() if hasattr(doc, "to_dict") else doc
    if not data:
        raise ValueError("Empty order document.")
    items = [coerce_item(it) for it in (data.get("items") or [])]
    return {
        **data,
        "id": getattr(doc, "id", None) or data.get("id"),
        "tenant_id": data.get("tenant_id") or data.get("restaurant_id") or data.get("user_id"),
        "status": data.get("status") or "pending",
        "items": items,
        "total": float(data.get("total") if data.get("total") is not None else calc_total(items)),
        "audit_log": data.get("audit_log") or [],
    }


# ──────────────────────────────────────────────────────────────────────────────
# Firestore operations
# ──────────────────────────────────────────────────────────────────────────────

def _folio_step(transaction, ref) -> int:
    snap = ref.get(transaction=transaction)
    folio = int((snap.to_dict() or {}).get("orders") or 0) + 1
    transaction.set(ref, {"orders": folio}, merge=True)
    return folio


_claim_folio = gcf.transactional(_folio_step)


def _next_folio(db, tenant_id: str) -> int:
    """Read-increment-write of the tenant counter inside one transaction."""
    ref = db.collection(_COUNTERS).document(tenant_id)
    return _claim_folio(db.transaction(), ref)


def get_order_snapshot(db, tenant_id: str, order_id: str):
    with backend_call("Order lookup"):
        snap = db.collection(_ORDERS).document(order_id).get()
    if not snap.exists:
        raise HTTPException(status_code=404, detail="Order not found")
    data = snap.to_dict() or {}
    owner = data.get("tenant_id") or data.get("restaurant_id") or data.get("user_id")
    if owner != tenant_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return snap


def get_order(db, tenant_id: str, order_id: str) -> Dict[str, Any]:
    return order_doc_to_out(get_order_snapshot(db, tenant_id, order_id))


def list_orders(
    db,
    tenant_id: str,
    mode: Optional[str] = None,
    payment_method: Optional[str] = None,
    statuses: Optional[List[str]] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    mode:
      'active'    → status not delivered/cancelled
      'caja'      → delivered/cancelled without a cash cut (to be settled)
      'historial' → orders already closed by a cash cut
    """
    q = db.collection(_ORDERS).where(filter=FieldFilter("tenant_id", "==", tenant_id))
    if mode == "active":
        q = q.where(filter=FieldFilter("status", "in", OPEN_STATUSES))
    elif mode == "caja":
        q = q.where(filter=FieldFilter("status", "in", CLOSED_STATUSES))
        q = q.where(filter=FieldFilter("cash_cut_id", "==", None))
    elif mode == "historial":
        q = q.where(filter=FieldFilter("cash_cut_id", "!=", None))
    elif statuses:
        q = q.where(filter=FieldFilter("status", "in", statuses))
    if payment_method:
        q = q.where(filter=FieldFilter("payment_method", "==", payment_method))

    with backend_call("Order listing"):
        docs = list(q.order_by("created_at", direction=gcf.Query.DESCENDING).stream())
    start = (page - 1) * page_size
    return [order_doc_to_out(d) for d in docs[start:start + page_size]], len(docs)


def create_order(db, tenant_id: str, payload: Dict[str, Any], user_name: str = "Sistema/Staff") -> Dict[str, Any]:
    """
    Snapshots the items, links dine-in orders to the open cash session and
    writes the order. Pickup and delivery orders never need a session.
    """
    items = [coerce_item(it) for it in (payload.get("items") or [])]
    if not items:
        raise HTTPException(status_code=400, detail="Order has no items")

    order_type = payload.get("order_type") or "dine_in"
    session = None
    if order_type not in PUBLIC_ORDER_TYPES:
        session = cash_sessions.active_session(db, tenant_id)
        if not session:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"No open cash session for this restaurant (order_type: {order_type})",
            )

    with backend_call("Order creation"):
        folio = _next_folio(db, tenant_id)
        ref = db.collection(_ORDERS).document()
        doc = {
            "tenant_id": tenant_id,
            "folio": folio,
            "tracking_id": uuid4().hex[:10],
            "status": payload.get("status") or "pending",
            "order_type": order_type,
            "payment_method": payload.get("payment_method") or "cash",
            "customer_name": payload.get("customer_name") or "Cliente General",
            "customer_phone": payload.get("customer_phone"),
            "table_number": payload.get("table_number") if order_type == "dine_in" else None,
            "delivery_address": payload.get("delivery_address") if order_type == "delivery" else None,
            "notes": payload.get("notes") or None,
            "items": items,
            "total": calc_total(items),
            "cash_session_id": session["id"] if session else None,
            "cash_cut_id": None,
            "closed_at": None,
            "audit_log": [audit_entry("CREATED", user_name, "Orden creada")],
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        }
        ref.set(doc)
        snap = ref.get()
    logger.info("Order %s (folio %s) created for tenant %s", ref.id, folio, tenant_id)
    return order_doc_to_out(snap)


def update_order(db, tenant_id: str, order_id: str, updates: Dict[str, Any], user_name: str = "Sistema") -> Dict[str, Any]:
    snap = get_order_snapshot(db, tenant_id, order_id)
    current = snap.to_dict() or {}
    changes = {k: v for k, v in updates.items() if v is not None}
    if "items" in changes:
        items = [coerce_item(it) for it in changes["items"]]
        if not items:
            raise HTTPException(status_code=400, detail="Order has no items")
        changes["items"] = items
        changes["total"] = calc_total(items)
    order_type = changes.get("order_type") or current.get("order_type")
    if order_type != "dine_in":
        changes["table_number"] = None
    if order_type != "delivery":
        changes["delivery_address"] = None

    changes["updated_at"] = SERVER_TIMESTAMP
    changes["audit_log"] = (current.get("audit_log") or []) + [
        audit_entry("UPDATED", user_name, "Orden editada (productos/notas/tipo)")
    ]
    with backend_call("Order update"):
        snap.reference.update(changes)
        return order_doc_to_out(snap.reference.get())


def update_status(db, tenant_id: str, order_id: str, new_status: str, user_name: str = "Sistema") -> Dict[str, Any]:
    snap = get_order_snapshot(db, tenant_id, order_id)
    current = snap.to_dict() or {}
    prev = current.get("status") or "pending"
    if new_status == prev:
        return order_doc_to_out(snap)
    if new_status not in next_statuses(prev):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot move order from {prev} to {new_status}",
        )

    updates = {
        "status": new_status,
        "updated_at": SERVER_TIMESTAMP,
        "audit_log": (current.get("audit_log") or []) + [
            audit_entry(
                "STATUS_CHANGE",
                user_name,
                f"Estado cambiado de {ORDER_STATUS_LABELS.get(prev, prev)} a {ORDER_STATUS_LABELS.get(new_status, new_status)}",
            )
        ],
    }
    if new_status in CLOSED_STATUSES:
        updates["closed_at"] = SERVER_TIMESTAMP
    with backend_call("Order status update"):
        snap.reference.update(updates)
        return order_doc_to_out(snap.reference.get())


def reopen_order(db, tenant_id: str, order_id: str, user_name: str = "Admin") -> Dict[str, Any]:
    """Puts a closed order back into the to-be-settled list (delivered, no cut)."""
    snap = get_order_snapshot(db, tenant_id, order_id)
    current = snap.to_dict() or {}
    with backend_call("Order reopen"):
        snap.reference.update({
            "status": "delivered",
            "closed_at": None,
            "cash_cut_id": None,
            "updated_at": SERVER_TIMESTAMP,
            "audit_log": (current.get("audit_log") or []) + [
                audit_entry("REOPENED", user_name, "Orden reabierta por administrador")
            ],
        })
        return order_doc_to_out(snap.reference.get())


def delete_order(db, tenant_id: str, order_id: str, force: bool = False) -> None:
    snap = get_order_snapshot(db, tenant_id, order_id)
    data = snap.to_dict() or {}
    if data.get("cash_cut_id") and not force:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Order #{data.get('folio') or order_id[:6]} belongs to a cash cut and cannot be deleted",
        )
    with backend_call("Order deletion"):
        snap.reference.delete()
    logger.info("Order %s deleted (force=%s)", order_id, force)


def get_by_tracking(db, tracking_id: str) -> Dict[str, Any]:
    with backend_call("Order tracking lookup"):
        docs = list(
            db.collection(_ORDERS)
            .where(filter=FieldFilter("tracking_id", "==", tracking_id))
            .limit(1)
            .stream()
        )
    if not docs:
        raise HTTPException(status_code=404, detail="Order not found")
    return order_doc_to_out(docs[0])
