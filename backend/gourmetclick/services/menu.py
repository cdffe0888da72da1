# gourmetclick/services/menu.py
"""
Menu administration: categories, products and product modifier groups.

Products are soft deleted (`is_active=False`) so that past orders keep
resolving; categories and modifier groups are removed for good.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from fastapi import HTTPException
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.schemas.cart import Modifier
from gourmetclick.services.cart import line_price

logger = logging.getLogger("gourmetclick.menu")

_CATEGORIES = collection_name("categories")
_PRODUCTS = collection_name("products")
_MODIFIER_GROUPS = collection_name("modifier_groups")


def _out(doc) -> Dict[str, Any]:
    return {**(doc.to_dict() or {}), "id": doc.id}


def _owned(db, col: str, tenant_id: str, doc_id: str, label: str):
    with backend_call(f"{label} lookup"):
        snap = db.collection(col).document(doc_id).get()
    if not snap.exists or (snap.to_dict() or {}).get("tenant_id") != tenant_id:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return snap


# ──────────────────────────────────────────────────────────────────────────────
# Categories
# ──────────────────────────────────────────────────────────────────────────────

def list_categories(db, tenant_id: str) -> List[Dict[str, Any]]:
    with backend_call("Category listing"):
        return [
            _out(d)
            for d in db.collection(_CATEGORIES)
            .where(filter=FieldFilter("tenant_id", "==", tenant_id))
            .order_by("sort_order")
            .stream()
        ]


def create_category(db, tenant_id: str, name: str, sort_order: Optional[int] = None) -> Dict[str, Any]:
    if sort_order is None:
        sort_order = len(list_categories(db, tenant_id))
    ref = db.collection(_CATEGORIES).document()
    with backend_call("Category creation"):
        ref.set({
            "tenant_id": tenant_id,
            "name": name.strip(),
            "sort_order": sort_order,
            "created_at": SERVER_TIMESTAMP,
        })
        return _out(ref.get())


def update_category(db, tenant_id: str, category_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    snap = _owned(db, _CATEGORIES, tenant_id, category_id, "Category")
    changes = {k: v for k, v in updates.items() if v is not None}
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    with backend_call("Category update"):
        if changes:
            snap.reference.update(changes)
        return _out(snap.reference.get())


def delete_category(db, tenant_id: str, category_id: str) -> None:
    """Deletes the category; its products stay, without a category."""
    snap = _owned(db, _CATEGORIES, tenant_id, category_id, "Category")
    with backend_call("Category deletion"):
        batch = db.batch()
        for p in (
            db.collection(_PRODUCTS)
            .where(filter=FieldFilter("tenant_id", "==", tenant_id))
            .where(filter=FieldFilter("category_id", "==", category_id))
            .stream()
        ):
            batch.update(p.reference, {"category_id": None})
        batch.delete(snap.reference)
        batch.commit()


def reorder_categories(db, tenant_id: str, ids: List[str]) -> List[Dict[str, Any]]:
    snaps = [_owned(db, _CATEGORIES, tenant_id, cid, "Category") for cid in ids]
    with backend_call("Category reorder"):
        batch = db.batch()
        for index, snap in enumerate(snaps):
            batch.update(snap.reference, {"sort_order": index})
        batch.commit()
    return list_categories(db, tenant_id)


# ──────────────────────────────────────────────────────────────────────────────
# Products
# ──────────────────────────────────────────────────────────────────────────────

def _product_doc(tenant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "tenant_id": tenant_id,
        "name": data["name"].strip(),
        "description": (data.get("description") or "").strip(),
        "price": float(data["price"]),
        "category_id": data.get("category_id"),
        "image_url": data.get("image_url"),
        "is_available": bool(data.get("is_available", True)),
        "is_active": True,
        "created_at": SERVER_TIMESTAMP,
        "updated_at": SERVER_TIMESTAMP,
    }


def list_products(
    db,
    tenant_id: str,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[List[Dict[str, Any]], int]:
    q = (
        db.collection(_PRODUCTS)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("is_active", "==", True))
    )
    if category_id:
        q = q.where(filter=FieldFilter("category_id", "==", category_id))
    with backend_call("Product listing"):
        docs = [_out(d) for d in q.order_by("created_at", direction=gcf.Query.DESCENDING).stream()]
    if search:
        term = search.strip().lower()
        docs = [p for p in docs if term in (p.get("name") or "").lower()]
    start = (page - 1) * page_size
    return docs[start:start + page_size], len(docs)


def get_product(db, tenant_id: str, product_id: str) -> Dict[str, Any]:
    snap = _owned(db, _PRODUCTS, tenant_id, product_id, "Product")
    data = _out(snap)
    if not data.get("is_active", True):
        raise HTTPException(status_code=404, detail="Product not found")
    return data


def create_product(db, tenant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
    ref = db.collection(_PRODUCTS).document()
    with backend_call("Product creation"):
        ref.set(_product_doc(tenant_id, data))
        return _out(ref.get())


def bulk_create_products(db, tenant_id: str, rows: List[Dict[str, Any]]) -> List[str]:
    """Creates all rows in one batch and returns the new ids."""
    ids: List[str] = []
    with backend_call("Bulk product creation"):
        batch = db.batch()
        for row in rows:
            ref = db.collection(_PRODUCTS).document()
            batch.set(ref, _product_doc(tenant_id, row))
            ids.append(ref.id)
        batch.commit()
    logger.info("Bulk created %d products for tenant %s", len(ids), tenant_id)
    return ids


def update_product(db, tenant_id: str, product_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    snap = _owned(db, _PRODUCTS, tenant_id, product_id, "Product")
    changes = {k: v for k, v in updates.items() if v is not None}
    if "price" in changes:
        changes["price"] = float(changes["price"])
    changes["updated_at"] = SERVER_TIMESTAMP
    with backend_call("Product update"):
        snap.reference.update(changes)
        return _out(snap.reference.get())


def soft_delete_product(db, tenant_id: str, product_id: str) -> None:
    snap = _owned(db, _PRODUCTS, tenant_id, product_id, "Product")
    with backend_call("Product deletion"):
        snap.reference.update({"is_active": False, "updated_at": SERVER_TIMESTAMP})


# ──────────────────────────────────────────────────────────────────────────────
# Modifier groups
# ──────────────────────────────────────────────────────────────────────────────

def list_modifier_groups(db, product_id: str) -> List[Dict[str, Any]]:
    with backend_call("Modifier listing"):
        docs = [
            _out(d)
            for d in db.collection(_MODIFIER_GROUPS)
            .where(filter=FieldFilter("product_id", "==", product_id))
            .stream()
        ]
    docs.sort(key=lambda g: g.get("position", 0))
    return docs


def create_modifier_group(db, tenant_id: str, product_id: str, group: Dict[str, Any]) -> Dict[str, Any]:
    _owned(db, _PRODUCTS, tenant_id, product_id, "Product")
    options = [
        {"id": uuid4().hex[:12], "name": o["name"].strip(), "extra_price": float(o.get("extra_price") or 0)}
        for o in group.get("options") or []
    ]
    ref = db.collection(_MODIFIER_GROUPS).document()
    with backend_call("Modifier group creation"):
        ref.set({
            "tenant_id": tenant_id,
            "product_id": product_id,
            "name": group["name"].strip(),
            "min_selection": int(group.get("min_selection") or 0),
            "max_selection": group.get("max_selection") or len(options) or None,
            "options": options,
            "position": len(list_modifier_groups(db, product_id)),
            "created_at": SERVER_TIMESTAMP,
        })
        return _out(ref.get())


def delete_modifier_group(db, tenant_id: str, group_id: str) -> None:
    snap = _owned(db, _MODIFIER_GROUPS, tenant_id, group_id, "Modifier group")
    with backend_call("Modifier group deletion"):
        snap.reference.delete()


# ──────────────────────────────────────────────────────────────────────────────
# Customer pricing
# ──────────────────────────────────────────────────────────────────────────────

def quote_items(db, tenant_id: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Re-prices customer order lines from the catalog.

    Unit price = product price + extra_price of each chosen option, looked up
    in the product's modifier groups. Anything the client says about prices is
    ignored; modifiers that match no option (notes) cost nothing.
    """
    quoted = []
    for item in items:
        product_id = item.get("product_id") or item.get("id")
        if not product_id:
            raise HTTPException(status_code=400, detail="Every item needs a product_id")
        product = _out(_owned(db, _PRODUCTS, tenant_id, product_id, "Product"))
        if not product.get("is_active", True) or not product.get("is_available", True):
            raise HTTPException(status_code=400, detail=f"{product.get('name') or product_id} is not available")

        options = {
            o["name"]: float(o.get("extra_price") or 0)
            for g in list_modifier_groups(db, product_id)
            for o in g.get("options") or []
        }
        modifiers = [
            Modifier(name=m["name"], value=m.get("value") or "", extra_price=options.get(m["name"], 0.0))
            for m in item.get("modifiers") or []
        ]
        quoted.append({
            "product_id": product_id,
            "name": product.get("name"),
            "quantity": item.get("quantity") or 1,
            "price": line_price(product.get("price") or 0, modifiers),
            "modifiers": [m.model_dump() for m in modifiers],
            "image_url": product.get("image_url"),
        })
    return quoted
