# gourmetclick/services/restaurant.py
"""
Restaurant profile, public menu and link card.

The profile document id is the tenant id; `slug` is the public handle used by
the menu and by the link card.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.services import menu

logger = logging.getLogger("gourmetclick.restaurant")

_PROFILES = collection_name("restaurants")
_LINK_CARDS = collection_name("link_cards")

IMAGE_FIELDS = {"logo": "logo_url", "banner": "banner_url", "popup": "popup_url"}


def get_profile(db, tenant_id: str) -> Dict[str, Any]:
    with backend_call("Profile lookup"):
        snap = db.collection(_PROFILES).document(tenant_id).get()
    return {**(snap.to_dict() or {}), "id": tenant_id}


def is_slug_available(db, slug: str, tenant_id: Optional[str] = None) -> bool:
    with backend_call("Slug lookup"):
        docs = db.collection(_PROFILES).where(filter=FieldFilter("slug", "==", slug)).stream()
        return all(d.id == tenant_id for d in docs)


def update_profile(db, tenant_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    changes = {k: v for k, v in updates.items() if v is not None}
    if "slug" in changes and not is_slug_available(db, changes["slug"], tenant_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already taken")
    changes["updated_at"] = SERVER_TIMESTAMP
    with backend_call("Profile update"):
        db.collection(_PROFILES).document(tenant_id).set(changes, merge=True)
    logger.info("Profile of tenant %s updated (%s)", tenant_id, ", ".join(sorted(changes)))
    return get_profile(db, tenant_id)


def set_profile_image(db, tenant_id: str, kind: str, url: str) -> Dict[str, Any]:
    field = IMAGE_FIELDS.get(kind)
    if not field:
        raise HTTPException(status_code=404, detail=f"Unknown image kind: {kind}")
    with backend_call("Profile image update"):
        db.collection(_PROFILES).document(tenant_id).set(
            {field: url, "updated_at": SERVER_TIMESTAMP}, merge=True
        )
    return get_profile(db, tenant_id)


def _profile_by_slug(db, slug: str):
    docs = list(db.collection(_PROFILES).where(filter=FieldFilter("slug", "==", slug)).limit(1).stream())
    if not docs:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return docs[0]


def tenant_for_slug(db, slug: str) -> str:
    with backend_call("Restaurant lookup"):
        return _profile_by_slug(db, slug).id


def public_menu(db, slug: str) -> Dict[str, Any]:
    """Restaurant, its categories and available products with their modifier groups."""
    with backend_call("Public menu"):
        profile = _profile_by_slug(db, slug)
        tenant_id = profile.id
        categories = menu.list_categories(db, tenant_id)
        products, _ = menu.list_products(db, tenant_id, page_size=10_000)
        available = [p for p in products if p.get("is_available", True)]
        for p in available:
            p["modifier_groups"] = menu.list_modifier_groups(db, p["id"])
    return {
        "restaurant": {**(profile.to_dict() or {}), "id": tenant_id},
        "categories": categories,
        "products": available,
    }


# ---------- link card ----------

def get_link_card(db, tenant_id: str) -> Optional[Dict[str, Any]]:
    with backend_call("Link card lookup"):
        snap = db.collection(_LINK_CARDS).document(tenant_id).get()
    if not snap.exists:
        return None
    return {**(snap.to_dict() or {}), "tenant_id": tenant_id}


def upsert_link_card(db, tenant_id: str, card: Dict[str, Any]) -> Dict[str, Any]:
    with backend_call("Link card slug lookup"):
        clash = [
            d for d in db.collection(_LINK_CARDS).where(filter=FieldFilter("slug", "==", card["slug"])).stream()
            if d.id != tenant_id
        ]
    if clash:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Slug already taken")
    with backend_call("Link card update"):
        db.collection(_LINK_CARDS).document(tenant_id).set(
            {**card, "tenant_id": tenant_id, "updated_at": SERVER_TIMESTAMP}, merge=True
        )
    return get_link_card(db, tenant_id)


def public_link_card(db, slug: str) -> Dict[str, Any]:
    with backend_call("Public link card"):
        docs = list(db.collection(_LINK_CARDS).where(filter=FieldFilter("slug", "==", slug)).limit(1).stream())
    if not docs:
        raise HTTPException(status_code=404, detail="Link card not found")
    return {**(docs[0].to_dict() or {}), "tenant_id": docs[0].id}
