# gourmetclick/services/catalog.py
"""
POS catalog: active products and categories of a tenant, cached per terminal
and invalidated by realtime `products` / `categories` events.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.services.realtime import ChangeEvent, RealtimeRouter

logger = logging.getLogger("gourmetclick.catalog")

_PRODUCTS = collection_name("products")
_CATEGORIES = collection_name("categories")


@dataclass
class Catalog:
    tenant_id: str
    products: List[Dict[str, Any]] = field(default_factory=list)
    categories: List[Dict[str, Any]] = field(default_factory=list)

    def product(self, product_id: str) -> Optional[Dict[str, Any]]:
        for p in self.products:
            if p.get("id") == product_id:
                return p
        return None

    def filter(self, search: str = "", category_id: Optional[str] = None) -> List[Dict[str, Any]]:
        term = (search or "").strip().lower()
        out = []
        for p in self.products:
            if term and term not in (p.get("name") or "").lower():
                continue
            if category_id and category_id != "all" and p.get("category_id") != category_id:
                continue
            out.append(p)
        return out


def load_catalog(db, tenant_id: str) -> Catalog:
    products = [
        {**(d.to_dict() or {}), "id": d.id}
        for d in db.collection(_PRODUCTS)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("is_active", "==", True))
        .stream()
    ]
    products.sort(key=lambda p: p.get("name") or "")
    categories = [
        {**(d.to_dict() or {}), "id": d.id}
        for d in db.collection(_CATEGORIES)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .order_by("sort_order")
        .stream()
    ]
    return Catalog(tenant_id=tenant_id, products=products, categories=categories)


class CatalogCache:
    """
    Keeps the last loaded catalog; any realtime event on the watched tables
    marks it stale and the next `get` refetches.
    """

    WATCHED = ("products", "categories")

    def __init__(self, loader: Callable[[str], Catalog], router: RealtimeRouter):
        self._loader = loader
        self._catalog: Optional[Catalog] = None
        self._stale = True
        self.loads = 0
        self._subscriptions = [router.subscribe(table, self._on_change) for table in self.WATCHED]

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("%s changed (%s), catalog invalidated", event.table, event.event_type)
        self._stale = True

    def invalidate(self) -> None:
        self._stale = True

    @property
    def stale(self) -> bool:
        return self._stale

    def get(self, tenant_id: str) -> Catalog:
        if self._stale or self._catalog is None or self._catalog.tenant_id != tenant_id:
            return self.refresh(tenant_id)
        return self._catalog

    def refresh(self, tenant_id: str) -> Catalog:
        # cleared before loading so an event during the fetch forces another one
        self._stale = False
        try:
            catalog = self._loader(tenant_id)
        except Exception:
            self._stale = True
            raise
        self.loads += 1
        self._catalog = catalog
        return catalog

    def dispose(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions = []
        self._catalog = None
