"""
One-shot hand-off slots between independent flows of a POS terminal.

- `edit_order`: order payload picked in the orders list, consumed by the cart
- `pos_session`: the employee currently logged in on the terminal (PIN access)

`take` reads and clears in one call so that a reload never replays a slot.
"""
import time
from typing import Any, Dict, Optional

from google.cloud import firestore as gcf

from gourmetclick.config import collection_name

COL = collection_name("handoff_slots")

KINDS = ("edit_order", "pos_session")


def now_ts() -> int:
    return int(time.time())


def slot_id(tenant_id: str, terminal_id: str, kind: str) -> str:
    if kind not in KINDS:
        raise ValueError(f"Unknown hand-off slot: {kind}")
    return f"{tenant_id}:{terminal_id}:{kind}"


class HandoffSlots:
    def __init__(self, db):
        self.db = db

    def _ref(self, tenant_id: str, terminal_id: str, kind: str):
        return self.db.collection(COL).document(slot_id(tenant_id, terminal_id, kind))

    def put(self, tenant_id: str, terminal_id: str, kind: str, payload: Dict[str, Any]) -> None:
        self._ref(tenant_id, terminal_id, kind).set({
            "tenant_id": tenant_id,
            "terminal_id": terminal_id,
            "kind": kind,
            "payload": payload,
            "written_at_unix": now_ts(),
            "written_at": gcf.SERVER_TIMESTAMP,
        })

    def peek(self, tenant_id: str, terminal_id: str, kind: str) -> Optional[Dict[str, Any]]:
        doc = self._ref(tenant_id, terminal_id, kind).get()
        if not doc.exists:
            return None
        return (doc.to_dict() or {}).get("payload")

    def take(self, tenant_id: str, terminal_id: str, kind: str) -> Optional[Dict[str, Any]]:
        ref = self._ref(tenant_id, terminal_id, kind)
        doc = ref.get()
        if not doc.exists:
            return None
        ref.delete()
        return (doc.to_dict() or {}).get("payload")

    def clear(self, tenant_id: str, terminal_id: str, kind: str) -> None:
        self._ref(tenant_id, terminal_id, kind).delete()
