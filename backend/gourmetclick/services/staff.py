# gourmetclick/services/staff.py
"""
Staff members of a restaurant and PIN access to POS terminals.

A PIN is validated before anything is written and is stored as an HMAC digest
scoped to the tenant, which makes "duplicate PIN" a plain equality query.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.crypto import PIN_LENGTH, is_valid_pin, pin_digest
from gourmetclick.core.errors import backend_call
from gourmetclick.repositories.handoff_slots import HandoffSlots

logger = logging.getLogger("gourmetclick.staff")

_STAFF = collection_name("staff")


def _staff_out(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data.pop("pin_digest", None)
    return {**data, "id": doc.id, "is_active": bool(data.get("is_active", True))}


def _check_pin(pin: Optional[str]) -> None:
    if not is_valid_pin(pin or ""):
        raise HTTPException(status_code=400, detail=f"PIN must be exactly {PIN_LENGTH} digits")


def _pin_taken(db, tenant_id: str, digest: str, exclude_id: Optional[str] = None) -> bool:
    docs = (
        db.collection(_STAFF)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("pin_digest", "==", digest))
        .stream()
    )
    return any(d.id != exclude_id for d in docs)


def _get_snapshot(db, tenant_id: str, staff_id: str):
    with backend_call("Staff lookup"):
        snap = db.collection(_STAFF).document(staff_id).get()
    if not snap.exists or (snap.to_dict() or {}).get("tenant_id") != tenant_id:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return snap


def list_staff(db, tenant_id: str) -> List[Dict[str, Any]]:
    with backend_call("Staff listing"):
        docs = (
            db.collection(_STAFF)
            .where(filter=FieldFilter("tenant_id", "==", tenant_id))
            .order_by("created_at", direction=gcf.Query.DESCENDING)
            .stream()
        )
        return [_staff_out(d) for d in docs]


def create_staff(db, tenant_id: str, name: str, pin: str, role: str) -> Dict[str, Any]:
    _check_pin(pin)
    digest = pin_digest(tenant_id, pin)
    with backend_call("Staff creation"):
        if _pin_taken(db, tenant_id, digest):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PIN already in use")
        ref = db.collection(_STAFF).document()
        ref.set({
            "tenant_id": tenant_id,
            "name": name.strip(),
            "role": role,
            "pin_digest": digest,
            "is_active": True,
            "created_at": SERVER_TIMESTAMP,
        })
        snap = ref.get()
    logger.info("Staff %s (%s) created for tenant %s", ref.id, role, tenant_id)
    return _staff_out(snap)


def update_staff(db, tenant_id: str, staff_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    changes = {k: v for k, v in updates.items() if v is not None}
    pin = changes.pop("pin", None)
    if pin is not None:
        _check_pin(pin)
    snap = _get_snapshot(db, tenant_id, staff_id)
    with backend_call("Staff update"):
        if pin is not None:
            digest = pin_digest(tenant_id, pin)
            if _pin_taken(db, tenant_id, digest, exclude_id=staff_id):
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PIN already in use")
            changes["pin_digest"] = digest
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if changes:
            changes["updated_at"] = SERVER_TIMESTAMP
            snap.reference.update(changes)
        return _staff_out(snap.reference.get())


def delete_staff(db, tenant_id: str, staff_id: str) -> None:
    snap = _get_snapshot(db, tenant_id, staff_id)
    with backend_call("Staff deletion"):
        snap.reference.delete()


def verify_pin(db, tenant_id: str, pin: str) -> Optional[Dict[str, Any]]:
    """Active staff member owning this PIN, or None."""
    if not is_valid_pin(pin or ""):
        return None
    docs = list(
        db.collection(_STAFF)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("pin_digest", "==", pin_digest(tenant_id, pin)))
        .where(filter=FieldFilter("is_active", "==", True))
        .limit(1)
        .stream()
    )
    return _staff_out(docs[0]) if docs else None


# ---------- terminal access ----------

def terminal_login(db, tenant_id: str, terminal_id: str, pin: str) -> Dict[str, Any]:
    with backend_call("Terminal login"):
        member = verify_pin(db, tenant_id, pin)
        if not member:
            logger.info("Rejected PIN on terminal %s", terminal_id)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid PIN")
        session = {
            "employee_id": member["id"],
            "name": member.get("name") or "",
            "role": member.get("role") or "cashier",
            "terminal_id": terminal_id,
        }
        HandoffSlots(db).put(tenant_id, terminal_id, "pos_session", session)
    logger.info("Employee %s logged in on terminal %s", member["id"], terminal_id)
    return session


def terminal_logout(db, tenant_id: str, terminal_id: str) -> None:
    with backend_call("Terminal logout"):
        HandoffSlots(db).clear(tenant_id, terminal_id, "pos_session")


def terminal_current(db, tenant_id: str, terminal_id: str) -> Optional[Dict[str, Any]]:
    with backend_call("Terminal session lookup"):
        return HandoffSlots(db).peek(tenant_id, terminal_id, "pos_session")
