# gourmetclick/services/cash_sessions.py
"""
Cash register sessions ("caja").

- one open session per tenant; duplicates are closed automatically (newest wins)
- expected balance = initial fund + cash sales of delivered orders - expenses
- closing a session stamps every settled order (delivered/cancelled, no cut yet)
  with a new cash cut record
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call

logger = logging.getLogger("gourmetclick.cash")

_SESSIONS = collection_name("cash_sessions")
_ORDERS = collection_name("orders")
_EXPENSES = collection_name("expenses")
_CASH_CUTS = collection_name("cash_cuts")

ORPHAN_NOTE = "Cierre forzado automático (sesión huérfana/duplicada)"
PAYMENT_METHODS = ("cash", "card", "transfer")


def _money(v: Any) -> Decimal:
    try:
        return Decimal(str(v if v is not None else 0))
    except Exception:
        return Decimal("0")


def _doc_out(doc) -> Dict[str, Any]:
    return {**(doc.to_dict() or {}), "id": doc.id}


def _open_sessions(db, tenant_id: str):
    return list(
        db.collection(_SESSIONS)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("status", "==", "open"))
        .order_by("opened_at", direction=gcf.Query.DESCENDING)
        .stream()
    )


def _close_orphans(orphans) -> int:
    closed = 0
    for orphan in orphans:
        try:
            orphan.reference.update({
                "status": "closed",
                "closed_at": SERVER_TIMESTAMP,
                "notes": ORPHAN_NOTE,
            })
            closed += 1
        except GoogleAPICallError as exc:
            logger.error("Failed to auto-close orphan session %s: %s", orphan.id, exc)
    return closed


def active_session(db, tenant_id: str) -> Optional[Dict[str, Any]]:
    """Newest open session of the tenant; older open sessions are closed on the way."""
    with backend_call("Active session lookup"):
        sessions = _open_sessions(db, tenant_id)
    if not sessions:
        return None
    current, orphans = sessions[0], sessions[1:]
    if orphans:
        logger.warning("Auto-closing %d duplicate open sessions for tenant %s", len(orphans), tenant_id)
        _close_orphans(orphans)
    return _doc_out(current)


def get_session(db, tenant_id: str, session_id: str) -> Dict[str, Any]:
    with backend_call("Cash session lookup"):
        snap = db.collection(_SESSIONS).document(session_id).get()
    if not snap.exists or (snap.to_dict() or {}).get("tenant_id") != tenant_id:
        raise HTTPException(status_code=404, detail="Cash session not found")
    return _doc_out(snap)


def open_session(db, tenant_id: str, initial_amount: float,
                 employee_id: Optional[str] = None, employee_name: Optional[str] = None) -> Dict[str, Any]:
    if active_session(db, tenant_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A cash session is already open")
    ref = db.collection(_SESSIONS).document()
    with backend_call("Open cash session"):
        ref.set({
            "tenant_id": tenant_id,
            "employee_id": employee_id,
            "employee_name": employee_name,
            "status": "open",
            "initial_amount": float(initial_amount),
            "expected_amount": None,
            "real_amount": None,
            "difference": None,
            "opened_at": SERVER_TIMESTAMP,
            "closed_at": None,
        })
        snap = ref.get()
    logger.info("Cash session %s opened for tenant %s", ref.id, tenant_id)
    return _doc_out(snap)


def _session_orders(db, session_id: str) -> List[Dict[str, Any]]:
    return [
        _doc_out(d)
        for d in db.collection(_ORDERS)
        .where(filter=FieldFilter("cash_session_id", "==", session_id))
        .where(filter=FieldFilter("status", "==", "delivered"))
        .stream()
    ]


def _session_expenses(db, session_id: str) -> List[Dict[str, Any]]:
    return [
        _doc_out(d)
        for d in db.collection(_EXPENSES)
        .where(filter=FieldFilter("cash_session_id", "==", session_id))
        .stream()
    ]


def summarize(session: Dict[str, Any], orders: List[Dict[str, Any]], expenses: List[Dict[str, Any]]) -> Dict[str, Any]:
    by_payment = {m: Decimal("0") for m in PAYMENT_METHODS}
    total_sales = Decimal("0")
    for o in orders:
        amount = _money(o.get("total"))
        total_sales += amount
        method = o.get("payment_method") or "cash"
        by_payment[method] = by_payment.get(method, Decimal("0")) + amount
    total_expenses = sum((_money(e.get("amount")) for e in expenses), Decimal("0"))
    initial = _money(session.get("initial_amount"))
    expected = initial + by_payment["cash"] - total_expenses
    return {
        "session_id": session["id"],
        "initial_amount": float(initial),
        "total_sales": float(total_sales),
        "total_expenses": float(total_expenses),
        "cash_sales": float(by_payment["cash"]),
        "by_payment": {k: float(v) for k, v in by_payment.items()},
        "expected_balance": float(expected),
        "order_ids": [o["id"] for o in orders],
    }


def session_summary(db, tenant_id: str, session_id: str) -> Dict[str, Any]:
    session = get_session(db, tenant_id, session_id)
    with backend_call("Session summary"):
        return summarize(session, _session_orders(db, session_id), _session_expenses(db, session_id))


def _stamp_cash_cut(db, tenant_id: str, session_id: str, summary: Dict[str, Any]) -> Optional[str]:
    """Creates the cash cut and links every settled order that has none yet."""
    settled = list(
        db.collection(_ORDERS)
        .where(filter=FieldFilter("tenant_id", "==", tenant_id))
        .where(filter=FieldFilter("status", "in", ["delivered", "cancelled"]))
        .where(filter=FieldFilter("cash_cut_id", "==", None))
        .stream()
    )
    cut_ref = db.collection(_CASH_CUTS).document()
    cut_ref.set({
        "tenant_id": tenant_id,
        "session_id": session_id,
        "total_cash": summary["by_payment"].get("cash", 0.0),
        "total_card": summary["by_payment"].get("card", 0.0),
        "total_transfer": summary["by_payment"].get("transfer", 0.0),
        "total_amount": summary["total_sales"],
        "order_count": len(summary["order_ids"]),
        "cut_date": SERVER_TIMESTAMP,
    })
    batch = db.batch()
    for doc in settled:
        batch.update(doc.reference, {"cash_cut_id": cut_ref.id})
    batch.commit()
    return cut_ref.id


def close_session(db, tenant_id: str, session_id: str, real_amount: float,
                  closed_by: Optional[str] = None, cashier_name: Optional[str] = None) -> Dict[str, Any]:
    session = get_session(db, tenant_id, session_id)
    if session.get("status") != "open":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cash session is already closed")

    with backend_call("Close cash session"):
        summary = summarize(session, _session_orders(db, session_id), _session_expenses(db, session_id))
        expected = summary["expected_balance"]
        real = float(real_amount)
        ref = db.collection(_SESSIONS).document(session_id)
        ref.update({
            "status": "closed",
            "expected_amount": expected,
            "real_amount": real,
            "difference": float(_money(real) - _money(expected)),
            "closed_at": SERVER_TIMESTAMP,
            "closed_by": closed_by,
            "cashier_name": cashier_name,
        })
        closed = ref.get()

    # session is closed at this point; a failed stamp is logged, not raised
    try:
        cut_id = _stamp_cash_cut(db, tenant_id, session_id, summary)
        logger.info("Session %s closed, cash cut %s", session_id, cut_id)
    except GoogleAPICallError as exc:
        logger.error("Error stamping cash cut for session %s: %s", session_id, exc)
    return _doc_out(closed)


def history(db, tenant_id: str, page: int = 1, page_size: int = 50) -> Dict[str, Any]:
    with backend_call("Session history"):
        docs = [
            _doc_out(d)
            for d in db.collection(_SESSIONS)
            .where(filter=FieldFilter("tenant_id", "==", tenant_id))
            .order_by("opened_at", direction=gcf.Query.DESCENDING)
            .stream()
        ]
    start = (page - 1) * page_size
    return {"data": docs[start:start + page_size], "count": len(docs)}


def cash_cuts(db, tenant_id: str) -> List[Dict[str, Any]]:
    with backend_call("Cash cut listing"):
        return [
            _doc_out(d)
            for d in db.collection(_CASH_CUTS)
            .where(filter=FieldFilter("tenant_id", "==", tenant_id))
            .order_by("cut_date", direction=gcf.Query.DESCENDING)
            .stream()
        ]


def _opened_key(doc):
    opened = (doc.to_dict() or {}).get("opened_at")
    return (opened is not None, opened)


def sweep_orphan_sessions(db) -> int:
    """
    Closes duplicate open sessions for every tenant.
    Returns the number of sessions closed.
    """
    by_tenant: Dict[str, list] = {}
    for doc in db.collection(_SESSIONS).where(filter=FieldFilter("status", "==", "open")).stream():
        tenant = (doc.to_dict() or {}).get("tenant_id")
        if tenant:
            by_tenant.setdefault(tenant, []).append(doc)

    closed = 0
    for tenant, docs in by_tenant.items():
        if len(docs) < 2:
            continue
        docs.sort(key=_opened_key, reverse=True)
        logger.warning("Sweep: %d duplicate open sessions for tenant %s", len(docs) - 1, tenant)
        closed += _close_orphans(docs[1:])
    return closed
