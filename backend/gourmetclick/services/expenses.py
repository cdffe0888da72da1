# gourmetclick/services/expenses.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from google.cloud import firestore as gcf
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.services import cash_sessions

logger = logging.getLogger("gourmetclick.expenses")

_EXPENSES = collection_name("expenses")


def list_expenses(db, tenant_id: str, session_id: Optional[str] = None) -> List[Dict[str, Any]]:
    q = db.collection(_EXPENSES).where(filter=FieldFilter("tenant_id", "==", tenant_id))
    if session_id:
        q = q.where(filter=FieldFilter("cash_session_id", "==", session_id))
    with backend_call("Expense listing"):
        return [
            {**(d.to_dict() or {}), "id": d.id}
            for d in q.order_by("created_at", direction=gcf.Query.DESCENDING).stream()
        ]


def create_expense(
    db,
    tenant_id: str,
    amount: float,
    category: str,
    description: str,
    receipt_url: Optional[str] = None,
    created_by: Optional[str] = None,
) -> Dict[str, Any]:
    """Records a cash withdrawal; linked to the open cash session when there is one."""
    if amount <= 0:
        raise HTTPException(status_code=400, detail="Amount must be positive")
    session = cash_sessions.active_session(db, tenant_id)
    ref = db.collection(_EXPENSES).document()
    with backend_call("Expense creation"):
        ref.set({
            "tenant_id": tenant_id,
            "amount": float(amount),
            "category": category,
            "description": description.strip(),
            "receipt_url": receipt_url,
            "cash_session_id": session["id"] if session else None,
            "created_by": created_by,
            "created_at": SERVER_TIMESTAMP,
        })
        snap = ref.get()
    logger.info("Expense %s of %.2f recorded for tenant %s", ref.id, amount, tenant_id)
    return {**(snap.to_dict() or {}), "id": snap.id}


def delete_expense(db, tenant_id: str, expense_id: str) -> None:
    ref = db.collection(_EXPENSES).document(expense_id)
    with backend_call("Expense lookup"):
        snap = ref.get()
    if not snap.exists or (snap.to_dict() or {}).get("tenant_id") != tenant_id:
        raise HTTPException(status_code=404, detail="Expense not found")
    with backend_call("Expense deletion"):
        ref.delete()
