# gourmetclick/routers/cash_sessions.py
"""
Cash register ("caja"): open / close sessions, summaries and cash cut history.
"""
from typing import List

from fastapi import APIRouter, Depends, Query, status

from gourmetclick.config import get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.cash_session import (
    CashCutOut,
    CashSessionOut,
    CloseSessionBody,
    OpenSessionBody,
    SessionSummary,
)
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import cash_sessions

router = APIRouter(prefix="/cash-sessions", tags=["Cash sessions"])


@router.get("/active", summary="Open session of the restaurant")
def get_active(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    session = cash_sessions.active_session(db, principal.tenant_id)
    return {"session": CashSessionOut(**session) if session else None}


@router.post("", response_model=CashSessionOut, status_code=status.HTTP_201_CREATED, summary="Open session")
def open_session(body: OpenSessionBody, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return cash_sessions.open_session(
        db,
        principal.tenant_id,
        body.initial_amount,
        employee_id=body.employee_id or principal.uid,
        employee_name=principal.display_name,
    )


@router.get("/history", summary="Sessions, newest first")
def history(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return cash_sessions.history(db, principal.tenant_id, page=page, page_size=page_size)


@router.get("/cuts", response_model=List[CashCutOut], summary="Cash cuts")
def list_cuts(principal: Principal = Depends(require_manager), db=Depends(get_db)):
    return cash_sessions.cash_cuts(db, principal.tenant_id)


@router.get("/{session_id}/summary", response_model=SessionSummary, summary="Session totals")
def summary(session_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return cash_sessions.session_summary(db, principal.tenant_id, session_id)


@router.post("/{session_id}/close", response_model=CashSessionOut, summary="Close session (blind cut)")
def close_session(
    session_id: str,
    body: CloseSessionBody,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return cash_sessions.close_session(
        db,
        principal.tenant_id,
        session_id,
        body.real_amount,
        closed_by=principal.uid,
        cashier_name=principal.display_name or principal.email,
    )
