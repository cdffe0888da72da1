# gourmetclick/routers/terminal.py
"""
Staff PIN access on a POS terminal (the device itself is logged in with the
restaurant account; employees switch with their PIN).
"""
from fastapi import APIRouter, Depends, Header, status

from gourmetclick.config import get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.staff import PinLogin, TerminalSession
from gourmetclick.services import staff

router = APIRouter(prefix="/terminal", tags=["Terminal"])


@router.post("/login", response_model=TerminalSession, summary="Employee PIN login")
def pin_login(
    body: PinLogin,
    x_terminal_id: str = Header(..., min_length=1),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return staff.terminal_login(db, principal.tenant_id, x_terminal_id, body.pin)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Employee logout")
def pin_logout(
    x_terminal_id: str = Header(..., min_length=1),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    staff.terminal_logout(db, principal.tenant_id, x_terminal_id)


@router.get("/current", summary="Employee logged in on this terminal")
def current(
    x_terminal_id: str = Header(..., min_length=1),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return {"session": staff.terminal_current(db, principal.tenant_id, x_terminal_id)}
