# gourmetclick/routers/orders.py
"""
Orders of the restaurant (staff side).

- GET    /orders                     → list (mode: active | caja | historial)
- GET    /orders/{id}                → detail with audit log
- POST   /orders                     → create (dine-in needs an open cash session)
- PUT    /orders/{id}                → edit items / metadata
- PATCH  /orders/{id}/status         → move along the kitchen flow
- POST   /orders/{id}/prepare-edit   → hand the order to a POS terminal for editing
- Admin: POST /orders/{id}/reopen, DELETE /orders/{id}
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status

from gourmetclick.config import get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.cart import PaymentMethod
from gourmetclick.schemas.order import (
    OrderCreate,
    OrderListMode,
    OrderOut,
    OrderPage,
    OrderUpdate,
    StatusUpdate,
)
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import orders_helpers, pos

router = APIRouter(prefix="/orders", tags=["Orders"])
admin_router = APIRouter(
    prefix="/orders",
    tags=["Admin: Orders"],
    dependencies=[Depends(require_manager)],
)


def _user_name(principal: Principal) -> str:
    return principal.display_name or principal.email or principal.uid


@router.get("", response_model=OrderPage, summary="List orders")
def list_orders(
    mode: Optional[OrderListMode] = Query(None, description="active | caja | historial"),
    payment_method: Optional[PaymentMethod] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    data, count = orders_helpers.list_orders(
        db, principal.tenant_id, mode=mode, payment_method=payment_method, page=page, page_size=page_size
    )
    return {"data": data, "count": count}


@router.get("/{order_id}", response_model=OrderOut, summary="Order detail")
def get_order(order_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return orders_helpers.get_order(db, principal.tenant_id, order_id)


@router.post("", response_model=OrderOut, status_code=status.HTTP_201_CREATED, summary="Create order")
def create_order(body: OrderCreate, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return orders_helpers.create_order(db, principal.tenant_id, body.model_dump(), _user_name(principal))


@router.put("/{order_id}", response_model=OrderOut, summary="Edit order")
def update_order(
    order_id: str,
    body: OrderUpdate,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return orders_helpers.update_order(
        db, principal.tenant_id, order_id, body.model_dump(exclude_none=True), _user_name(principal)
    )


@router.patch("/{order_id}/status", response_model=OrderOut, summary="Change order status")
def update_status(
    order_id: str,
    body: StatusUpdate,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return orders_helpers.update_status(db, principal.tenant_id, order_id, body.status, _user_name(principal))


@router.post("/{order_id}/prepare-edit", summary="Send order to a terminal for editing")
def prepare_edit(
    order_id: str,
    x_terminal_id: str = Header(..., min_length=1),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    pos.prepare_edit(db, principal.tenant_id, x_terminal_id, order_id)
    return {"detail": "Order ready for editing", "terminal_id": x_terminal_id}


@admin_router.post("/{order_id}/reopen", response_model=OrderOut, summary="Reopen a closed order")
def reopen_order(order_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return orders_helpers.reopen_order(db, principal.tenant_id, order_id, _user_name(principal))


@admin_router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete order")
def delete_order(
    order_id: str,
    force: bool = Query(False, description="Delete even when the order belongs to a cash cut"),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    orders_helpers.delete_order(db, principal.tenant_id, order_id, force=force)
