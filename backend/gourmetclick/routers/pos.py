# gourmetclick/routers/pos.py
"""
POS terminal endpoints. Every request names its terminal with the
`X-Terminal-Id` header; the cart lives in the terminal, in memory.

- GET    /pos/catalog                → cached active products and categories
- GET    /pos/cart                   → cart snapshot
- POST   /pos/cart/items             → add a catalog product (merges equal lines)
- DELETE /pos/cart/items/{line_id}   → remove a line
- PATCH  /pos/cart/items/{line_id}   → change quantity by a delta (min 1)
- PATCH  /pos/cart                   → order metadata
- DELETE /pos/cart                   → clear
- POST   /pos/cart/restore           → consume the edit-order hand-off slot
- POST   /pos/checkout               → create or update the order
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from gourmetclick.config import get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.schemas.cart import AddItemBody, CartMetadataUpdate, CartOut, QuantityDelta
from gourmetclick.schemas.order import OrderOut
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import pos
from gourmetclick.services.terminals import Terminal, TerminalRegistry, get_terminals

router = APIRouter(prefix="/pos", tags=["POS"])


async def get_terminal(
    x_terminal_id: str = Header(..., min_length=1, description="POS terminal id"),
    principal: Principal = Depends(get_principal),
    terminals: TerminalRegistry = Depends(get_terminals),
) -> Terminal:
    return terminals.attach(x_terminal_id, principal.tenant_id, uid=principal.uid)


@router.get("/catalog", summary="Terminal catalog")
def get_catalog(
    search: Optional[str] = Query(None, description="Name contains"),
    category_id: Optional[str] = Query(None, description="Category id or 'all'"),
    terminal: Terminal = Depends(get_terminal),
):
    with terminal.lock:
        catalog = terminal.catalog.get(terminal.tenant_id)
    return {
        "categories": catalog.categories,
        "products": catalog.filter(search or "", category_id),
    }


@router.get("/cart", response_model=CartOut, summary="Cart snapshot")
def get_cart(terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        return terminal.cart.snapshot()


@router.post("/cart/items", response_model=CartOut, status_code=status.HTTP_201_CREATED, summary="Add to cart")
def add_item(body: AddItemBody, terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        pos.add_catalog_item(terminal, body.product_id, body.modifiers, body.note, body.quantity)
        return terminal.cart.snapshot()


@router.delete("/cart/items/{line_id}", response_model=CartOut, summary="Remove a line")
def remove_item(line_id: str, terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        terminal.cart.remove_item(line_id)
        return terminal.cart.snapshot()


@router.patch("/cart/items/{line_id}", response_model=CartOut, summary="Change line quantity")
def update_quantity(line_id: str, body: QuantityDelta, terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        terminal.cart.update_quantity(line_id, body.delta)
        return terminal.cart.snapshot()


@router.patch("/cart", response_model=CartOut, summary="Update order metadata")
def update_metadata(body: CartMetadataUpdate, terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        terminal.cart.set_metadata(**body.model_dump(exclude_none=True))
        return terminal.cart.snapshot()


@router.delete("/cart", response_model=CartOut, summary="Clear cart")
def clear_cart(terminal: Terminal = Depends(get_terminal)):
    with terminal.lock:
        terminal.cart.clear()
        return terminal.cart.snapshot()


@router.post("/cart/restore", response_model=CartOut, summary="Load the order prepared for editing")
def restore_cart(terminal: Terminal = Depends(get_terminal), db=Depends(get_db)):
    with terminal.lock:
        if pos.restore_edit(db, terminal) is None:
            raise HTTPException(status_code=404, detail="No order waiting to be edited")
        return terminal.cart.snapshot()


@router.post("/checkout", response_model=OrderOut, summary="Checkout the cart")
def checkout(
    terminal: Terminal = Depends(get_terminal),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    with terminal.lock:
        return pos.checkout(db, terminal, principal)
