# gourmetclick/routers/public.py
"""
Unauthenticated endpoints
- GET  /public/menu/{slug}          → restaurant, categories, products with modifiers (counts a visit)
- POST /public/menu/{slug}/orders   → customer pickup / delivery order
- GET  /public/link-card/{slug}     → link card page data
- GET  /public/orders/{tracking_id} → order tracking
"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from gourmetclick.config import get_db
from gourmetclick.schemas.order import OrderCreate, OrderTrackingOut
from gourmetclick.schemas.restaurant import LinkCardOut, PublicMenu
from gourmetclick.services import analytics, menu, orders_helpers, restaurant

router = APIRouter(prefix="/public", tags=["Public"])


@router.get("/menu/{slug}", response_model=PublicMenu, summary="Public menu")
def get_menu(slug: str, request: Request, response: Response, db=Depends(get_db)):
    data = restaurant.public_menu(db, slug)
    analytics.track_visit(
        db,
        data["restaurant"]["id"],
        user_agent=request.headers.get("user-agent"),
        ip_address=request.client.host if request.client else None,
    )
    response.headers["Cache-Control"] = "public, max-age=60"
    return data


@router.post("/menu/{slug}/orders", response_model=OrderTrackingOut, status_code=status.HTTP_201_CREATED,
             summary="Place a customer order")
def place_order(slug: str, body: OrderCreate, db=Depends(get_db)):
    if body.order_type not in orders_helpers.PUBLIC_ORDER_TYPES:
        raise HTTPException(status_code=400, detail="Only pickup or delivery orders can be placed online")
    if body.order_type == "delivery" and not (body.delivery_address or "").strip():
        raise HTTPException(status_code=400, detail="Delivery address is required")
    tenant_id = restaurant.tenant_for_slug(db, slug)
    payload = body.model_dump()
    payload["items"] = menu.quote_items(db, tenant_id, payload["items"])
    payload["status"] = "pending"
    return orders_helpers.create_order(db, tenant_id, payload, user_name="Cliente")


@router.get("/link-card/{slug}", response_model=LinkCardOut, summary="Public link card")
def get_link_card(slug: str, db=Depends(get_db)):
    return restaurant.public_link_card(db, slug)


@router.get("/orders/{tracking_id}", response_model=OrderTrackingOut, summary="Track order")
def track_order(tracking_id: str, db=Depends(get_db)):
    return orders_helpers.get_by_tracking(db, tracking_id)
