# gourmetclick/routers/link_card.py
from fastapi import APIRouter, Depends, HTTPException

from gourmetclick.config import get_db
from gourmetclick.core.security import require_owner
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.restaurant import LinkCardOut, LinkCardUpsert
from gourmetclick.services import restaurant

router = APIRouter(prefix="/link-card", tags=["Link card"])


@router.get("", response_model=LinkCardOut, summary="Own link card")
def get_link_card(principal: Principal = Depends(require_owner), db=Depends(get_db)):
    card = restaurant.get_link_card(db, principal.tenant_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Link card not configured")
    return card


@router.put("", response_model=LinkCardOut, summary="Create or update link card")
def upsert_link_card(body: LinkCardUpsert, principal: Principal = Depends(require_owner), db=Depends(get_db)):
    return restaurant.upsert_link_card(db, principal.tenant_id, body.model_dump())
