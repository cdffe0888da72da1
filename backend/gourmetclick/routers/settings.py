# gourmetclick/routers/settings.py
"""
Restaurant profile settings (owner only) and slug availability.
"""
from typing import Literal

from fastapi import APIRouter, Depends, File, Query, UploadFile

from gourmetclick.config import get_bucket, get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_owner
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.restaurant import ProfileOut, ProfileUpdate, SlugAvailability
from gourmetclick.services import restaurant
from gourmetclick.services.media import upload_image

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/profile", response_model=ProfileOut, summary="Restaurant profile")
def get_profile(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return restaurant.get_profile(db, principal.tenant_id)


@router.put("/profile", response_model=ProfileOut, summary="Update restaurant profile")
def update_profile(body: ProfileUpdate, principal: Principal = Depends(require_owner), db=Depends(get_db)):
    return restaurant.update_profile(db, principal.tenant_id, body.model_dump(exclude_none=True))


@router.get("/slug-availability", response_model=SlugAvailability, summary="Is this slug free?")
def slug_availability(
    slug: str = Query(..., min_length=1),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return {"slug": slug, "available": restaurant.is_slug_available(db, slug, principal.tenant_id)}


@router.post("/images/{kind}", response_model=ProfileOut, summary="Upload logo, banner or popup image")
async def upload_profile_image(
    kind: Literal["logo", "banner", "popup"],
    file: UploadFile = File(...),
    principal: Principal = Depends(require_owner),
    db=Depends(get_db),
    bucket=Depends(get_bucket),
):
    uploaded = await upload_image(bucket, file, f"restaurants/{principal.tenant_id}/{kind}")
    return restaurant.set_profile_image(db, principal.tenant_id, kind, uploaded["url"])
