# gourmetclick/schemas/restaurant.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from gourmetclick.schemas.category import CategoryOut
from gourmetclick.schemas.product import PublicProductOut

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

class ProfileUpdate(BaseModel):
    restaurant_name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN, max_length=60)
    phone: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    theme_color: Optional[str] = None
    popup_enabled: Optional[bool] = None
    delivery_enabled: Optional[bool] = None
    pickup_enabled: Optional[bool] = None

class ProfileOut(BaseModel):
    model_config = {"extra": "allow"}

    id: str
    restaurant_name: Optional[str] = None
    slug: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    theme_color: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    popup_url: Optional[str] = None
    popup_enabled: bool = False
    delivery_enabled: bool = True
    pickup_enabled: bool = True
    updated_at: Optional[datetime] = None

class SlugAvailability(BaseModel):
    slug: str
    available: bool

class PublicMenu(BaseModel):
    restaurant: ProfileOut
    categories: List[CategoryOut]
    products: List[PublicProductOut]

# ---------- link card ----------
class LinkItem(BaseModel):
    label: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)

class LinkCardUpsert(BaseModel):
    slug: str = Field(..., pattern=SLUG_PATTERN, max_length=60)
    title: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    theme: Dict[str, Any] = Field(default_factory=dict)
    links: List[LinkItem] = Field(default_factory=list)

class LinkCardOut(LinkCardUpsert):
    tenant_id: str
    updated_at: Optional[datetime] = None
