# gourmetclick/schemas/product.py
from __future__ import annotations

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

# ---------- modifiers ----------
class ModifierOptionIn(BaseModel):
    name: str = Field(..., min_length=1)
    extra_price: float = Field(0.0, ge=0)

class ModifierOptionOut(ModifierOptionIn):
    id: str

class ModifierGroupCreate(BaseModel):
    """A group of options offered with a product (e.g. 'Extras')."""
    name: str = Field(..., min_length=1)
    min_selection: int = Field(0, ge=0)
    max_selection: Optional[int] = Field(None, ge=1)
    options: List[ModifierOptionIn] = Field(default_factory=list)

class ModifierGroupOut(BaseModel):
    id: str
    product_id: str
    name: str
    min_selection: int = 0
    max_selection: Optional[int] = None
    options: List[ModifierOptionOut] = Field(default_factory=list)

# ---------- products ----------
class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field("", description="Menu description")
    price: float = Field(..., ge=0, description="Base price")
    category_id: Optional[str] = Field(None, description="Menu category")
    is_available: bool = Field(True, description="Shown on the public menu")

class ProductCreate(ProductBase):
    image_url: Optional[str] = None

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category_id: Optional[str] = None
    is_available: Optional[bool] = None
    image_url: Optional[str] = None

class ProductBulkCreate(BaseModel):
    products: List[ProductCreate] = Field(..., min_length=1)

class ProductOut(ProductBase):
    id: str
    image_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProductPage(BaseModel):
    data: List[ProductOut]
    count: int

class PublicProductOut(ProductOut):
    modifier_groups: List[ModifierGroupOut] = Field(default_factory=list)

class ImageUploadOut(BaseModel):
    url: str
    path: str
