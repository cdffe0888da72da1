# gourmetclick/schemas/category.py
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

class CategoryCreate(BaseModel):
    """Menu category input."""
    name: str = Field(..., min_length=1, description="Category name")
    sort_order: Optional[int] = Field(None, ge=0, description="Position in the menu (appended when empty)")

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    sort_order: Optional[int] = Field(None, ge=0)

class CategoryReorder(BaseModel):
    """Category ids in their new display order."""
    ids: List[str] = Field(..., min_length=1)

# ---------- output ----------
class CategoryOut(BaseModel):
    id: str
    name: str
    sort_order: int = 0
    created_at: Optional[datetime] = None
