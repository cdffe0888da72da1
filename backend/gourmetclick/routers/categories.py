# gourmetclick/routers/categories.py
"""
Menu categories
- GET /categories           → ordered by sort_order (any staff)
- Admin: create / update / delete / reorder
"""
from typing import List

from fastapi import APIRouter, Depends, status

from gourmetclick.config import get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.category import CategoryCreate, CategoryOut, CategoryReorder, CategoryUpdate
from gourmetclick.schemas.principal import Principal
from gourmetclick.services import menu

router = APIRouter(prefix="/categories", tags=["Categories"])

admin_router = APIRouter(
    prefix="/categories",
    tags=["Admin: Categories"],
    dependencies=[Depends(require_manager)],
)


@router.get("", response_model=List[CategoryOut], summary="List categories")
def list_categories(principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return menu.list_categories(db, principal.tenant_id)


@admin_router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, summary="Create category")
def create_category(body: CategoryCreate, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return menu.create_category(db, principal.tenant_id, body.name, body.sort_order)


@admin_router.put("/reorder", response_model=List[CategoryOut], summary="Reorder categories")
def reorder_categories(body: CategoryReorder, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return menu.reorder_categories(db, principal.tenant_id, body.ids)


@admin_router.put("/{category_id}", response_model=CategoryOut, summary="Update category")
def update_category(
    category_id: str,
    body: CategoryUpdate,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return menu.update_category(db, principal.tenant_id, category_id, body.model_dump(exclude_none=True))


@admin_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete category")
def delete_category(category_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    menu.delete_category(db, principal.tenant_id, category_id)
