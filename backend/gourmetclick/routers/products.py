# gourmetclick/routers/products.py
"""
Products and their modifier groups.

- GET /products, GET /products/{id}, GET /products/{id}/modifiers  (any staff)
- Admin: create, bulk create, update, soft delete, image upload,
  modifier group create / delete
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from gourmetclick.config import get_bucket, get_db
from gourmetclick.core.auth import get_principal
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.product import (
    ImageUploadOut,
    ModifierGroupCreate,
    ModifierGroupOut,
    ProductBulkCreate,
    ProductCreate,
    ProductOut,
    ProductPage,
    ProductUpdate,
)
from gourmetclick.services import menu
from gourmetclick.services.media import upload_image

router = APIRouter(prefix="/products", tags=["Products"])

admin_router = APIRouter(
    prefix="/products",
    tags=["Admin: Products"],
    dependencies=[Depends(require_manager)],
)


@router.get("", response_model=ProductPage, summary="List active products")
def list_products(
    category_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Name contains"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    data, count = menu.list_products(db, principal.tenant_id, category_id, search, page, page_size)
    return {"data": data, "count": count}


@router.get("/{product_id}", response_model=ProductOut, summary="Get product")
def get_product(product_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return menu.get_product(db, principal.tenant_id, product_id)


@router.get("/{product_id}/modifiers", response_model=List[ModifierGroupOut], summary="Modifier groups")
def list_modifiers(product_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    menu.get_product(db, principal.tenant_id, product_id)
    return menu.list_modifier_groups(db, product_id)


@admin_router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED, summary="Create product")
def create_product(body: ProductCreate, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    return menu.create_product(db, principal.tenant_id, body.model_dump())


@admin_router.post("/bulk", status_code=status.HTTP_201_CREATED, summary="Bulk create products")
def bulk_create(body: ProductBulkCreate, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    ids = menu.bulk_create_products(db, principal.tenant_id, [p.model_dump() for p in body.products])
    return {"created": len(ids), "ids": ids}


@admin_router.post("/images", response_model=ImageUploadOut, status_code=status.HTTP_201_CREATED,
                   summary="Upload product image")
async def upload_product_image(
    file: UploadFile = File(...),
    principal: Principal = Depends(get_principal),
    bucket=Depends(get_bucket),
):
    return await upload_image(bucket, file, f"products/{principal.tenant_id}")


@admin_router.put("/{product_id}", response_model=ProductOut, summary="Update product")
def update_product(
    product_id: str,
    body: ProductUpdate,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return menu.update_product(db, principal.tenant_id, product_id, body.model_dump(exclude_none=True))


@admin_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete product (soft)")
def delete_product(product_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    menu.soft_delete_product(db, principal.tenant_id, product_id)


@admin_router.post("/{product_id}/modifiers", response_model=ModifierGroupOut,
                   status_code=status.HTTP_201_CREATED, summary="Create modifier group")
def create_modifier_group(
    product_id: str,
    body: ModifierGroupCreate,
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    return menu.create_modifier_group(db, principal.tenant_id, product_id, body.model_dump())


@admin_router.delete("/modifiers/{group_id}", status_code=status.HTTP_204_NO_CONTENT,
                     summary="Delete modifier group")
def delete_modifier_group(group_id: str, principal: Principal = Depends(get_principal), db=Depends(get_db)):
    menu.delete_modifier_group(db, principal.tenant_id, group_id)
