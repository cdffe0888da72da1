# gourmetclick/routers/staff.py
from typing import List

from fastapi import APIRouter, Depends, status

from gourmetclick.config import get_db
from gourmetclick.core.security import require_manager, require_owner
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.staff import StaffCreate, StaffOut, StaffUpdate
from gourmetclick.services import staff

admin_router = APIRouter(
    prefix="/staff",
    tags=["Admin: Staff"],
    dependencies=[Depends(require_manager)],
)


@admin_router.get("", response_model=List[StaffOut], summary="List staff")
def list_staff(principal: Principal = Depends(require_manager), db=Depends(get_db)):
    return staff.list_staff(db, principal.tenant_id)


@admin_router.post("", response_model=StaffOut, status_code=status.HTTP_201_CREATED, summary="Create staff member")
def create_staff(body: StaffCreate, principal: Principal = Depends(require_manager), db=Depends(get_db)):
    return staff.create_staff(db, principal.tenant_id, body.name, body.pin, body.role)


@admin_router.patch("/{staff_id}", response_model=StaffOut, summary="Update staff member")
def update_staff(
    staff_id: str,
    body: StaffUpdate,
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return staff.update_staff(db, principal.tenant_id, staff_id, body.model_dump(exclude_none=True))


@admin_router.delete("/{staff_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete staff member")
def delete_staff(staff_id: str, principal: Principal = Depends(require_owner), db=Depends(get_db)):
    staff.delete_staff(db, principal.tenant_id, staff_id)
