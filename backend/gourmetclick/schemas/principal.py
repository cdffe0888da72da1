"""
gourmetclick/schemas/principal.py
Roles and the Principal model.
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field

Role = Literal["owner", "admin", "cashier", "waiter"]

class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    role: Role = Field("owner", description="owner | admin | cashier | waiter")
    tenant_id: str = Field(..., description="Restaurant (tenant) this account acts for")
    email: Optional[str] = Field(None, description="E-mail (if any)")
    display_name: Optional[str] = Field(None, description="Display name (if any)")

    @property
    def is_manager(self) -> bool:
        return self.role in ("owner", "admin")
