# gourmetclick/schemas/staff.py
"""
Staff members and terminal PIN access.
PINs arrive in plain text and are stored only as digests.
"""
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

StaffRole = Literal["admin", "cashier", "waiter"]

class StaffCreate(BaseModel):
    name: str = Field(..., min_length=1)
    pin: str = Field(..., description="4-digit numeric PIN")
    role: StaffRole = "cashier"

class StaffUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    pin: Optional[str] = None
    role: Optional[StaffRole] = None
    is_active: Optional[bool] = None

class StaffOut(BaseModel):
    id: str
    name: str
    role: StaffRole
    is_active: bool = True
    created_at: Optional[datetime] = None

class PinLogin(BaseModel):
    pin: str

class TerminalSession(BaseModel):
    employee_id: str
    name: str
    role: StaffRole
    terminal_id: str
