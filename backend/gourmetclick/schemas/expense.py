# gourmetclick/schemas/expense.py
from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field

ExpenseCategory = Literal["supplies", "services", "payroll", "maintenance", "other"]

class ExpenseCreate(BaseModel):
    amount: float = Field(..., gt=0, description="Amount taken from the register")
    category: ExpenseCategory = "other"
    description: str = Field(..., min_length=1)

class ExpenseOut(ExpenseCreate):
    id: str
    tenant_id: str
    cash_session_id: Optional[str] = None
    receipt_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
