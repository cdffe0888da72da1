# gourmetclick/schemas/cash_session.py
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

SessionStatus = Literal["open", "closed"]


class CashSessionOut(BaseModel):
    model_config = {"extra": "allow"}

    id: str
    tenant_id: str
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    status: SessionStatus
    initial_amount: float = 0.0
    expected_amount: Optional[float] = None
    real_amount: Optional[float] = None
    difference: Optional[float] = None
    closed_by: Optional[str] = None
    cashier_name: Optional[str] = None
    notes: Optional[str] = None
    opened_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class OpenSessionBody(BaseModel):
    initial_amount: float = Field(..., ge=0, description="Initial cash fund")
    employee_id: Optional[str] = Field(None, description="Employee opening the register (defaults to the terminal employee)")


class CloseSessionBody(BaseModel):
    real_amount: float = Field(..., ge=0, description="Counted cash (blind cut)")


class SessionSummary(BaseModel):
    session_id: str
    initial_amount: float
    total_sales: float
    total_expenses: float
    cash_sales: float
    by_payment: Dict[str, float]
    expected_balance: float
    order_ids: List[str] = Field(default_factory=list)


class CashCutOut(BaseModel):
    model_config = {"extra": "allow"}

    id: str
    tenant_id: str
    session_id: Optional[str] = None
    total_cash: float = 0.0
    total_card: float = 0.0
    total_transfer: float = 0.0
    total_amount: float = 0.0
    order_count: int = 0
    cut_date: Optional[datetime] = None
