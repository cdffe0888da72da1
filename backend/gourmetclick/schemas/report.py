# gourmetclick/schemas/report.py
from datetime import date
from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from gourmetclick.schemas.cash_session import CashSessionOut
from gourmetclick.schemas.expense import ExpenseOut
from gourmetclick.schemas.order import OrderOut

ReportPeriod = Literal["today", "yesterday", "this_week", "last_week", "this_month", "last_month", "custom"]


class ExecutiveSummary(BaseModel):
    start: date
    end: date
    total_sales: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    breakdown: Dict[str, float] = Field(default_factory=dict, description="Delivered sales per payment method")


class DailyTotal(BaseModel):
    date: str
    total: float


class SalesKpis(BaseModel):
    total_revenue: float = 0.0
    average_ticket: float = 0.0
    delivered_count: int = 0
    cancelled_count: int = 0


class SalesAnalytics(BaseModel):
    start: date
    end: date
    kpis: SalesKpis
    chart: List[DailyTotal] = Field(default_factory=list)
    orders: List[OrderOut] = Field(default_factory=list)


class CategoryTotal(BaseModel):
    name: str
    value: float


class ExpensesAnalytics(BaseModel):
    start: date
    end: date
    total: float = 0.0
    by_category: List[CategoryTotal] = Field(default_factory=list)
    expenses: List[ExpenseOut] = Field(default_factory=list)


class CashCutKpis(BaseModel):
    total_cuts: int = 0
    total_declared: float = 0.0
    total_difference: float = 0.0
    perfect_cuts: int = 0


class CashCutAnalytics(BaseModel):
    start: date
    end: date
    kpis: CashCutKpis
    sessions: List[CashSessionOut] = Field(default_factory=list)


class VisitSummary(BaseModel):
    total: int = 0
    this_week: int = 0
    this_month: int = 0


class DailyVisits(BaseModel):
    date: str
    visits: int
