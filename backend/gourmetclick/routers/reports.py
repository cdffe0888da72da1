# gourmetclick/routers/reports.py
"""
Back-office reports (owner/admin, mounted under /admin)
- GET /reports/summary          → sales, expenses, net profit, sales per payment method
- GET /reports/sales            → KPIs, daily chart and the orders of the range
- GET /reports/expenses         → total and totals per category
- GET /reports/cash-cuts        → closed sessions and cut accuracy
- GET /reports/{kind}.csv       → CSV export of sales / expenses / cash-cuts
- GET /reports/visits           → public menu visits (total, week, month)
- GET /reports/visits/daily     → visits per day in the range

Ranges come from `period` (default this_week); `period=custom` needs start and end.
"""
from datetime import date
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, Response

from gourmetclick.config import get_db
from gourmetclick.core.security import require_manager
from gourmetclick.schemas.principal import Principal
from gourmetclick.schemas.report import (
    CashCutAnalytics,
    DailyVisits,
    ExecutiveSummary,
    ExpensesAnalytics,
    ReportPeriod,
    SalesAnalytics,
    VisitSummary,
)
from gourmetclick.services import analytics, reports

admin_router = APIRouter(prefix="/reports", tags=["Admin: Reports"])


def report_range(
    period: ReportPeriod = Query("this_week", description="Named range or 'custom'"),
    start: Optional[date] = Query(None, description="First day (custom)"),
    end: Optional[date] = Query(None, description="Last day (custom)"),
) -> Tuple[date, date]:
    return reports.resolve_period(period, start, end)


def _csv(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@admin_router.get("/summary", response_model=ExecutiveSummary, summary="Executive summary")
def get_summary(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return reports.executive_summary(db, principal.tenant_id, *rng)


@admin_router.get("/sales", response_model=SalesAnalytics, summary="Sales analytics")
def get_sales(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return reports.sales_analytics(db, principal.tenant_id, *rng)


@admin_router.get("/expenses", response_model=ExpensesAnalytics, summary="Expenses analytics")
def get_expenses(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return reports.expenses_analytics(db, principal.tenant_id, *rng)


@admin_router.get("/cash-cuts", response_model=CashCutAnalytics, summary="Cash cut audit")
def get_cash_cuts(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return reports.cash_cut_analytics(db, principal.tenant_id, *rng)


@admin_router.get("/sales.csv", summary="Export sales as CSV")
def export_sales(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    data = reports.sales_analytics(db, principal.tenant_id, *rng)
    return _csv(reports.sales_csv(data["orders"]), f"ventas_{rng[0]}_{rng[1]}.csv")


@admin_router.get("/expenses.csv", summary="Export expenses as CSV")
def export_expenses(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    data = reports.expenses_analytics(db, principal.tenant_id, *rng)
    return _csv(reports.expenses_csv(data["expenses"]), f"gastos_{rng[0]}_{rng[1]}.csv")


@admin_router.get("/cash-cuts.csv", summary="Export the cash cut audit as CSV")
def export_cash_cuts(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    data = reports.cash_cut_analytics(db, principal.tenant_id, *rng)
    return _csv(reports.audit_csv(data["sessions"]), f"auditoria_caja_{rng[0]}_{rng[1]}.csv")


@admin_router.get("/visits", response_model=VisitSummary, summary="Public menu visits")
def get_visits(principal: Principal = Depends(require_manager), db=Depends(get_db)):
    return analytics.visit_summary(db, principal.tenant_id)


@admin_router.get("/visits/daily", response_model=List[DailyVisits], summary="Public menu visits per day")
def get_daily_visits(
    rng: Tuple[date, date] = Depends(report_range),
    principal: Principal = Depends(require_manager),
    db=Depends(get_db),
):
    return analytics.daily_visits(db, principal.tenant_id, *rng)
