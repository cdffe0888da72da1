# gourmetclick/services/reports.py
"""
Back-office reports over a date range: executive summary, sales, expenses and
the cash-cut audit, plus CSV exports of each list.

- only delivered orders count as revenue
- ranges are inclusive calendar days in UTC
"""
from __future__ import annotations

import csv
import io
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException
from google.cloud import firestore as gcf
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.services.orders_helpers import order_doc_to_out

_ORDERS = collection_name("orders")
_EXPENSES = collection_name("expenses")
_SESSIONS = collection_name("cash_sessions")

PAYMENT_METHODS = ("cash", "card", "transfer")
CSV_BOM = "\ufeff"


def resolve_period(
    period: str = "this_week",
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """(start, end) of a named period; `custom` takes the explicit bounds."""
    today = today or datetime.now(timezone.utc).date()
    if period == "today":
        return today, today
    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if period == "this_week":
        return today - timedelta(days=today.weekday()), today
    if period == "last_week":
        first = today - timedelta(days=today.weekday() + 7)
        return first, first + timedelta(days=6)
    if period == "this_month":
        return today.replace(day=1), today
    if period == "last_month":
        last = today.replace(day=1) - timedelta(days=1)
        return last.replace(day=1), last
    if period == "custom":
        if start is None or end is None:
            raise HTTPException(status_code=400, detail="A custom period needs start and end")
        if end < start:
            raise HTTPException(status_code=400, detail="end must not be before start")
        return start, end
    raise HTTPException(status_code=400, detail=f"Unknown period: {period}")


def day_bounds(start: date, end: date) -> Tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.max, tzinfo=timezone.utc),
    )


def _money(v: Any) -> Decimal:
    try:
        return Decimal(str(v if v is not None else 0))
    except Exception:
        return Decimal("0")


def as_utc_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return as_utc_datetime(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def _day_key(value: Any) -> Optional[str]:
    dt = as_utc_datetime(value)
    return dt.date().isoformat() if dt else None


def _between(db, col: str, tenant_id: str, field: str, start: date, end: date, *filters: FieldFilter):
    start_dt, end_dt = day_bounds(start, end)
    q = db.collection(col).where(filter=FieldFilter("tenant_id", "==", tenant_id))
    for f in filters:
        q = q.where(filter=f)
    q = q.where(filter=FieldFilter(field, ">=", start_dt)).where(filter=FieldFilter(field, "<=", end_dt))
    return list(q.order_by(field, direction=gcf.Query.DESCENDING).stream())


def _rows(docs) -> List[Dict[str, Any]]:
    return [{**(d.to_dict() or {}), "id": d.id} for d in docs]


# ──────────────────────────────────────────────────────────────────────────────
# Reports
# ──────────────────────────────────────────────────────────────────────────────

def executive_summary(db, tenant_id: str, start: date, end: date) -> Dict[str, Any]:
    with backend_call("Executive summary"):
        sales = _rows(_between(db, _ORDERS, tenant_id, "created_at", start, end,
                               FieldFilter("status", "==", "delivered")))
        expenses = _rows(_between(db, _EXPENSES, tenant_id, "created_at", start, end))

    breakdown = {m: Decimal("0") for m in PAYMENT_METHODS}
    for o in sales:
        method = o.get("payment_method") or "cash"
        breakdown[method] = breakdown.get(method, Decimal("0")) + _money(o.get("total"))
    total_sales = sum(breakdown.values(), Decimal("0"))
    total_expenses = sum((_money(e.get("amount")) for e in expenses), Decimal("0"))
    return {
        "start": start,
        "end": end,
        "total_sales": float(total_sales),
        "total_expenses": float(total_expenses),
        "net_profit": float(total_sales - total_expenses),
        "breakdown": {k: float(v) for k, v in breakdown.items()},
    }


def sales_analytics(db, tenant_id: str, start: date, end: date) -> Dict[str, Any]:
    with backend_call("Sales analytics"):
        orders = [order_doc_to_out(d) for d in _between(db, _ORDERS, tenant_id, "created_at", start, end)]

    delivered = [o for o in orders if o.get("status") == "delivered"]
    cancelled = [o for o in orders if o.get("status") == "cancelled"]
    revenue = sum((_money(o.get("total")) for o in delivered), Decimal("0"))
    average = (revenue / len(delivered)).quantize(Decimal("0.01")) if delivered else Decimal("0")

    by_day: Dict[str, Decimal] = {}
    for o in delivered:
        key = _day_key(o.get("created_at"))
        if key:
            by_day[key] = by_day.get(key, Decimal("0")) + _money(o.get("total"))

    return {
        "start": start,
        "end": end,
        "kpis": {
            "total_revenue": float(revenue),
            "average_ticket": float(average),
            "delivered_count": len(delivered),
            "cancelled_count": len(cancelled),
        },
        "chart": [{"date": k, "total": float(v)} for k, v in sorted(by_day.items())],
        "orders": orders,
    }


def expenses_analytics(db, tenant_id: str, start: date, end: date) -> Dict[str, Any]:
    with backend_call("Expenses analytics"):
        expenses = _rows(_between(db, _EXPENSES, tenant_id, "created_at", start, end))

    by_category: Dict[str, Decimal] = {}
    for e in expenses:
        cat = e.get("category") or "other"
        by_category[cat] = by_category.get(cat, Decimal("0")) + _money(e.get("amount"))
    chart = sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)
    return {
        "start": start,
        "end": end,
        "total": float(sum(by_category.values(), Decimal("0"))),
        "by_category": [{"name": k, "value": float(v)} for k, v in chart],
        "expenses": expenses,
    }


def cash_cut_analytics(db, tenant_id: str, start: date, end: date) -> Dict[str, Any]:
    """Closed sessions in the range; a cut is perfect when counted == expected."""
    with backend_call("Cash cut analytics"):
        sessions = _rows(_between(db, _SESSIONS, tenant_id, "closed_at", start, end,
                                  FieldFilter("status", "==", "closed")))
    return {
        "start": start,
        "end": end,
        "kpis": {
            "total_cuts": len(sessions),
            "total_declared": float(sum((_money(s.get("real_amount")) for s in sessions), Decimal("0"))),
            "total_difference": float(sum((_money(s.get("difference")) for s in sessions), Decimal("0"))),
            "perfect_cuts": sum(1 for s in sessions if _money(s.get("difference")) == 0),
        },
        "sessions": sessions,
    }


# ──────────────────────────────────────────────────────────────────────────────
# CSV exports
# ──────────────────────────────────────────────────────────────────────────────

SALES_HEADERS = ["Folio", "Fecha", "Hora", "Estado", "Total", "Metodo Pago", "Cliente"]
EXPENSES_HEADERS = ["Fecha", "Hora", "Categoria", "Descripcion", "Monto", "Registrado Por"]
AUDIT_HEADERS = ["ID Sesion", "Apertura", "Cierre", "Cajero", "Fondo Inicial",
                 "Efectivo Real", "Efectivo Sistema", "Diferencia"]


def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """UTF-8 BOM + CSV so spreadsheets open accents correctly."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return CSV_BOM + buf.getvalue()


def _fmt(value: Any, pattern: str) -> str:
    dt = as_utc_datetime(value)
    return dt.strftime(pattern) if dt else ""


def sales_csv(orders: List[Dict[str, Any]]) -> str:
    return to_csv(SALES_HEADERS, (
        [
            o.get("folio"),
            _fmt(o.get("created_at"), "%d/%m/%Y"),
            _fmt(o.get("created_at"), "%H:%M:%S"),
            o.get("status"),
            o.get("total"),
            o.get("payment_method") or "Desconocido",
            o.get("customer_name") or "General",
        ]
        for o in orders
    ))


def expenses_csv(expenses: List[Dict[str, Any]]) -> str:
    return to_csv(EXPENSES_HEADERS, (
        [
            _fmt(e.get("created_at"), "%d/%m/%Y"),
            _fmt(e.get("created_at"), "%H:%M:%S"),
            e.get("category") or "other",
            e.get("description"),
            e.get("amount"),
            e.get("created_by") or "Administrador",
        ]
        for e in expenses
    ))


def audit_csv(sessions: List[Dict[str, Any]]) -> str:
    return to_csv(AUDIT_HEADERS, (
        [
            s["id"][:8],
            _fmt(s.get("opened_at"), "%d/%m/%Y %H:%M"),
            _fmt(s.get("closed_at"), "%d/%m/%Y %H:%M") or "En Curso",
            s.get("cashier_name") or s.get("employee_name") or "Administrador",
            s.get("initial_amount"),
            s.get("real_amount"),
            s.get("expected_amount"),
            s.get("difference"),
        ]
        for s in sessions
    ))
