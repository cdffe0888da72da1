"""
Back-office reports: executive summary, sales, expenses, cash cuts, CSV exports
and public menu visits.
"""
import codecs
import csv
import io
from datetime import date, datetime, timezone

import pytest
from fastapi import HTTPException
from google.api_core.exceptions import ServiceUnavailable

from conftest import TENANT
from gourmetclick.services import analytics, reports

JAN = {"period": "custom", "start": "2024-01-01", "end": "2024-01-07"}


def _at(day, hour=12):
    return datetime(2024, 1, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def activity(db):
    orders = [
        ("o1", 1, "delivered", "cash", 100.0, _at(2, 10)),
        ("o2", 2, "delivered", "card", 50.0, _at(2, 18)),
        ("o3", 3, "delivered", "transfer", 30.0, _at(3, 9)),
        ("o4", 4, "cancelled", "cash", 20.0, _at(3, 11)),
        ("o5", 5, "pending", "cash", 40.0, _at(3, 12)),
        ("o6", 6, "delivered", "cash", 999.0, datetime(2024, 2, 1, tzinfo=timezone.utc)),
    ]
    for oid, folio, status, method, total, created in orders:
        db.seed("orders", oid, {
            "tenant_id": TENANT, "folio": folio, "status": status, "payment_method": method,
            "order_type": "pickup", "total": total, "created_at": created,
        })
    db.seed("orders", "o-other", {
        "tenant_id": "tenant-2", "status": "delivered", "total": 500.0, "created_at": _at(2),
    })

    for eid, category, amount, day in [("e1", "supplies", 40.0, 2), ("e2", "services", 10.0, 3),
                                       ("e3", "supplies", 5.0, 4)]:
        db.seed("expenses", eid, {
            "tenant_id": TENANT, "category": category, "amount": amount,
            "description": f"Gasto {eid}", "created_at": _at(day),
        })

    db.seed("cash_sessions", "sess-closed-1", {
        "tenant_id": TENANT, "status": "closed", "initial_amount": 500.0, "real_amount": 500.0,
        "expected_amount": 500.0, "difference": 0.0, "cashier_name": "Ana",
        "opened_at": _at(2, 8), "closed_at": _at(2, 22),
    })
    db.seed("cash_sessions", "sess-closed-2", {
        "tenant_id": TENANT, "status": "closed", "initial_amount": 500.0, "real_amount": 480.0,
        "expected_amount": 500.0, "difference": -20.0,
        "opened_at": _at(3, 8), "closed_at": _at(3, 22),
    })
    db.seed("cash_sessions", "sess-open", {
        "tenant_id": TENANT, "status": "open", "initial_amount": 300.0, "opened_at": _at(4, 8),
    })
    return db


def test_executive_summary(client, activity):
    body = client.get("/admin/reports/summary", params=JAN).json()

    assert (body["start"], body["end"]) == ("2024-01-01", "2024-01-07")
    assert body["total_sales"] == 180.0
    assert body["total_expenses"] == 55.0
    assert body["net_profit"] == 125.0
    assert body["breakdown"] == {"cash": 100.0, "card": 50.0, "transfer": 30.0}


def test_sales_analytics(client, activity):
    body = client.get("/admin/reports/sales", params=JAN).json()

    assert body["kpis"] == {
        "total_revenue": 180.0, "average_ticket": 60.0, "delivered_count": 3, "cancelled_count": 1,
    }
    assert body["chart"] == [{"date": "2024-01-02", "total": 150.0}, {"date": "2024-01-03", "total": 30.0}]
    assert [o["id"] for o in body["orders"]] == ["o5", "o4", "o3", "o2", "o1"]


def test_sales_analytics_without_orders(client):
    body = client.get("/admin/reports/sales", params=JAN).json()

    assert body["kpis"]["average_ticket"] == 0.0
    assert body["chart"] == [] and body["orders"] == []


def test_expenses_analytics(client, activity):
    body = client.get("/admin/reports/expenses", params=JAN).json()

    assert body["total"] == 55.0
    assert body["by_category"] == [{"name": "supplies", "value": 45.0}, {"name": "services", "value": 10.0}]
    assert len(body["expenses"]) == 3


def test_cash_cut_analytics_counts_closed_sessions_only(client, activity):
    body = client.get("/admin/reports/cash-cuts", params=JAN).json()

    assert body["kpis"] == {
        "total_cuts": 2, "total_declared": 980.0, "total_difference": -20.0, "perfect_cuts": 1,
    }
    assert [s["id"] for s in body["sessions"]] == ["sess-closed-2", "sess-closed-1"]


def _csv_rows(resp):
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert resp.content.startswith(codecs.BOM_UTF8)
    return list(csv.reader(io.StringIO(resp.content.decode("utf-8-sig"))))


def test_sales_csv_export(client, activity):
    resp = client.get("/admin/reports/sales.csv", params=JAN)
    rows = _csv_rows(resp)

    assert 'filename="ventas_2024-01-01_2024-01-07.csv"' in resp.headers["content-disposition"]
    assert rows[0] == reports.SALES_HEADERS
    assert rows[-1] == ["1", "02/01/2024", "10:00:00", "delivered", "100.0", "cash", "General"]
    assert len(rows) == 6


def test_expenses_and_audit_csv_exports(client, activity):
    expenses = _csv_rows(client.get("/admin/reports/expenses.csv", params=JAN))
    audit = _csv_rows(client.get("/admin/reports/cash-cuts.csv", params=JAN))

    assert expenses[0] == reports.EXPENSES_HEADERS
    assert expenses[1][2:5] == ["supplies", "Gasto e3", "5.0"]
    assert expenses[1][5] == "Administrador"
    assert audit[0] == reports.AUDIT_HEADERS
    assert audit[2][:4] == ["sess-clo", "02/01/2024 08:00", "02/01/2024 22:00", "Ana"]
    assert audit[1][3] == "Administrador"


def test_audit_csv_marks_running_sessions():
    out = reports.audit_csv([{"id": "abcdefghijk", "opened_at": _at(5), "initial_amount": 100.0}])

    assert out.splitlines()[1].startswith("abcdefgh,05/01/2024 12:00,En Curso,Administrador,100.0")


def test_reports_are_for_managers(client, auth):
    auth["as_role"]("waiter")

    assert client.get("/admin/reports/summary").status_code == 403
    assert client.get("/admin/reports/sales.csv").status_code == 403
    assert client.get("/admin/reports/visits").status_code == 403


def test_period_validation(client):
    assert client.get("/admin/reports/summary", params={"period": "custom"}).status_code == 400
    assert client.get("/admin/reports/summary", params={
        "period": "custom", "start": "2024-01-07", "end": "2024-01-01",
    }).status_code == 400
    assert client.get("/admin/reports/summary", params={"period": "decade"}).status_code == 422
    assert client.get("/admin/reports/summary").status_code == 200


@pytest.mark.parametrize("period,expected", [
    ("today", (date(2024, 1, 10), date(2024, 1, 10))),
    ("yesterday", (date(2024, 1, 9), date(2024, 1, 9))),
    ("this_week", (date(2024, 1, 8), date(2024, 1, 10))),
    ("last_week", (date(2024, 1, 1), date(2024, 1, 7))),
    ("this_month", (date(2024, 1, 1), date(2024, 1, 10))),
    ("last_month", (date(2023, 12, 1), date(2023, 12, 31))),
])
def test_named_periods(period, expected):
    assert reports.resolve_period(period, today=date(2024, 1, 10)) == expected


def test_custom_period_needs_both_bounds():
    with pytest.raises(HTTPException) as exc:
        reports.resolve_period("custom", start=date(2024, 1, 1))
    assert exc.value.status_code == 400
    assert reports.resolve_period("custom", date(2024, 1, 1), date(2024, 1, 1)) == (date(2024, 1, 1),
                                                                                   date(2024, 1, 1))


# ──────────────────────────────────────────────────────────────────────────────
# Menu visits
# ──────────────────────────────────────────────────────────────────────────────

def test_public_menu_views_are_counted(client, seed_menu):
    seed_menu.seed("restaurants", TENANT, {"restaurant_name": "La Esquina", "slug": "la-esquina"})

    client.get("/public/menu/la-esquina", headers={"User-Agent": "phone"})
    client.get("/public/menu/la-esquina")
    client.get("/public/menu/nadie")

    visits = list(seed_menu.all("menu_visits").values())
    assert len(visits) == 2
    assert {v["tenant_id"] for v in visits} == {TENANT}
    assert visits[0]["user_agent"] == "phone"
    assert client.get("/admin/reports/visits").json()["total"] == 2


def test_visit_summary_and_daily_counts(db):
    for n, day in enumerate((1, 1, 9, 20)):
        db.seed("menu_visits", f"v-{n}", {"tenant_id": TENANT, "visited_at": _at(day)})
    db.seed("menu_visits", "v-last-year", {
        "tenant_id": TENANT, "visited_at": datetime(2023, 12, 30, tzinfo=timezone.utc),
    })
    db.seed("menu_visits", "v-other", {"tenant_id": "tenant-2", "visited_at": _at(20)})

    summary = analytics.visit_summary(db, TENANT, now=_at(21))
    daily = analytics.daily_visits(db, TENANT, date(2024, 1, 1), date(2024, 1, 10))

    assert summary == {"total": 5, "this_week": 1, "this_month": 4}
    assert daily == [{"date": "2024-01-01", "visits": 2}, {"date": "2024-01-09", "visits": 1}]


def test_visit_tracking_failure_is_swallowed():
    class Down:
        def collection(self, name):
            raise ServiceUnavailable("firestore down")

    assert analytics.track_visit(Down(), TENANT) is None
