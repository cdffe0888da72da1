# gourmetclick/services/analytics.py
"""
Public menu visit tracking.

Every public menu view stores one `menu_visits` document. Tracking never
fails the page: write errors are logged and dropped.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter

from gourmetclick.config import collection_name
from gourmetclick.core.errors import backend_call
from gourmetclick.services.reports import as_utc_datetime, day_bounds

logger = logging.getLogger("gourmetclick.analytics")

_VISITS = collection_name("menu_visits")


def track_visit(db, tenant_id: str, user_agent: Optional[str] = None, ip_address: Optional[str] = None) -> None:
    try:
        db.collection(_VISITS).document().set({
            "tenant_id": tenant_id,
            "user_agent": user_agent,
            "ip_address": ip_address,
            "visited_at": SERVER_TIMESTAMP,
        })
    except GoogleAPICallError as exc:
        logger.error("Visit tracking failed for tenant %s: %s", tenant_id, exc)


def _visit_times(db, tenant_id: str) -> List[datetime]:
    docs = db.collection(_VISITS).where(filter=FieldFilter("tenant_id", "==", tenant_id)).stream()
    times = (as_utc_datetime((d.to_dict() or {}).get("visited_at")) for d in docs)
    return [t for t in times if t is not None]


def visit_summary(db, tenant_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
    """Total visits, visits in the last 7 days and since the first of the month."""
    now = now or datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    with backend_call("Visit summary"):
        times = _visit_times(db, tenant_id)
    return {
        "total": len(times),
        "this_week": sum(1 for t in times if t >= week_ago),
        "this_month": sum(1 for t in times if t >= month_start),
    }


def daily_visits(db, tenant_id: str, start: date, end: date) -> List[Dict[str, Any]]:
    start_dt, end_dt = day_bounds(start, end)
    with backend_call("Visit timeline"):
        times = [t for t in _visit_times(db, tenant_id) if start_dt <= t <= end_dt]
    counts: Dict[str, int] = {}
    for t in times:
        key = t.date().isoformat()
        counts[key] = counts.get(key, 0) + 1
    return [{"date": k, "visits": v} for k, v in sorted(counts.items())]
