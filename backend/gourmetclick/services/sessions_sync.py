# gourmetclick/services/sessions_sync.py
from __future__ import annotations

import logging

from google.api_core.exceptions import GoogleAPICallError

from gourmetclick.config import get_db
from gourmetclick.services.cash_sessions import sweep_orphan_sessions

logger = logging.getLogger("gourmetclick.jobs")


def sweep_sessions_once(db=None) -> int:
    """
    Scheduled job: closes duplicate open cash sessions across all tenants.
    Returns the number of sessions closed (0 when Firestore is unreachable).
    """
    try:
        closed = sweep_orphan_sessions(db if db is not None else get_db())
    except GoogleAPICallError as exc:
        logger.error("Orphan session sweep failed: %s", exc)
        return 0
    if closed:
        logger.warning("Orphan session sweep closed %d sessions", closed)
    return closed
