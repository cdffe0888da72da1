# gourmetclick/core/errors.py
import logging
from contextlib import contextmanager

from fastapi import HTTPException, status
from google.api_core.exceptions import GoogleAPICallError

logger = logging.getLogger("gourmetclick.errors")


@contextmanager
def backend_call(action: str):
    """
    Turns Firestore / Storage failures into a 502 for the initiating request.
    Nothing is written locally when the call fails.
    """
    try:
        yield
    except GoogleAPICallError as exc:
        logger.warning("%s failed: %s", action, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{action} failed: {exc.message if hasattr(exc, 'message') else exc}",
        )
