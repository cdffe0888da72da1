"""
gourmetclick/core/security.py - role based authorization helpers.

Authentication itself lives in `core/auth.py` (Firebase ID token → Principal).
These dependencies are used with `Depends(...)` on routers and endpoints.
"""
from fastapi import Depends, HTTPException, status

from gourmetclick.core.auth import get_principal
from gourmetclick.schemas.principal import Principal


def require_manager(principal: Principal = Depends(get_principal)) -> Principal:
    """
    Only owner/admin accounts (menu, staff, settings administration).
    """
    if not principal.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privilege required."
        )
    return principal


def require_owner(principal: Principal = Depends(get_principal)) -> Principal:
    """
    Only the restaurant owner (profile, link card, staff deletion).
    """
    if principal.role != "owner":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Owner privilege required."
        )
    return principal
