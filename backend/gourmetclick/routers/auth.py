# gourmetclick/routers/auth.py
"""
Account login for the back office and POS devices.

- POST /auth/login  → proxies e-mail/password to Firebase Auth REST, returns tokens
- POST /auth/logout → revokes every refresh token of the account
- GET  /auth/me     → the resolved principal (role, tenant)
"""
import logging

import httpx
from fastapi import APIRouter, Depends, Form, HTTPException, status
from firebase_admin import auth as firebase_auth

from gourmetclick.config import settings
from gourmetclick.core.auth import get_principal
from gourmetclick.schemas.auth import LoginResponse
from gourmetclick.schemas.principal import Principal

logger = logging.getLogger("gourmetclick.auth")

router = APIRouter(prefix="/auth", tags=["Auth"])

FIREBASE_SIGNIN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"


@router.post("/login", response_model=LoginResponse, summary="Login with e-mail and password")
async def login(
    email: str = Form(..., min_length=3, description="E-mail"),
    password: str = Form(..., min_length=6, description="Password (min 6 chars)"),
):
    """Proxies the credentials to Firebase and returns id_token + refresh_token."""
    payload = {"email": email, "password": password, "returnSecureToken": True}
    try:
        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.post(
                FIREBASE_SIGNIN_URL, params={"key": settings.firebase_web_api_key}, json=payload
            )
    except httpx.HTTPError as e:
        logger.exception("Login proxy failed")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Auth service error: {e}")

    data = resp.json()
    if resp.status_code != 200:
        message = data.get("error", {}).get("message", "Invalid credentials")
        logger.info("Firebase login rejected: %s", message)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail=message)

    return LoginResponse(
        id_token=data["idToken"],
        refresh_token=data["refreshToken"],
        expires_in=int(data["expiresIn"]),
        user_id=data["localId"],
    )


@router.post("/logout", summary="Revoke refresh tokens")
def logout(principal: Principal = Depends(get_principal)):
    """
    Revokes the refresh tokens on every device.
    Clients must also call signOut() in the Firebase SDK.
    """
    try:
        firebase_auth.revoke_refresh_tokens(principal.uid)
    except firebase_auth.UserNotFoundError:
        logger.info("Logout for deleted user %s", principal.uid)
    return {"detail": "Logged out"}


@router.get("/me", response_model=Principal, summary="Current principal")
def me(principal: Principal = Depends(get_principal)):
    return principal
