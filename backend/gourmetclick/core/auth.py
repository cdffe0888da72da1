# gourmetclick/core/auth.py
from typing import Optional
from fastapi import Request, HTTPException, status
from firebase_admin import auth as fb_auth
from gourmetclick.config import init_firebase
from gourmetclick.schemas.principal import Principal

ROLES = ("owner", "admin", "cashier", "waiter")

def _extract_bearer_token(request: Request) -> Optional[str]:
    """
    Reads the token from `Authorization: Bearer <id_token>`.
    Returns None when the header is missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None

def _decode_id_token(id_token: str) -> dict:
    """
    Firebase ID token verification.
    Invalid, revoked or expired tokens yield 401.
    """
    init_firebase()
    try:
        return fb_auth.verify_id_token(id_token, check_revoked=True)
    except fb_auth.ExpiredIdTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except fb_auth.RevokedIdTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session revoked")
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid Firebase ID token: {exc}"
        )

def token_to_principal(decoded: dict) -> Principal:
    """
    Builds a Principal from a decoded token.
    - custom claim app_role → role (owner when absent, 403 when unknown)
    - custom claim tenant_id → tenant (an owner is its own tenant)
    """
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid:
        raise HTTPException(status_code=401, detail="Token missing uid.")

    role = decoded.get("app_role")
    if role is None:
        role = "owner"
    elif role not in ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Unknown role: {role}")

    return Principal(
        uid=uid,
        role=role,
        tenant_id=decoded.get("tenant_id") or uid,
        email=decoded.get("email"),
        display_name=decoded.get("name"),
    )

# --------- FastAPI Dependencies --------- #

async def get_optional_principal(request: Request) -> Optional[Principal]:
    """
    Optional token: verified when present, None otherwise.
    """
    token = _extract_bearer_token(request)
    if not token:
        return None
    return token_to_principal(_decode_id_token(token))

async def get_principal(request: Request) -> Principal:
    """
    Token required: verifies it and returns the Principal.
    """
    token = _extract_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization header.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token_to_principal(_decode_id_token(token))
