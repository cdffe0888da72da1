# gourmetclick/schemas/auth.py
from pydantic import BaseModel

class LoginResponse(BaseModel):
    """Token bundle returned by a successful password login."""
    id_token: str
    refresh_token: str
    expires_in: int  # seconds
    user_id: str
