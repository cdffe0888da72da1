import hmac, hashlib, secrets
from gourmetclick.config import settings

PIN_LENGTH = 4

def pin_secret() -> str:
    return settings.pin_secret

def gen_numeric_code(n: int = PIN_LENGTH) -> str:
    return str(secrets.randbelow(10 ** n)).zfill(n)

def is_valid_pin(pin: str) -> bool:
    return isinstance(pin, str) and len(pin) == PIN_LENGTH and pin.isdigit()

def pin_digest(tenant_id: str, pin: str) -> str:
    """HMAC-SHA256 of the PIN scoped to its tenant; equal PINs give equal digests."""
    key = pin_secret().encode("utf-8")
    msg = f"{tenant_id}:{pin}".encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).hexdigest()
