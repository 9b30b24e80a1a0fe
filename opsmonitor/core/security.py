import os, jwt
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

JWT_SECRET = os.getenv("JWT_SECRET", "change-me-in-prod")
JWT_ALGO = os.getenv("JWT_ALGO", "HS256")

# Access token lifetime (minutes)
ACCESS_TTL_MIN = int(os.getenv("JWT_ACCESS_TTL_MIN", "30"))


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(user_id: str, ttl_min: int | None = None) -> str:
    now = _now()
    exp = now + timedelta(minutes=ACCESS_TTL_MIN if ttl_min is None else ttl_min)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: str, expected_type: str | None = None) -> Dict[str, Any]:
    data = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
    if expected_type and data.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"unexpected token type: {data.get('type')}")
    if not data.get("sub"):
        raise jwt.InvalidTokenError("token has no subject")
    return data
