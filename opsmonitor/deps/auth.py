from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from opsmonitor.core.security import decode_token
from opsmonitor.core.store import MonitoringStore


class CurrentUser(BaseModel):
    user_id: str


def get_current_user(authorization: str | None = Header(default=None)) -> CurrentUser:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        data = decode_token(token, expected_type="access")
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")
    return CurrentUser(user_id=str(data["sub"]))


def get_session_factory(request: Request) -> async_sessionmaker:
    sessions = getattr(request.app.state, "sessions", None)
    if sessions is None:
        raise HTTPException(status_code=503, detail="Store not initialised")
    return sessions


def get_store(user: CurrentUser = Depends(get_current_user),
              sessions: async_sessionmaker = Depends(get_session_factory)) -> MonitoringStore:
    return MonitoringStore(sessions, user.user_id)
