# app/api/deps.py
from typing import Optional

from fastapi import Header

from app.core.errors import AuthenticationRequired

# identity lives in the upstream session layer; it forwards the signed-in user here
def get_reporter_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    reporter_id = (x_user_id or "").strip()
    if not reporter_id:
        raise AuthenticationRequired()
    return reporter_id
