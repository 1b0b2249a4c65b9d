import datetime as dt
from typing import Dict, Optional
import jwt
from flask import current_app


def _secret() -> str:
    return current_app.config["JWT_SECRET"]


def _utcnow():
    return dt.datetime.now(dt.timezone.utc)


def create_access_token(user_id: str, role: str, name: Optional[str] = None, minutes: Optional[int] = None) -> str:
    cfg = current_app.config
    payload: Dict = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "exp": _utcnow() + dt.timedelta(minutes=minutes or cfg["ACCESS_TOKEN_LIFETIME_MIN"]),
    }
    if name:
        payload["name"] = name
    return jwt.encode(payload, _secret(), algorithm="HS256")


class TokenError(Exception):
    pass


def decode_token(token: str, expected_type: str = "access") -> Dict:
    try:
        data = jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise TokenError("token expired")
    except jwt.InvalidTokenError:
        raise TokenError("invalid token")

    if data.get("type") != expected_type:
        raise TokenError(f"expected {expected_type} token")
    if not data.get("sub") or not data.get("role"):
        raise TokenError("token is missing subject or role")
    return data
