from functools import wraps
from flask import request, g
from .responses import error
from app.auth.identity import CurrentUser, ROLES
from app.auth.permissions import role_has_scope
from .jwt import decode_token, TokenError


def auth_required(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        auth = request.headers.get("Authorization", "")
        if not auth:
            return error("Auth header missing", status=401)
        token = auth.split(" ", 1)[1] if auth.startswith("Bearer ") else auth
        try:
            payload = decode_token(token, expected_type="access")
        except TokenError as e:
            return error(str(e), status=401)
        if payload["role"] not in ROLES:
            return error("Unknown role", status=403)

        g.current_user = CurrentUser(id=payload["sub"], role=payload["role"], name=payload.get("name"))
        g.role = g.current_user.role
        return func(*args, **kwargs)

    return wrapper


def _to_set(obj):
    return set(obj) if isinstance(obj, (list, tuple, set)) else {obj}


def role_required(required):
    """Authorize based on user role or scoped action."""
    required_set = _to_set(required)

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = getattr(g, "role", None)
            if not role:
                return error("Role missing", status=403)
            for entry in required_set:
                if ":" in entry:
                    r, action = entry.split(":", 1)
                    if role == r and role_has_scope(role, action):
                        break
                else:
                    if role == entry:
                        break
            else:
                return error("Forbidden", status=403)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def current_user() -> CurrentUser:
    return g.current_user
