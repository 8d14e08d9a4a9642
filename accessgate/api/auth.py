"""
JWT helpers and request decorators resolving the caller's UserContext.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import jsonify, request

from accessgate.config import ADMIN_ROLES, SECRET_KEY, TOKEN_EXPIRY_HOURS
from accessgate.models import ANONYMOUS, UserContext


def generate_token(user: UserContext, secret_key: str = SECRET_KEY) -> str:
    """Generate a JWT carrying the user's identity and role."""
    now = datetime.now(timezone.utc)
    payload = {
        "username": user.username,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    if user.user_id is not None:
        payload["sub"] = str(user.user_id)
    return jwt.encode(payload, secret_key, algorithm="HS256")


def verify_token(token: str, secret_key: str = SECRET_KEY) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, secret_key, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def context_from_payload(payload: Dict[str, Any]) -> UserContext:
    return UserContext(
        user_id=str(payload["sub"]) if payload.get("sub") is not None else None,
        username=payload.get("username"),
        role=payload.get("role"),
        is_authenticated=True,
    )


def _bearer_token() -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise ValueError("Invalid authorization header format")
    return parts[1]


def user_context_optional(f):
    """Attach request.user_context; callers without a token are anonymous."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            token = _bearer_token()
        except ValueError as e:
            return jsonify({"error": str(e)}), 401

        if token is None:
            request.user_context = ANONYMOUS
            return f(*args, **kwargs)

        payload = verify_token(token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        request.user_context = context_from_payload(payload)
        return f(*args, **kwargs)

    return decorated


def admin_required(f):
    """Require a valid token whose role is one of ADMIN_ROLES."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            token = _bearer_token()
        except ValueError as e:
            return jsonify({"error": str(e)}), 401

        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        payload = verify_token(token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        user = context_from_payload(payload)
        if user.role not in ADMIN_ROLES:
            return jsonify({"error": "Admin role required"}), 403

        request.user_context = user
        return f(*args, **kwargs)

    return decorated
