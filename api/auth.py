"""
api.auth - Bearer-token verification and role gating.

Tokens are HS256 JWTs carrying ``sub``, ``username`` and ``role``.
Issuing them belongs to the login service; issue_token exists for
tooling and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import current_app, g, jsonify, request
from jose import JWTError, jwt


def issue_token(
    user_id,
    username: str,
    role: str,
    *,
    secret: str,
    algorithm: str = "HS256",
    expires_minutes: int = 720,
) -> str:
    payload = {
        "sub": str(user_id),
        "username": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str) -> dict:
    """Verify signature and expiry.  Raises jose.JWTError when invalid."""
    return jwt.decode(
        token,
        current_app.config["JWT_SECRET"],
        algorithms=[current_app.config["JWT_ALGORITHM"]],
    )


def _bearer_token() -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def token_required(view):
    """Reject the request unless it carries a valid bearer token."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Access token required"}), 401
        try:
            g.user = decode_token(token)
        except JWTError:
            return jsonify({"error": "Invalid access token"}), 403
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    """Must sit below @token_required."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        user = g.get("user") or {}
        if user.get("role") != current_app.config["ADMIN_ROLE"]:
            return jsonify({"error": "Admin privileges required"}), 403
        return view(*args, **kwargs)

    return wrapper
