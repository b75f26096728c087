"""
JWT-style session token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.
The secret comes from ``Settings.jwt_secret`` (env var: ``JWT_SECRET``).
With no secret configured, Login hands out ``PLACEHOLDER_TOKEN``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode

from config.settings import Settings
from utils.errors import AuthError

PLACEHOLDER_TOKEN = "JWT_TOKEN"


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def create_token(username: str, secret: str, expiry_seconds: int) -> str:
    """Create a signed token containing ``sub`` (username) and expiry."""
    payload = {
        "sub": username,
        "exp": int(time.time()) + expiry_seconds,
    }
    raw = json.dumps(payload, separators=(",", ":")).encode()
    return urlsafe_b64encode(raw).decode() + "." + _sign(raw, secret)


def verify_token(token: str, secret: str) -> str:
    """
    Verify token and return the username it was issued to.

    Raises ``AuthError`` on malformed, tampered or expired tokens.
    """
    try:
        encoded, sig = token.split(".", 1)
        raw = urlsafe_b64decode(encoded.encode())
        payload = json.loads(raw)
    except ValueError as exc:
        raise AuthError("malformed token") from exc
    if not isinstance(payload, dict) or "sub" not in payload:
        raise AuthError("malformed token")

    if not hmac.compare_digest(sig, _sign(raw, secret)):
        raise AuthError("bad token signature")
    try:
        expires_at = float(payload.get("exp", 0))
    except (TypeError, ValueError) as exc:
        raise AuthError("malformed token") from exc
    if expires_at < time.time():
        raise AuthError("token expired")
    return payload["sub"]


def issue_token(settings: Settings, username: str) -> str:
    """Token handed back by a successful Login."""
    secret = settings.jwt_secret.get_secret_value()
    if not secret:
        return PLACEHOLDER_TOKEN
    return create_token(username, secret, settings.jwt_expiry_seconds)
