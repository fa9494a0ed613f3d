"""
Signed tokens: host session tokens and admin anti-forgery nonces.

Session tokens are unpadded base64url JSON payloads signed with
HMAC-SHA256 (secret: ``config.jwt_secret``).  Nonces bind an action identifier to
one user for ``config.nonce_ttl_seconds``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Optional

from fastapi import HTTPException, Response, status

from config.settings import Settings, config
from sso.cookies import CookieSigner

SESSION_COOKIE = "auth_token"


def create_token(user_id: str, settings: Settings = config) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    payload = {
        "user_id": user_id,
        "exp": int(time.time()) + settings.jwt_expiry_seconds,
    }
    raw = json.dumps(payload).encode()
    sig = hmac.new(settings.jwt_secret.encode(), raw, hashlib.sha256).hexdigest()
    # unpadded url-safe base64 so the cookie value is never quoted
    return urlsafe_b64encode(raw).decode().rstrip("=") + "." + sig


def verify_token(token: str, settings: Settings = config) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``HTTPException(401)`` on invalid or expired tokens.
    """
    try:
        parts = token.split(".", 1)
        if len(parts) != 2:
            raise ValueError("bad format")
        raw = urlsafe_b64decode(parts[0] + "=" * (-len(parts[0]) % 4))
        expected_sig = hmac.new(
            settings.jwt_secret.encode(), raw, hashlib.sha256
        ).hexdigest()
        if not hmac.compare_digest(parts[1], expected_sig):
            raise ValueError("bad signature")
        payload = json.loads(raw)
        if payload.get("exp", 0) < time.time():
            raise ValueError("token expired")
        return payload["user_id"]
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid or expired token: {exc}",
        )


def create_nonce(action: str, user_id: str, settings: Settings = config) -> str:
    return CookieSigner(settings.cookie_secret).dumps({"a": action, "u": user_id})


def verify_nonce(
    nonce: Optional[str], action: str, user_id: str, settings: Settings = config
) -> bool:
    payload = CookieSigner(settings.cookie_secret).loads(nonce, settings.nonce_ttl_seconds)
    if payload is None:
        return False
    return hmac.compare_digest(str(payload.get("a")), action) and hmac.compare_digest(
        str(payload.get("u")), user_id
    )


def start_session(response: Response, user_id: str, settings: Settings = config) -> str:
    """Issue a session token and attach it to ``response`` as a cookie."""
    token = create_token(user_id, settings)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.jwt_expiry_seconds,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return token
