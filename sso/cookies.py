"""
Signed, self-expiring cookie values for the stateless redirect round-trip.

Values are ``base64url(json) + "." + hex(hmac_sha256)``; every payload
carries its issue time ``t`` so the TTL is enforced server-side and not
only by the browser's cookie expiry.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from dataclasses import dataclass
from typing import Any, Dict, Optional

WORKSPACE_COOKIE = "workspace"
REDIRECT_COOKIE = "wpgwsso_redirect_to"


class CookieSigner:
    """HMAC-SHA256 signer for small JSON payloads."""

    def __init__(self, secret: str) -> None:
        self._secret = secret.encode()

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def dumps(self, payload: Dict[str, Any], now: Optional[float] = None) -> str:
        body = dict(payload, t=int(now if now is not None else time.time()))
        raw = json.dumps(body, separators=(",", ":"), sort_keys=True).encode()
        return urlsafe_b64encode(raw).decode().rstrip("=") + "." + self._sign(raw)

    def loads(
        self, value: Optional[str], max_age: int, now: Optional[float] = None
    ) -> Optional[Dict[str, Any]]:
        """Return the payload, or None if tampered, malformed or older than ``max_age``."""
        if not value:
            return None
        try:
            encoded, sig = value.split(".", 1)
            raw = urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
            if not hmac.compare_digest(sig, self._sign(raw)):
                return None
            payload = json.loads(raw)
            issued_at = int(payload["t"])
        except (ValueError, KeyError, TypeError):
            return None
        current = now if now is not None else time.time()
        if issued_at > current + 60 or current - issued_at > max_age:
            return None
        return payload


@dataclass(frozen=True)
class WorkspaceBinding:
    """Decoded workspace-selection cookie."""

    domain_key: str
    issued_at: int
    state: str = ""


def encode_workspace(
    signer: CookieSigner, domain_key: str, state: str = "", now: Optional[float] = None
) -> str:
    return signer.dumps({"d": domain_key, "s": state}, now=now)


def decode_workspace(
    signer: CookieSigner, value: Optional[str], ttl: int, now: Optional[float] = None
) -> Optional[WorkspaceBinding]:
    payload = signer.loads(value, ttl, now=now)
    if not payload or not isinstance(payload.get("d"), str):
        return None
    state = payload.get("s")
    return WorkspaceBinding(
        domain_key=payload["d"],
        issued_at=payload["t"],
        state=state if isinstance(state, str) else "",
    )


def encode_redirect(signer: CookieSigner, target: str, now: Optional[float] = None) -> str:
    return signer.dumps({"r": target}, now=now)


def decode_redirect(
    signer: CookieSigner, value: Optional[str], ttl: int, now: Optional[float] = None
) -> Optional[str]:
    payload = signer.loads(value, ttl, now=now)
    if not payload or not isinstance(payload.get("r"), str):
        return None
    return payload["r"]
