"""
GoogleOAuthClient — OAuth2 / OpenID Connect relying-party calls for one
workspace's client credentials.

Every provider call is bounded by a timeout; transport errors, non-2xx
responses and malformed payloads all collapse into "no identity"
(``None``) so a provider outage rejects the login instead of crashing it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from sso.models import ProviderIdentity

logger = logging.getLogger(__name__)

# Google OAuth2 endpoints
GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

SSO_SCOPES: List[str] = [
    "openid",
    "email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


def _is_true(value: Any) -> bool:
    # tokeninfo returns claims as strings
    return value is True or str(value).lower() == "true"


def _json_object(resp: httpx.Response) -> Dict[str, Any]:
    data = resp.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object from {resp.url.path}")
    return data


class GoogleOAuthClient:
    """OAuth client bound to one workspace's (decrypted) credentials."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scopes = list(SSO_SCOPES)
        self._timeout = timeout
        self._transport = transport

    def get_auth_url(self, hosted_domain: Optional[str] = None, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "online",
            "prompt": "select_account",
        }
        if hosted_domain:
            params["hd"] = hosted_domain
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def resolve_identity(self, code: str) -> Optional[ProviderIdentity]:
        """
        Exchange ``code`` and return the provider-verified identity.

        Returns None unless the response carries an id_token whose signature
        the provider confirms for this client, and the profile asserts a
        verified email address.
        """
        try:
            async with self._http() as client:
                tokens = await self._exchange_code(client, code)
                id_token = tokens.get("id_token")
                if not id_token:
                    logger.warning("Token response for %s carried no id_token", self.redirect_uri)
                    return None

                claims = await self._verify_id_token(client, id_token)
                if claims is None:
                    return None

                profile = await self._fetch_userinfo(client, tokens.get("access_token", ""))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Identity provider call failed: %s", exc)
            return None

        email = profile.get("email") or ""
        if not email or not _is_true(profile.get("email_verified")):
            logger.warning("Provider did not assert a verified email")
            return None
        if claims.get("email") and claims["email"] != email:
            logger.warning("id_token email does not match profile email")
            return None

        return ProviderIdentity(
            email=email,
            email_verified=True,
            name=profile.get("name"),
            hosted_domain=profile.get("hd") or claims.get("hd"),
        )

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> Dict[str, Any]:
        resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        resp.raise_for_status()
        return _json_object(resp)

    async def _verify_id_token(
        self, client: httpx.AsyncClient, id_token: str
    ) -> Optional[Dict[str, Any]]:
        """Have the provider check the token signature, then check issuer/audience."""
        resp = await client.get(GOOGLE_TOKENINFO_URL, params={"id_token": id_token})
        if resp.status_code != 200:
            logger.warning("Provider rejected id_token (HTTP %s)", resp.status_code)
            return None
        claims = _json_object(resp)
        if claims.get("aud") != self.client_id:
            logger.warning("id_token audience mismatch")
            return None
        if claims.get("iss") not in GOOGLE_ISSUERS:
            logger.warning("id_token issuer mismatch: %r", claims.get("iss"))
            return None
        return claims

    async def _fetch_userinfo(
        self, client: httpx.AsyncClient, access_token: str
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"}
        resp = await client.get(GOOGLE_USERINFO_URL, headers=headers)
        resp.raise_for_status()
        return _json_object(resp)
