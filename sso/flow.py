"""
AuthFlowController — the login override and the provider callback.

States::

    Idle → AwaitingWorkspaceSelection → RedirectedToProvider
         → AwaitingCallback → Resolved | Rejected

Nothing is stored server-side between the redirect and the callback; the
chosen workspace and the OAuth ``state`` travel in a signed cookie, and
the callback must echo that state back.  Every rejection hands the
caller back the user it passed in, so the host's default login applies.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urlsplit

from starlette.requests import Request
from starlette.responses import HTMLResponse, RedirectResponse, Response

from config.settings import Settings
from database.directory import UserDirectory
from database.models import DEFAULT_ROLE, User
from sso.cookies import (
    REDIRECT_COOKIE,
    WORKSPACE_COOKIE,
    CookieSigner,
    decode_workspace,
    encode_redirect,
    encode_workspace,
)
from sso.encryption import CryptoVault
from sso.google import GoogleOAuthClient
from sso.models import WorkspaceCredential
from sso.pages import render_workspace_picker
from sso.registry import WorkspaceRegistry

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
BYPASS_ACTION = "confirm_admin_email"

ClientFactory = Callable[[str, str], GoogleOAuthClient]


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_WORKSPACE_SELECTION = "awaiting_workspace_selection"
    REDIRECTED_TO_PROVIDER = "redirected_to_provider"
    AWAITING_CALLBACK = "awaiting_callback"
    RESOLVED = "resolved"
    REJECTED = "rejected"


def is_safe_redirect(target: Optional[str]) -> bool:
    """Only same-site absolute paths are followed after login."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return False
    if "\\" in target:
        return False
    parts = urlsplit(target)
    return not parts.scheme and not parts.netloc


class AuthFlowController:
    def __init__(
        self,
        registry: WorkspaceRegistry,
        vault: CryptoVault,
        directory: UserDirectory,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.registry = registry
        self.vault = vault
        self.directory = directory
        self.settings = settings
        self.signer = CookieSigner(settings.cookie_secret)
        self._client_factory = client_factory or self._default_client

    def _default_client(self, client_id: str, client_secret: str) -> GoogleOAuthClient:
        return GoogleOAuthClient(
            client_id,
            client_secret,
            self.settings.callback_url(),
            timeout=self.settings.provider_timeout_seconds,
        )

    async def build_client(self, credential: WorkspaceCredential) -> GoogleOAuthClient:
        client_id = await self.vault.decrypt(credential.client_id)
        client_secret = await self.vault.decrypt(credential.client_secret)
        if not client_id or not client_secret:
            # The provider rejects empty credentials; nothing to do locally.
            logger.warning("Workspace %r has unusable stored credentials", credential.name)
        return self._client_factory(client_id, client_secret)

    @staticmethod
    def _mark(request: Request, state: FlowState) -> None:
        request.state.sso_flow = state

    async def engaged(self, request: Request) -> bool:
        if request.query_params.get("action") == BYPASS_ACTION:
            return False
        return await self.registry.is_active()

    def _set_cookie(self, response: Response, name: str, value: str, max_age: int) -> None:
        response.set_cookie(
            name,
            value,
            max_age=max_age,
            path="/",
            secure=self.settings.cookie_secure,
            httponly=True,
            samesite="lax",
        )

    # ── Login page ──────────────────────────────────────────────────────

    async def run(self, request: Request) -> Optional[Response]:
        """
        Take over the login page.

        Returns None when the override is not engaged, leaving the host's
        default login untouched; otherwise the response that ends the request.
        """
        if not await self.engaged(request):
            self._mark(request, FlowState.IDLE)
            return None

        workspaces = await self.registry.get_workspaces()
        selected = request.query_params.get("workspace")

        if selected and selected in workspaces:
            client = await self.build_client(workspaces[selected])
            state = secrets.token_urlsafe(32)
            response = RedirectResponse(
                client.get_auth_url(hosted_domain=selected, state=state), status_code=302
            )
            self._set_cookie(
                response,
                WORKSPACE_COOKIE,
                encode_workspace(self.signer, selected, state=state),
                self.settings.workspace_cookie_ttl,
            )
            self._mark(request, FlowState.REDIRECTED_TO_PROVIDER)
            logger.info("Redirecting to provider for workspace %s", selected)
            return response

        binding = decode_workspace(
            self.signer, request.cookies.get(WORKSPACE_COOKIE), self.settings.workspace_cookie_ttl
        )
        previous = binding.domain_key if binding and binding.domain_key in workspaces else None
        response = HTMLResponse(render_workspace_picker(sorted(workspaces), selected=previous))

        redirect_to = request.query_params.get("redirect_to")
        if is_safe_redirect(redirect_to):
            self._set_cookie(
                response,
                REDIRECT_COOKIE,
                encode_redirect(self.signer, redirect_to),
                self.settings.redirect_cookie_ttl,
            )
        self._mark(request, FlowState.AWAITING_WORKSPACE_SELECTION)
        return response

    # ── Callback ────────────────────────────────────────────────────────

    async def authenticate(self, request: Request, current_user: Optional[User] = None) -> Optional[User]:
        """
        Resolve the local user behind an authorization code.

        Returns ``current_user`` unchanged unless a code, a valid workspace
        cookie whose state the provider echoed back, a provider-verified
        identity and a matching local account all line up.
        """
        code = request.query_params.get("code")
        binding = decode_workspace(
            self.signer, request.cookies.get(WORKSPACE_COOKIE), self.settings.workspace_cookie_ttl
        )
        if not code or binding is None or not await self.registry.is_active():
            return current_user

        state = request.query_params.get("state") or ""
        if not binding.state or not hmac.compare_digest(state.encode(), binding.state.encode()):
            logger.warning("Callback state does not match workspace %r", binding.domain_key)
            self._mark(request, FlowState.REJECTED)
            return current_user

        credential = await self.registry.get(binding.domain_key)
        if credential is None:
            logger.warning("Callback bound to unknown workspace %r", binding.domain_key)
            self._mark(request, FlowState.REJECTED)
            return current_user

        self._mark(request, FlowState.AWAITING_CALLBACK)
        client = await self.build_client(credential)
        identity = await client.resolve_identity(code)
        if identity is None:
            logger.warning("SSO rejected for workspace %s: no verified identity", binding.domain_key)
            self._mark(request, FlowState.REJECTED)
            return current_user

        user = await self.directory.find_by_email(identity.email)
        if user is None:
            logger.warning("SSO rejected for workspace %s: no local account", binding.domain_key)
            self._mark(request, FlowState.REJECTED)
            return current_user

        logger.info("SSO login for user %s via workspace %s", user.user_id, binding.domain_key)
        self._mark(request, FlowState.RESOLVED)
        return user

    # ── Shop login guard ────────────────────────────────────────────────

    async def handle_external_login_credentials(
        self, creds: Dict[str, Any]
    ) -> Union[Dict[str, Any], RedirectResponse]:
        """
        Divert privileged accounts away from the shop's password login.

        Returns ``creds`` untouched for unknown and customer accounts, or a
        redirect to the SSO login page for every other role.
        """
        user_login = str(creds.get("user_login") or "").strip()
        if not user_login or not await self.registry.is_active():
            return creds

        if "@" in user_login[1:]:
            user = await self.directory.find_by_email(user_login)
        else:
            user = await self.directory.find_by_login(user_login)

        if user is not None and (user.role or DEFAULT_ROLE) != DEFAULT_ROLE:
            logger.info("Diverting %s account %s to SSO login", user.role, user.user_id)
            return RedirectResponse(LOGIN_PATH, status_code=303)
        return creds
