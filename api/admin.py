"""
SSO administration — settings page, save and workspace removal.

Route prefix: /admin/sso

Every mutating call needs an anti-forgery nonce issued for
``SAVE_ACTION`` to the same administrator.  Failures are reported as
``{"success": false, "data": {"error": ...}}``; nothing raises past
the handler.
"""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field, ValidationError

from auth.dependencies import require_admin
from auth.tokens import create_nonce, verify_nonce
from config.settings import Settings
from database.models import User
from sso.encryption import CryptoVault, VaultKeyError
from sso.registry import WorkspaceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])

SAVE_ACTION = "gwsso_save_settings"
NONCE_HEADER = "X-SSO-Nonce"

_FALSE_FLAGS = (False, None, "", 0, "0", "false", "off", "no")


class WorkspaceInput(BaseModel):
    name: str = ""
    id: str = Field(..., min_length=1)
    secret: str = Field(..., min_length=1)


class SettingsPayload(BaseModel):
    active: Any = None
    access: Dict[str, WorkspaceInput] = Field(default_factory=dict)


def _success(message: str, status_code: int = 202) -> JSONResponse:
    return JSONResponse({"success": True, "data": {"message": message}}, status_code=status_code)


def _error(error: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"success": False, "data": {"error": error}}, status_code=status_code)


def sanitize(value: str) -> str:
    """Trim and HTML-escape a user supplied label."""
    return escape(value.strip(), quote=True)


def is_checked(value: Any) -> bool:
    """Checkbox semantics: a present flag is on unless it is an explicit false."""
    if isinstance(value, str):
        value = value.strip().lower()
    return value not in _FALSE_FLAGS


class AdminApiHandler:
    def __init__(self, registry: WorkspaceRegistry, vault: CryptoVault, settings: Settings) -> None:
        self.registry = registry
        self.vault = vault
        self.settings = settings

    def nonce_for(self, user: User) -> str:
        return create_nonce(SAVE_ACTION, str(user.user_id), self.settings)

    def _nonce_ok(self, nonce: Optional[str], user: User) -> bool:
        return verify_nonce(nonce, SAVE_ACTION, str(user.user_id), self.settings)

    async def save(self, body: Any, user: User) -> JSONResponse:
        """Validate, encrypt and store a settings submission."""
        if not isinstance(body, dict):
            return _error("Bad Request")
        if body.get("action") != SAVE_ACTION or not self._nonce_ok(body.get("nonce"), user):
            return _error("Invalid or expired security token")

        raw = body.get("settings")
        if not raw or not isinstance(raw, dict):
            return _error("Bad Request")
        try:
            payload = SettingsPayload.model_validate(raw)
        except ValidationError as exc:
            return _error(f"Invalid settings: {exc.error_count()} error(s)")

        update: Dict[str, Any] = {"active": "active" in raw and is_checked(payload.active)}
        access: Dict[str, Dict[str, str]] = {}
        try:
            for domain, entry in payload.access.items():
                domain_key = sanitize(domain)
                if not domain_key:
                    return _error("Workspace domain must not be empty")
                access[domain_key] = {
                    "name": sanitize(entry.name) or domain_key,
                    "id": await self.vault.encrypt(entry.id.strip()),
                    "secret": await self.vault.encrypt(entry.secret.strip()),
                }
            if access:
                update["access"] = access
            saved = await self.registry.upsert(update)
        except VaultKeyError as exc:
            logger.error("SSO settings not saved: %s", exc)
            saved = False

        if not saved:
            return _error("Settings could not be saved", status_code=500)
        logger.info("SSO settings saved by %s", user.user_id)
        return _success("Settings saved")

    async def remove(self, domain_key: str, nonce: Optional[str], user: User) -> JSONResponse:
        if not self._nonce_ok(nonce, user):
            return _error("Invalid or expired security token")
        if not await self.registry.remove(domain_key):
            return _error(f"Unknown workspace {domain_key}", status_code=404)
        return _success(f"Removed {domain_key}", status_code=200)

    async def render(self, user: User) -> str:
        rows = []
        for domain_key, credential in sorted((await self.registry.get_workspaces()).items()):
            rows.append(
                _workspace_html(
                    domain_key,
                    credential.name,
                    await self.vault.decrypt(credential.client_id),
                    await self.vault.decrypt(credential.client_secret),
                )
            )
        return _settings_html(
            active=await self.registry.is_active(),
            workspaces="".join(rows),
            nonce=self.nonce_for(user),
        )


def get_admin_handler(request: Request) -> AdminApiHandler:
    return request.app.state.admin


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("", response_class=HTMLResponse)
async def settings_page(
    user: User = Depends(require_admin),
    handler: AdminApiHandler = Depends(get_admin_handler),
) -> HTMLResponse:
    return HTMLResponse(await handler.render(user))


@router.get("/nonce")
async def issue_nonce(
    user: User = Depends(require_admin),
    handler: AdminApiHandler = Depends(get_admin_handler),
) -> Dict[str, str]:
    return {"action": SAVE_ACTION, "nonce": handler.nonce_for(user)}


@router.post("")
async def save_settings(
    request: Request,
    user: User = Depends(require_admin),
    handler: AdminApiHandler = Depends(get_admin_handler),
) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        body = None
    return await handler.save(body, user)


@router.delete("/workspaces/{domain_key}")
async def delete_workspace(
    domain_key: str,
    nonce: Optional[str] = Header(None, alias=NONCE_HEADER),
    user: User = Depends(require_admin),
    handler: AdminApiHandler = Depends(get_admin_handler),
) -> JSONResponse:
    return await handler.remove(domain_key, nonce, user)


# ── Settings page template ─────────────────────────────────────────────


def _workspace_html(domain_key: str, name: str, client_id: str, client_secret: str) -> str:
    # domain_key and name are stored escaped already
    return f"""
        <table class="workspace" data-domain="{domain_key}">
            <tr><th>Domain</th><td>@&nbsp;{domain_key}</td>
                <td rowspan="3"><button type="button" class="remove">Delete</button></td></tr>
            <tr><th>Google Client ID</th>
                <td><input class="cid" required value="{escape(client_id, quote=True)}"></td></tr>
            <tr><th>Google Client Secret</th>
                <td><input class="secret" required value="{escape(client_secret, quote=True)}"></td></tr>
            <input type="hidden" class="name" value="{name}">
        </table>"""


def _settings_html(active: bool, workspaces: str, nonce: str) -> str:
    checked = "checked" if active else ""
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Workspace SSO settings</title>
    <style>
        body {{ font-family: system-ui, sans-serif; margin: 2rem; }}
        table.workspace {{ border-bottom: 1px solid #000; margin-bottom: 1rem; }}
        input {{ width: 28rem; }}
    </style>
</head>
<body>
    <h1>Workspace SSO</h1>
    <form id="sso-settings">
        <h2>Login screen replacement</h2>
        <label><input type="checkbox" id="active" style="width:auto" {checked}>
            Replace the default login with Google SSO</label>
        <h2>Add workspace domain</h2>
        @ <input id="new-domain" placeholder="example.com">
        <button type="button" id="add">Add workspace domain</button>
        <h2>Workspace domains</h2>
        <div id="workspaces">{workspaces}</div>
        <button type="submit">Save settings</button>
    </form>
    <script>
        const NONCE = {json.dumps(nonce)};
        const container = document.getElementById('workspaces');
        document.getElementById('add').addEventListener('click', () => {{
            const input = document.getElementById('new-domain');
            const domain = input.value.trim();
            if (!domain) {{ alert('Enter a domain name before adding new credentials.'); return; }}
            const table = document.createElement('table');
            table.className = 'workspace';
            table.dataset.domain = domain;
            table.innerHTML = '<tr><th>Domain</th><td>@ ' + domain + '</td></tr>'
                + '<tr><th>Google Client ID</th><td><input class="cid" required></td></tr>'
                + '<tr><th>Google Client Secret</th><td><input class="secret" required></td></tr>';
            container.prepend(table);
            input.value = '';
        }});
        container.addEventListener('click', async (e) => {{
            if (!e.target.classList.contains('remove')) return;
            const table = e.target.closest('table');
            const resp = await fetch('/admin/sso/workspaces/' + encodeURIComponent(table.dataset.domain), {{
                method: 'DELETE', headers: {{'X-SSO-Nonce': NONCE}},
            }});
            if (resp.ok) table.remove();
        }});
        document.getElementById('sso-settings').addEventListener('submit', async (e) => {{
            e.preventDefault();
            const access = {{}};
            container.querySelectorAll('table.workspace').forEach((t) => {{
                const name = t.querySelector('.name');
                access[t.dataset.domain] = {{
                    name: name ? name.value : t.dataset.domain,
                    id: t.querySelector('.cid').value,
                    secret: t.querySelector('.secret').value,
                }};
            }});
            const settings = {{access}};
            if (document.getElementById('active').checked) settings.active = 'on';
            const resp = await fetch('/admin/sso', {{
                method: 'POST',
                headers: {{'Content-Type': 'application/json'}},
                body: JSON.stringify({{action: '{SAVE_ACTION}', nonce: NONCE, settings}}),
            }});
            const result = await resp.json();
            alert(result.success ? result.data.message : result.data.error);
        }});
    </script>
</body>
</html>"""
