"""
HTML pages served by the login surface.
"""

from __future__ import annotations

from html import escape
from typing import Iterable, Optional

_STYLE = """
    body {
        font-family: 'Inter', system-ui, sans-serif;
        background: #f3f4f8; color: #1f2330;
        display: flex; align-items: center; justify-content: center;
        height: 100vh; margin: 0;
    }
    .card {
        text-align: center; padding: 32px 40px;
        background: #fff; border: 1px solid #dfe2ea;
        border-radius: 12px; min-width: 320px;
    }
    select, input { padding: 6px; margin: 4px 0; width: 100%; box-sizing: border-box; }
    button {
        background-color: #3e5bc7; color: #fff; font-weight: bold;
        padding: 6px 14px; border: 0; border-radius: 4px; cursor: pointer; margin-top: 8px;
    }
    .error { color: #ef4444; font-size: 0.85rem; }
"""


def _page(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(title)}</title>
    <style>{_STYLE}</style>
</head>
<body>
    <div class="card">
{body}
    </div>
</body>
</html>"""


def render_workspace_picker(domains: Iterable[str], selected: Optional[str] = None) -> str:
    """Workspace selection form; submits ``?workspace=<domain>`` back to the login page."""
    placeholder_selected = "" if selected else " selected"
    options = [f'<option value="" disabled{placeholder_selected}>Select one</option>']
    for domain in domains:
        mark = " selected" if domain == selected else ""
        value = escape(domain, quote=True)
        options.append(f'<option value="{value}"{mark}>{value}</option>')
    body = f"""
        <form method="get" action="/login">
            <p><label for="workspace">Log in with your Google workspace domain:</label></p>
            <select id="workspace" name="workspace">
                {"".join(options)}
            </select>
            <button type="submit">Log in with Google</button>
        </form>"""
    return _page("Workspace login", body)


def render_password_login(error: Optional[str] = None) -> str:
    """The host's default email + password form."""
    notice = f'<p class="error">{escape(error)}</p>' if error else ""
    body = f"""
        <form id="login">
            <p>Log in</p>
            {notice}
            <input type="email" name="email" placeholder="Email" required>
            <input type="password" name="password" placeholder="Password" required>
            <button type="submit">Log in</button>
        </form>
        <script>
            document.getElementById('login').addEventListener('submit', async (e) => {{
                e.preventDefault();
                const data = Object.fromEntries(new FormData(e.target));
                const resp = await fetch('/api/v1/auth/login', {{
                    method: 'POST',
                    headers: {{'Content-Type': 'application/json'}},
                    body: JSON.stringify(data),
                }});
                if (resp.ok) {{ window.location = '/'; }} else {{ alert('Invalid email or password'); }}
            }});
        </script>"""
    return _page("Log in", body)
