"""
Login page and provider callback.

Route prefix: /login
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from api.dependencies import get_flow
from auth.tokens import start_session
from sso.cookies import REDIRECT_COOKIE, decode_redirect
from sso.flow import AuthFlowController, is_safe_redirect
from sso.pages import render_password_login

logger = logging.getLogger(__name__)

router = APIRouter(tags=["login"])

DEFAULT_LANDING = "/"


@router.get("", response_class=HTMLResponse)
async def login_page(
    request: Request,
    flow: AuthFlowController = Depends(get_flow),
) -> Response:
    """Workspace picker / provider redirect, or the default password form."""
    response = await flow.run(request)
    if response is not None:
        return response
    return HTMLResponse(render_password_login())


@router.get("/callback", response_class=HTMLResponse)
async def login_callback(
    request: Request,
    flow: AuthFlowController = Depends(get_flow),
) -> Response:
    """
    Provider redirect target.

    On success a host session is started and the browser is sent to the
    stashed post-login target; otherwise the default login form is shown.
    """
    user = await flow.authenticate(request, None)
    if user is None:
        return HTMLResponse(
            render_password_login("Google sign-in did not match an account."),
            status_code=401,
        )

    settings = flow.settings
    target = decode_redirect(
        flow.signer, request.cookies.get(REDIRECT_COOKIE), settings.redirect_cookie_ttl
    )
    response = RedirectResponse(
        target if is_safe_redirect(target) else DEFAULT_LANDING, status_code=303
    )
    response.delete_cookie(REDIRECT_COOKIE, path="/")
    start_session(response, str(user.user_id), settings)
    return response
