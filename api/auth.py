"""
Password login routes — the host's default authentication and the shop
login, which sends privileged accounts to SSO instead.

Route prefixes: /api/v1/auth, /api/v1/shop
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel

from api.dependencies import get_directory, get_flow, get_settings
from auth.password import verify_password
from auth.tokens import start_session
from config.settings import Settings
from database.directory import UserDirectory
from database.models import User
from sso.flow import AuthFlowController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])
shop_router = APIRouter(tags=["shop"])


# ── Request / response schemas ─────────────────────────────────────────


class LoginRequest(BaseModel):
    email: str
    password: str


class ShopLoginRequest(BaseModel):
    user_login: str
    password: str


class AuthResponse(BaseModel):
    user_id: str
    display_name: Optional[str]
    email: str
    token: str


def _authenticated(user: User, response: Response, settings: Settings) -> Dict[str, Any]:
    return {
        "user_id": str(user.user_id),
        "display_name": user.display_name,
        "email": user.email,
        "token": start_session(response, str(user.user_id), settings),
    }


def _check_password(user: Optional[User], password: str) -> User:
    if not verify_password(password, user.password_hash if user else None):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid login or password",
        )
    return user


# ── Endpoints ──────────────────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    req: LoginRequest,
    response: Response,
    directory: UserDirectory = Depends(get_directory),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Login with email + password."""
    user = _check_password(await directory.find_by_email(req.email), req.password)
    logger.info("Password login: %s (%s)", user.display_name, user.user_id)
    return _authenticated(user, response, settings)


@shop_router.post("/login", response_model=AuthResponse)
async def shop_login(
    req: ShopLoginRequest,
    response: Response,
    flow: AuthFlowController = Depends(get_flow),
    directory: UserDirectory = Depends(get_directory),
    settings: Settings = Depends(get_settings),
) -> Union[Dict[str, Any], Response]:
    """Shop account login by login name or email; staff are sent to SSO."""
    creds = await flow.handle_external_login_credentials(
        {"user_login": req.user_login, "password": req.password}
    )
    if isinstance(creds, Response):
        return creds

    user_login = creds["user_login"].strip()
    if "@" in user_login[1:]:
        user = await directory.find_by_email(user_login)
    else:
        user = await directory.find_by_login(user_login)
    user = _check_password(user, creds["password"])
    logger.info("Shop login: %s (%s)", user.display_name, user.user_id)
    return _authenticated(user, response, settings)
