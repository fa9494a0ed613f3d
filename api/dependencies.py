"""
FastAPI dependencies (shared across routes).

Components are wired once in ``main.create_app`` and kept on
``app.state``; routes pull them from there.  The admin handler provider
lives in ``api.admin`` beside the handler itself.
"""

from __future__ import annotations

from fastapi import Request

from config.settings import Settings
from database.directory import UserDirectory
from sso.flow import AuthFlowController


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_flow(request: Request) -> AuthFlowController:
    return request.app.state.flow


def get_directory(request: Request) -> UserDirectory:
    return request.app.state.directory
