"""
Workspace SSO gateway — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.admin import AdminApiHandler
from api.admin import router as admin_router
from api.auth import router as auth_router
from api.auth import shop_router
from api.login import router as login_router
from api.middleware import register_middleware
from config.settings import Settings, config
from database.directory import UserDirectory
from sso.encryption import CryptoVault
from sso.flow import AuthFlowController, ClientFactory
from sso.registry import SettingsContext, WorkspaceRegistry
from sso.store import SettingsStore, SqlSettingsStore

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = config,
    *,
    store: Optional[SettingsStore] = None,
    directory: Optional[UserDirectory] = None,
    client_factory: Optional[ClientFactory] = None,
) -> FastAPI:
    """
    Build the application and wire its components.

    ``store`` and ``directory`` default to the SQL-backed implementations.
    """
    app = FastAPI(
        title="Workspace SSO Gateway",
        version="1.0.0",
        description="Google Workspace single sign-on with per-domain OAuth clients.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    if store is None or directory is None:
        from database.session import async_session_factory, init_models

        store = store or SqlSettingsStore(async_session_factory)
        directory = directory or UserDirectory(async_session_factory)

        @app.on_event("startup")
        async def on_startup():
            logger.info("Creating missing tables…")
            await init_models()
            logger.info("Application ready to accept requests.")

    context = SettingsContext(store, settings.settings_option_key)
    registry = WorkspaceRegistry(context)
    vault = CryptoVault(context)

    app.state.settings = settings
    app.state.registry = registry
    app.state.directory = directory
    app.state.flow = AuthFlowController(
        registry, vault, directory, settings, client_factory=client_factory
    )
    app.state.admin = AdminApiHandler(registry, vault, settings)

    # Routes
    app.include_router(login_router, prefix="/login")
    app.include_router(auth_router, prefix="/api/v1/auth")
    app.include_router(shop_router, prefix="/api/v1/shop")
    app.include_router(admin_router, prefix="/admin/sso")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
