"""
Global middleware.
"""

from __future__ import annotations

import logging
import time

from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

# Pages that carry credentials, codes or nonces must not be cached.
_NO_STORE_PREFIXES = ("/login", "/admin", "/api/v1/auth", "/api/v1/shop")


def register_middleware(app: FastAPI) -> None:
    """Attach any app-level middleware."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        if request.url.path.startswith(_NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        # path only: query strings may hold authorization codes
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response
