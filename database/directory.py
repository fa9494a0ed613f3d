"""
User directory — the host's lookup of local accounts.

Only exact-match lookups are offered; SSO never provisions accounts.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Read-only access to ``users`` rows through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def find_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def find_by_login(self, login: str) -> Optional[User]:
        if not login:
            return None
        async with self._session_factory() as session:
            result = await session.execute(select(User).where(User.login == login))
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Resolve the principal behind a host session token."""
        try:
            uid = uuid.UUID(user_id)
        except (TypeError, ValueError):
            return None
        async with self._session_factory() as session:
            return await session.get(User, uid)
