"""
Settings store — persistence adapter for the SSO settings blob.

The host keeps configuration in a generic key-value table; the SSO
settings live under a single fixed key in one shared namespace.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import Option

logger = logging.getLogger(__name__)


class SettingsStore(Protocol):
    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def set(self, key: str, value: Dict[str, Any]) -> bool:
        ...


class SqlSettingsStore:
    """``options`` table backed store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Option.option_value).where(Option.option_key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: Dict[str, Any]) -> bool:
        """Upsert ``value``; returns False if the write did not commit."""
        async with self._session_factory() as session:
            try:
                row = await session.get(Option, key)
                if row is None:
                    session.add(Option(option_key=key, option_value=value))
                else:
                    row.option_value = value
                await session.commit()
                return True
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Failed to persist option %s: %s", key, exc)
                return False


class InMemorySettingsStore:
    """Process-local store, used by tests and single-process demos."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self._data: Dict[str, Dict[str, Any]] = copy.deepcopy(initial or {})
        self.writes = 0

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def set(self, key: str, value: Dict[str, Any]) -> bool:
        self._data[key] = copy.deepcopy(value)
        self.writes += 1
        return True
