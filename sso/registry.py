"""
WorkspaceRegistry — domain key → OAuth client credentials.

``SettingsContext`` is the single owner of the process-wide settings
cache: it hydrates lazily from the store exactly once and serialises
every load-modify-persist cycle behind one lock.  The registry and the
vault both work through it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from sso.models import GlobalSettings, WorkspaceCredential
from sso.store import SettingsStore

logger = logging.getLogger(__name__)

_TOP_LEVEL_KEYS = ("active", "passphrase", "hashKey", "access")


class SettingsContext:
    """Write-through cache of ``GlobalSettings``."""

    def __init__(self, store: SettingsStore, key: str) -> None:
        self._store = store
        self._key = key
        self._settings: Optional[GlobalSettings] = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._settings is not None

    async def get(self) -> GlobalSettings:
        if self._settings is None:
            async with self._lock:
                await self._hydrate()
        return self._settings

    async def _hydrate(self) -> None:
        # Caller holds the lock.
        if self._settings is None:
            raw = await self._store.get(self._key)
            self._settings = GlobalSettings.from_store(raw)
            logger.debug("Loaded SSO settings (%d workspaces)", len(self._settings.access))

    async def update(
        self, mutate: Callable[[GlobalSettings], Optional[GlobalSettings]]
    ) -> bool:
        """
        Apply ``mutate`` to a copy of the current settings and persist it.

        ``mutate`` may return ``None`` to signal there is nothing to write.
        A mutation that produces an invalid record is refused with False.
        The cache only moves forward once the store has accepted the write.
        """
        async with self._lock:
            await self._hydrate()
            try:
                candidate = mutate(self._settings.model_copy(deep=True))
            except ValidationError as exc:
                logger.error("Refused invalid settings for %s: %s", self._key, exc)
                return False
            if candidate is None:
                return True
            if not await self._store.set(self._key, candidate.to_store()):
                logger.error("Settings store rejected write for %s", self._key)
                return False
            self._settings = candidate
            return True


class WorkspaceRegistry:
    """Read/write access to configured workspaces."""

    def __init__(self, context: SettingsContext) -> None:
        self._context = context

    async def is_active(self) -> bool:
        return (await self._context.get()).active

    async def get_workspaces(self) -> Dict[str, WorkspaceCredential]:
        return dict((await self._context.get()).access)

    async def get(self, domain_key: Optional[str]) -> Optional[WorkspaceCredential]:
        """Exact-match lookup; no case folding or partial matches."""
        if not domain_key:
            return None
        return (await self._context.get()).access.get(domain_key)

    async def upsert(self, update: Mapping[str, Any]) -> bool:
        """
        Merge a partial settings structure and write it through.

        Top-level keys present in ``update`` replace the cached value.
        Workspaces are merged by domain key, so entries not named in the
        update are kept and an empty ``access`` leaves them all untouched.
        """
        patch = {k: v for k, v in update.items() if k in _TOP_LEVEL_KEYS}
        access = patch.pop("access", None) or {}
        if not isinstance(access, Mapping):
            logger.error("Refused settings update: access is not a mapping")
            return False

        def merge(current: GlobalSettings) -> GlobalSettings:
            data = current.to_store()
            data.update(patch)
            for domain_key, credential in access.items():
                if isinstance(credential, WorkspaceCredential):
                    credential = credential.model_dump(by_alias=True)
                data["access"][domain_key] = credential
            return GlobalSettings.from_store(data)

        saved = await self._context.update(merge)
        if saved:
            logger.info("SSO settings saved (%d workspace(s) updated)", len(access))
        return saved

    async def remove(self, domain_key: str) -> bool:
        """Delete one workspace; False if unknown or the write failed."""
        removed = False

        def drop(current: GlobalSettings) -> Optional[GlobalSettings]:
            nonlocal removed
            if domain_key not in current.access:
                return None
            del current.access[domain_key]
            removed = True
            return current

        saved = await self._context.update(drop)
        if removed and saved:
            logger.info("Removed workspace %s", domain_key)
        return removed and saved
