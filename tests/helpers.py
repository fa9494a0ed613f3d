"""Test doubles and helpers shared across the test modules."""

from __future__ import annotations

import uuid
from typing import List, Optional
from urllib.parse import urlencode

from database.models import User
from sso.encryption import CryptoVault
from sso.models import ProviderIdentity
from sso.registry import WorkspaceRegistry


def make_user(email: str, login: str, role: str = "customer", password_hash: str = "") -> User:
    return User(
        user_id=uuid.uuid4(),
        email=email,
        login=login,
        display_name=login,
        role=role,
        password_hash=password_hash,
    )


class FakeDirectory:
    """In-memory stand-in for ``UserDirectory``."""

    def __init__(self, users: Optional[List[User]] = None) -> None:
        self.users = list(users or [])

    async def find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.users if u.email == email), None)

    async def find_by_login(self, login: str) -> Optional[User]:
        return next((u for u in self.users if u.login == login), None)

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if str(u.user_id) == user_id), None)


class StubClient:
    """OAuth client double that resolves every code to a preset identity."""

    def __init__(self, client_id: str, client_secret: str, identity: Optional[ProviderIdentity]):
        self.client_id = client_id
        self.client_secret = client_secret
        self.identity = identity
        self.codes: List[str] = []

    def get_auth_url(self, hosted_domain: Optional[str] = None, state: Optional[str] = None) -> str:
        query = urlencode({"client_id": self.client_id, "state": state or ""})
        return f"https://accounts.google.com/o/oauth2/v2/auth?{query}"

    async def resolve_identity(self, code: str) -> Optional[ProviderIdentity]:
        self.codes.append(code)
        return self.identity


class StubClientFactory:
    def __init__(self, identity: Optional[ProviderIdentity] = None) -> None:
        self.identity = identity
        self.clients: List[StubClient] = []

    def __call__(self, client_id: str, client_secret: str) -> StubClient:
        client = StubClient(client_id, client_secret, self.identity)
        self.clients.append(client)
        return client


async def add_workspace(
    registry: WorkspaceRegistry,
    vault: CryptoVault,
    domain_key: str = "example.com",
    client_id: str = "client-123.apps.googleusercontent.com",
    client_secret: str = "s3cr3t",
    active: bool = True,
) -> None:
    await registry.upsert(
        {
            "active": active,
            "access": {
                domain_key: {
                    "name": domain_key,
                    "id": await vault.encrypt(client_id),
                    "secret": await vault.encrypt(client_secret),
                }
            },
        }
    )
