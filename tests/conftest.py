"""Shared pytest fixtures for the workspace SSO tests."""

from __future__ import annotations

import pytest

from config.settings import Settings
from database.models import User
from helpers import FakeDirectory, StubClientFactory, make_user
from sso.encryption import CryptoVault
from sso.flow import AuthFlowController
from sso.models import ProviderIdentity
from sso.registry import SettingsContext, WorkspaceRegistry
from sso.store import InMemorySettingsStore

OPTION_KEY = "gwsso_settings"


# ── fixtures ───────────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret="test-jwt-secret",
        cookie_secret="test-cookie-secret",
        cookie_secure=False,
        oauth_redirect_base="https://sso.test",
    )


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def context(store: InMemorySettingsStore) -> SettingsContext:
    return SettingsContext(store, OPTION_KEY)


@pytest.fixture
def registry(context: SettingsContext) -> WorkspaceRegistry:
    return WorkspaceRegistry(context)


@pytest.fixture
def vault(context: SettingsContext) -> CryptoVault:
    return CryptoVault(context)


@pytest.fixture
def admin_user() -> User:
    return make_user("admin@example.com", "admin", role="administrator")


@pytest.fixture
def customer_user() -> User:
    return make_user("buyer@gmail.com", "buyer", role="customer")


@pytest.fixture
def directory(admin_user: User, customer_user: User) -> FakeDirectory:
    return FakeDirectory([admin_user, customer_user])


@pytest.fixture
def client_factory() -> StubClientFactory:
    return StubClientFactory(ProviderIdentity(email="admin@example.com", email_verified=True))


@pytest.fixture
def flow(registry, vault, directory, settings, client_factory) -> AuthFlowController:
    return AuthFlowController(registry, vault, directory, settings, client_factory=client_factory)


