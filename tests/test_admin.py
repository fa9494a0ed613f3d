"""
Tests for AdminApiHandler — validation, encryption and structured results.
"""

import json
from unittest.mock import AsyncMock

import pytest

from api.admin import SAVE_ACTION, AdminApiHandler, is_checked, sanitize
from auth.tokens import create_nonce
from helpers import make_user


def _body(handler, user, settings, **overrides):
    body = {"action": SAVE_ACTION, "nonce": handler.nonce_for(user), "settings": settings}
    body.update(overrides)
    return body


def _json(response):
    return json.loads(response.body)


@pytest.fixture
def handler(registry, vault, settings) -> AdminApiHandler:
    return AdminApiHandler(registry, vault, settings)


class TestSave:
    @pytest.mark.asyncio
    async def test_saves_and_encrypts(self, handler, registry, vault, store, admin_user):
        settings = {
            "active": "on",
            "access": {"example.com": {"name": "Example", "id": " cid ", "secret": "csecret"}},
        }
        response = await handler.save(_body(handler, admin_user, settings), admin_user)

        assert response.status_code == 202
        assert _json(response) == {"success": True, "data": {"message": "Settings saved"}}
        assert await registry.is_active() is True
        stored = (await store.get("gwsso_settings"))["access"]["example.com"]
        assert stored["name"] == "Example"
        assert "cid" not in stored["id"] and "csecret" not in stored["secret"]
        assert await vault.decrypt(stored["id"]) == "cid"
        assert await vault.decrypt(stored["secret"]) == "csecret"

    @pytest.mark.asyncio
    async def test_missing_active_flag_deactivates(self, handler, registry, admin_user):
        await registry.upsert({"active": True})
        settings = {"access": {"a.com": {"id": "i", "secret": "s"}}}
        await handler.save(_body(handler, admin_user, settings), admin_user)
        assert await registry.is_active() is False

    @pytest.mark.asyncio
    async def test_labels_are_sanitized(self, handler, registry, admin_user):
        settings = {"active": True, "access": {" <b>x.com</b> ": {"name": '"X"', "id": "i", "secret": "s"}}}
        await handler.save(_body(handler, admin_user, settings), admin_user)
        workspaces = await registry.get_workspaces()
        assert list(workspaces) == ["&lt;b&gt;x.com&lt;/b&gt;"]
        assert workspaces["&lt;b&gt;x.com&lt;/b&gt;"].name == "&quot;X&quot;"

    @pytest.mark.asyncio
    async def test_save_keeps_workspaces_not_submitted(self, handler, registry, admin_user):
        await handler.save(_body(handler, admin_user, {"access": {"a.com": {"id": "i", "secret": "s"}}}), admin_user)
        await handler.save(_body(handler, admin_user, {"active": True}), admin_user)
        assert set(await registry.get_workspaces()) == {"a.com"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            None,
            [],
            {"action": SAVE_ACTION},
            {"action": "other", "nonce": "x", "settings": {"active": True}},
        ],
    )
    async def test_bad_requests(self, handler, admin_user, body):
        response = await handler.save(body, admin_user)
        assert response.status_code == 400
        assert _json(response)["success"] is False
        assert "error" in _json(response)["data"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, {}, "active"])
    async def test_empty_payload(self, handler, admin_user, payload):
        response = await handler.save(_body(handler, admin_user, payload), admin_user)
        assert response.status_code == 400
        assert _json(response) == {"success": False, "data": {"error": "Bad Request"}}

    @pytest.mark.asyncio
    async def test_nonce_is_bound_to_user_and_action(self, handler, settings, admin_user):
        other = make_user("other@example.com", "other", role="administrator")
        payload = {"active": True}
        for nonce in (handler.nonce_for(other), create_nonce("other_action", str(admin_user.user_id), settings)):
            response = await handler.save(_body(handler, admin_user, payload, nonce=nonce), admin_user)
            assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_credentials_fail_validation(self, handler, registry, admin_user):
        settings = {"active": True, "access": {"a.com": {"name": "a", "id": "", "secret": "s"}}}
        response = await handler.save(_body(handler, admin_user, settings), admin_user)
        assert response.status_code == 400
        assert await registry.get_workspaces() == {}

    @pytest.mark.asyncio
    async def test_persistence_failure_is_reported(self, handler, registry, admin_user):
        registry.upsert = AsyncMock(return_value=False)
        response = await handler.save(_body(handler, admin_user, {"active": True}), admin_user)
        assert response.status_code == 500
        assert _json(response)["success"] is False


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_workspace(self, handler, registry, admin_user):
        await registry.upsert({"access": {"a.com": {"id": "i", "secret": "s"}}})
        response = await handler.remove("a.com", handler.nonce_for(admin_user), admin_user)
        assert response.status_code == 200
        assert await registry.get_workspaces() == {}

    @pytest.mark.asyncio
    async def test_remove_unknown_or_without_nonce(self, handler, registry, admin_user):
        await registry.upsert({"access": {"a.com": {"id": "i", "secret": "s"}}})
        assert (await handler.remove("b.com", handler.nonce_for(admin_user), admin_user)).status_code == 404
        assert (await handler.remove("a.com", None, admin_user)).status_code == 400
        assert set(await registry.get_workspaces()) == {"a.com"}


class TestRender:
    @pytest.mark.asyncio
    async def test_page_shows_decrypted_credentials(self, handler, registry, vault, admin_user):
        await registry.upsert(
            {
                "active": True,
                "access": {"a.com": {"name": "a.com", "id": await vault.encrypt("cid-1"), "secret": "tampered"}},
            }
        )
        page = await handler.render(admin_user)
        assert 'value="cid-1"' in page
        assert 'class="secret" required value=""' in page
        assert "checked" in page


def test_helpers():
    assert sanitize("  a&b ") == "a&amp;b"
    assert is_checked("on") and is_checked(True) and is_checked("1")
    assert not any(is_checked(v) for v in (False, None, "", "0", "false", "OFF"))
