"""
Tests for the signed cookie values carried across the provider redirect.
"""

from sso.cookies import (
    CookieSigner,
    decode_redirect,
    decode_workspace,
    encode_redirect,
    encode_workspace,
)

NOW = 1_700_000_000


class TestCookieSigner:
    def test_round_trip_carries_issue_time(self):
        signer = CookieSigner("secret")
        payload = signer.loads(signer.dumps({"d": "example.com"}, now=NOW), max_age=60, now=NOW + 10)
        assert payload == {"d": "example.com", "t": NOW}

    def test_other_secret_is_rejected(self):
        value = CookieSigner("secret").dumps({"d": "example.com"}, now=NOW)
        assert CookieSigner("other").loads(value, max_age=60, now=NOW) is None

    def test_tampered_payload_is_rejected(self):
        signer = CookieSigner("secret")
        forged = CookieSigner("secret").dumps({"d": "evil.com"}, now=NOW).split(".")[0]
        signature = signer.dumps({"d": "example.com"}, now=NOW).split(".")[1]
        assert signer.loads(f"{forged}.{signature}", max_age=60, now=NOW) is None

    def test_expired_value_is_rejected(self):
        signer = CookieSigner("secret")
        value = signer.dumps({"d": "example.com"}, now=NOW)
        assert signer.loads(value, max_age=120, now=NOW + 120) is not None
        assert signer.loads(value, max_age=120, now=NOW + 121) is None

    def test_malformed_values(self):
        signer = CookieSigner("secret")
        for value in (None, "", "no-dot", "###.abc", "e30.deadbeef"):
            assert signer.loads(value, max_age=60, now=NOW) is None


class TestTypedCookies:
    def test_workspace_binding(self):
        signer = CookieSigner("secret")
        binding = decode_workspace(signer, encode_workspace(signer, "example.com", now=NOW), 86400, now=NOW)
        assert binding.domain_key == "example.com"
        assert binding.issued_at == NOW
        assert binding.state == ""

    def test_workspace_binding_carries_state(self):
        signer = CookieSigner("secret")
        value = encode_workspace(signer, "example.com", state="st-1", now=NOW)
        assert decode_workspace(signer, value, 86400, now=NOW).state == "st-1"

    def test_redirect_cookie_is_not_a_workspace_binding(self):
        signer = CookieSigner("secret")
        value = encode_redirect(signer, "/admin", now=NOW)
        assert decode_workspace(signer, value, 86400, now=NOW) is None
        assert decode_redirect(signer, value, 120, now=NOW) == "/admin"
