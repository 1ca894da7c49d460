"""Tests for session tokens and the GitHub OAuth helpers."""
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import respx

from auth.jwt_handler import (
    create_access_token,
    create_state_token,
    decode_access_token,
    verify_state_token,
)
from auth.oauth import (
    OAuthError,
    build_authorization_url,
    exchange_code_for_token,
    poll_device_token,
    request_device_code,
    validate_personal_access_token,
)

TOKEN_URL = "https://github.com/login/oauth/access_token"


class TestSessionTokens:
    def test_round_trip(self, settings):
        token = create_access_token("alice", "1", "gho_secret", settings)
        payload = decode_access_token(token, settings)

        assert payload["sub"] == "alice"
        assert payload["gid"] == "1"
        assert payload["gh"] == "gho_secret"

    def test_wrong_key_rejected(self, settings):
        token = create_access_token("alice", "1", "gho_secret", settings)
        settings.session_secret_key = "another-key"
        assert decode_access_token(token, settings) is None

    def test_garbage_rejected(self, settings):
        assert decode_access_token("not-a-jwt", settings) is None

    def test_state_token_is_not_a_session(self, settings):
        state = create_state_token("nonce-1", settings)
        assert decode_access_token(state, settings) is None
        assert verify_state_token(state, "nonce-1", settings)
        assert not verify_state_token(state, "nonce-2", settings)


class TestOAuth:
    def test_authorization_url(self, settings):
        url = urlparse(build_authorization_url("state-123", settings))
        query = parse_qs(url.query)

        assert url.netloc == "github.com"
        assert url.path == "/login/oauth/authorize"
        assert query["client_id"] == ["client-id"]
        assert query["state"] == ["state-123"]
        assert "public_repo" in query["scope"][0].split(" ")

    @pytest.mark.asyncio
    @respx.mock
    async def test_exchange_code(self, settings):
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "gho_abc", "scope": "read:user"})
        )
        assert await exchange_code_for_token("code-1", settings) == "gho_abc"

    @pytest.mark.asyncio
    @respx.mock
    async def test_exchange_code_error(self, settings):
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                200, json={"error": "bad_verification_code", "error_description": "The code is incorrect"}
            )
        )
        with pytest.raises(OAuthError) as info:
            await exchange_code_for_token("stale", settings)
        assert info.value.error == "bad_verification_code"

    @pytest.mark.asyncio
    @respx.mock
    async def test_request_device_code(self, settings):
        respx.post("https://github.com/login/device/code").mock(
            return_value=httpx.Response(
                200,
                json={
                    "device_code": "dev-1",
                    "user_code": "ABCD-1234",
                    "verification_uri": "https://github.com/login/device",
                    "expires_in": 899,
                    "interval": 5,
                },
            )
        )
        device = await request_device_code(settings)
        assert device.user_code == "ABCD-1234"
        assert device.interval == 5

    @pytest.mark.asyncio
    @respx.mock
    async def test_poll_pending_then_slow_down_then_token(self, settings):
        respx.post(TOKEN_URL).mock(
            side_effect=[
                httpx.Response(200, json={"error": "authorization_pending"}),
                httpx.Response(200, json={"error": "slow_down", "interval": 10}),
                httpx.Response(200, json={"access_token": "gho_device", "scope": "public_repo"}),
            ]
        )
        first = await poll_device_token("dev-1", 5, settings)
        second = await poll_device_token("dev-1", first.interval, settings)
        third = await poll_device_token("dev-1", second.interval, settings)

        assert first.pending and first.interval == 5
        assert second.pending and second.interval == 10
        assert third.access_token == "gho_device"

    @pytest.mark.asyncio
    @respx.mock
    async def test_poll_denied(self, settings):
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"error": "access_denied"}))
        result = await poll_device_token("dev-1", 5, settings)
        assert not result.pending
        assert result.error == "access_denied"

    @pytest.mark.asyncio
    @respx.mock
    async def test_personal_access_token(self, settings):
        respx.get("https://api.github.com/user").mock(
            return_value=httpx.Response(200, json={"login": "alice", "id": 1}, headers={"x-oauth-scopes": "repo"})
        )
        user, scopes = await validate_personal_access_token(" ghp_abc ", settings)
        assert user["login"] == "alice"
        assert scopes == ["repo"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_personal_access_token_rejected(self, settings):
        respx.get("https://api.github.com/user").mock(
            return_value=httpx.Response(401, json={"message": "Bad credentials"})
        )
        with pytest.raises(OAuthError):
            await validate_personal_access_token("ghp_bad", settings)

    @pytest.mark.asyncio
    async def test_empty_personal_access_token(self, settings):
        with pytest.raises(OAuthError):
            await validate_personal_access_token("   ", settings)
