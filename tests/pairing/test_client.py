"""Tests for the pairing session store client."""

from unittest.mock import MagicMock

import aiohttp
import pytest

from tvlink.errors import NetworkError, ServerError
from tvlink.pairing.client import PairingSessionClient
from tvlink.pairing.session import AuthStatus


class TestClientLifecycle:
    """Tests for session ownership."""

    def test_base_url_trailing_slash_stripped(self):
        """Trailing slash on base URL is ignored."""
        client = PairingSessionClient("https://api.example.com/api/")
        assert client.base_url == "https://api.example.com/api"

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        """Using an unopened client is a programming error."""
        client = PairingSessionClient("https://api.example.com")
        with pytest.raises(RuntimeError):
            await client.check_status("abc")

    @pytest.mark.asyncio
    async def test_does_not_close_injected_session(self):
        """An injected aiohttp session belongs to the caller."""
        session = MagicMock(spec=aiohttp.ClientSession)
        async with PairingSessionClient("https://api.example.com", http_session=session):
            pass
        session.close.assert_not_called()


class TestCreateSession:
    """Tests for create_session."""

    @pytest.mark.asyncio
    async def test_creates_session(self, backend_client, fake_backend):
        """Backend session is registered and returned."""
        session = await backend_client.create_session("abc-123")

        assert session.session_id == "abc-123"
        assert session.auth_url == "watchtime://tv-auth?sessionId=abc-123"
        assert session.expires_at > 0
        assert "abc-123" in fake_backend.sessions

    @pytest.mark.asyncio
    async def test_server_error_status(self, backend_client, fake_backend):
        """HTTP 500 raises ServerError with status."""
        fake_backend.forced_status["create-session"] = 500

        with pytest.raises(ServerError) as exc_info:
            await backend_client.create_session("abc")

        assert exc_info.value.status == 500
        assert exc_info.value.server_message == "create-session unavailable"

    @pytest.mark.asyncio
    async def test_not_found_status(self, backend_client, fake_backend):
        """HTTP 404 raises ServerError with status 404."""
        fake_backend.forced_status["create-session"] = 404

        with pytest.raises(ServerError) as exc_info:
            await backend_client.create_session("abc")

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_failed_envelope(self, backend_client, fake_backend):
        """success=false raises ServerError."""
        fake_backend.raw_bodies["create-session"] = '{"success": false, "message": "quota"}'

        with pytest.raises(ServerError) as exc_info:
            await backend_client.create_session("abc")

        assert exc_info.value.server_message == "quota"

    @pytest.mark.asyncio
    async def test_malformed_body(self, backend_client, fake_backend):
        """Non-JSON body raises ServerError."""
        fake_backend.raw_bodies["create-session"] = "<html>oops</html>"

        with pytest.raises(ServerError):
            await backend_client.create_session("abc")

    @pytest.mark.asyncio
    async def test_missing_data(self, backend_client, fake_backend):
        """Success envelope without data raises ServerError."""
        fake_backend.raw_bodies["create-session"] = '{"success": true}'

        with pytest.raises(ServerError):
            await backend_client.create_session("abc")

    @pytest.mark.asyncio
    async def test_non_utf8_error_page(self, backend_client, fake_backend):
        """An error page in another encoding raises ServerError with its status."""
        fake_backend.raw_errors["create-session"] = (502, b"\xff\xfe bad gateway \xe9")

        with pytest.raises(ServerError) as exc_info:
            await backend_client.create_session("abc")

        assert exc_info.value.status == 502
        assert exc_info.value.server_message is None

    @pytest.mark.asyncio
    async def test_non_utf8_success_body(self, backend_client, fake_backend):
        """Undecodable bytes with a 200 status are a malformed response."""
        fake_backend.raw_errors["create-session"] = (200, b"\xff\xfe\x00garbage")

        with pytest.raises(ServerError):
            await backend_client.create_session("abc")

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Unreachable backend raises NetworkError."""
        async with PairingSessionClient("http://127.0.0.1:1", request_timeout=5) as client:
            with pytest.raises(NetworkError):
                await client.create_session("abc")


class TestCheckStatus:
    """Tests for check_status."""

    @pytest.mark.asyncio
    async def test_pending_session(self, backend_client):
        """Pending session reports authenticated=False."""
        await backend_client.create_session("abc")

        status = await backend_client.check_status("abc")

        assert status == AuthStatus(authenticated=False)

    @pytest.mark.asyncio
    async def test_repeatable(self, backend_client, fake_backend):
        """Polling has no side effects on the session."""
        await backend_client.create_session("abc")
        before = dict(fake_backend.sessions["abc"])

        for _ in range(3):
            await backend_client.check_status("abc")

        assert fake_backend.sessions["abc"] == before

    @pytest.mark.asyncio
    async def test_linked_session(self, backend_client, fake_backend):
        """Linked session reports token and user id."""
        await backend_client.create_session("abc")
        fake_backend.sessions["abc"]["user_id"] = "user-1"

        status = await backend_client.check_status("abc")

        assert status.authenticated is True
        assert status.token == "tv-token-for-user-1"
        assert status.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_unknown_session(self, backend_client):
        """Unknown session raises ServerError 404."""
        with pytest.raises(ServerError) as exc_info:
            await backend_client.check_status("nope")
        assert exc_info.value.status == 404


class TestLink:
    """Tests for link."""

    @pytest.mark.asyncio
    async def test_links_session(self, backend_client, fake_backend):
        """Link records the caller's identity on the session."""
        await backend_client.create_session("abc")

        result = await backend_client.link("phone-token", "abc")

        assert result.success is True
        assert fake_backend.sessions["abc"]["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_link_visible_to_poll(self, backend_client):
        """After linking, check_status reports authenticated."""
        await backend_client.create_session("abc")
        await backend_client.link("phone-token", "abc")

        status = await backend_client.check_status("abc")

        assert status.authenticated is True

    @pytest.mark.asyncio
    async def test_duplicate_link_keeps_session(self, backend_client, fake_backend):
        """A second link does not corrupt the session."""
        await backend_client.create_session("abc")
        await backend_client.link("phone-token", "abc")

        result = await backend_client.link("phone-token", "abc")

        assert result.success is True
        assert fake_backend.sessions["abc"]["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_failed_envelope_returned(self, backend_client):
        """success=false is returned with the server message."""
        result = await backend_client.link("phone-token", "missing")

        assert result.success is False
        assert result.message == "Session not found or expired"

    @pytest.mark.asyncio
    async def test_bad_token(self, backend_client):
        """HTTP 401 raises ServerError carrying the server message."""
        await backend_client.create_session("abc")

        with pytest.raises(ServerError) as exc_info:
            await backend_client.link("wrong", "abc")

        assert exc_info.value.status == 401
        assert exc_info.value.server_message == "Invalid token"

    @pytest.mark.asyncio
    async def test_not_retried(self, backend_client, fake_backend):
        """Failed link is sent exactly once."""
        fake_backend.forced_status["link"] = 503

        with pytest.raises(ServerError):
            await backend_client.link("phone-token", "abc")

        assert fake_backend.requests.count(("POST", "link")) == 1
