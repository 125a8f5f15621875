"""Pytest configuration and shared fixtures."""

import time

import pytest
import pytest_asyncio
from aiohttp import web

from tvlink.pairing.client import PairingSessionClient


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from tvlink.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


class FakeSessionStore:
    """In-memory stand-in for the backend pairing session store.

    Mirrors the REST contract the client talks to, under an ``/api``
    prefix.
    """

    def __init__(self):
        self.sessions: dict[str, dict] = {}
        self.valid_tokens: dict[str, str] = {"phone-token": "user-1"}
        self.forced_status: dict[str, int] = {}
        self.raw_bodies: dict[str, str] = {}
        self.raw_errors: dict[str, tuple[int, bytes]] = {}
        self.requests: list[tuple[str, str]] = []
        self.base_url = ""

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/auth/tv/create-session", self.create_session)
        app.router.add_get("/api/auth/tv/check-status", self.check_status)
        app.router.add_post("/api/auth/tv/link", self.link)
        return app

    def _intercept(self, request: web.Request, name: str) -> web.Response | None:
        self.requests.append((request.method, name))
        if name in self.forced_status:
            return web.json_response(
                {"success": False, "message": f"{name} unavailable"},
                status=self.forced_status[name],
            )
        if name in self.raw_bodies:
            return web.Response(text=self.raw_bodies[name])
        if name in self.raw_errors:
            status, body = self.raw_errors[name]
            return web.Response(body=body, status=status, content_type="text/html")
        return None

    async def create_session(self, request: web.Request) -> web.Response:
        forced = self._intercept(request, "create-session")
        if forced is not None:
            return forced

        session_id = request.query.get("sessionId")
        if not session_id:
            return web.json_response(
                {"success": False, "message": "sessionId required"}, status=400
            )

        expires_at = int(time.time() * 1000) + 5 * 60 * 1000
        self.sessions[session_id] = {"user_id": None, "expires_at": expires_at}
        return web.json_response(
            {
                "success": True,
                "data": {
                    "sessionId": session_id,
                    "authUrl": f"watchtime://tv-auth?sessionId={session_id}",
                    "expiresAt": expires_at,
                },
            }
        )

    async def check_status(self, request: web.Request) -> web.Response:
        forced = self._intercept(request, "check-status")
        if forced is not None:
            return forced

        session = self.sessions.get(request.query.get("sessionId", ""))
        if session is None:
            return web.json_response(
                {"success": False, "message": "Session not found"}, status=404
            )

        if session["user_id"] is None:
            return web.json_response({"success": True, "data": {"authenticated": False}})

        return web.json_response(
            {
                "success": True,
                "data": {
                    "authenticated": True,
                    "token": f"tv-token-for-{session['user_id']}",
                    "userId": session["user_id"],
                },
            }
        )

    async def link(self, request: web.Request) -> web.Response:
        forced = self._intercept(request, "link")
        if forced is not None:
            return forced

        auth = request.headers.get("Authorization", "")
        user_id = self.valid_tokens.get(auth.removeprefix("Bearer "))
        if not auth.startswith("Bearer ") or user_id is None:
            return web.json_response(
                {"success": False, "message": "Invalid token"}, status=401
            )

        body = await request.json()
        session = self.sessions.get(body.get("sessionId", ""))
        if session is None:
            return web.json_response(
                {"success": False, "message": "Session not found or expired"}
            )

        if session["user_id"] is not None:
            return web.json_response({"success": True, "message": "Already linked"})

        session["user_id"] = user_id
        return web.json_response({"success": True, "message": "TV linked"})


@pytest_asyncio.fixture
async def fake_backend(aiohttp_server):
    """Running fake session store."""
    store = FakeSessionStore()
    server = await aiohttp_server(store.make_app())
    store.base_url = str(server.make_url("/api"))
    return store


@pytest_asyncio.fixture
async def backend_client(fake_backend):
    """PairingSessionClient talking to the fake session store."""
    async with PairingSessionClient(fake_backend.base_url) as client:
        yield client
