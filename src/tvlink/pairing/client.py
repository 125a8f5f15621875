"""HTTP client for the backend pairing session store."""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from tvlink.errors import NetworkError, ServerError
from tvlink.pairing.session import AuthStatus, LinkResult, PairingSession

logger = logging.getLogger(__name__)


class PairingSessionClient:
    """Talks to the pairing session store.

    Endpoints:
    - POST /auth/tv/create-session?sessionId=<id>
    - GET  /auth/tv/check-status?sessionId=<id>
    - POST /auth/tv/link (Bearer auth, JSON body {"sessionId": id})

    Every response is an envelope ``{success, data, message}``. Transport
    failures raise NetworkError; HTTP error statuses, unparseable bodies
    and failed envelopes raise ServerError. Nothing is retried here.
    """

    CREATE_SESSION_PATH = "/auth/tv/create-session"
    CHECK_STATUS_PATH = "/auth/tv/check-status"
    LINK_PATH = "/auth/tv/link"

    def __init__(
        self,
        base_url: str,
        http_session: Optional[aiohttp.ClientSession] = None,
        request_timeout: float = 30.0,
    ):
        """Initialize client.

        Args:
            base_url: Backend API root, e.g. ``https://api.example.com/api``.
            http_session: Optional aiohttp session (for testing).
            request_timeout: Total timeout per request in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._session = http_session
        self._owns_session = http_session is None
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)

    async def __aenter__(self):
        """Enter async context, creating session if needed."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args):
        """Exit async context, closing owned session."""
        await self.close()

    @property
    def base_url(self) -> str:
        """The backend API root."""
        return self._base_url

    async def create_session(self, session_id: str) -> PairingSession:
        """Register a new pairing session on the backend.

        Args:
            session_id: Client-generated session id.

        Returns:
            PairingSession with the auth URL to display.

        Raises:
            NetworkError: On transport failure.
            ServerError: On HTTP error or failed envelope.
        """
        body = await self._request(
            "POST", self.CREATE_SESSION_PATH, params={"sessionId": session_id}
        )
        if not body.get("success"):
            raise ServerError(
                "Failed to create auth session",
                server_message=_message_of(body),
            )

        session = PairingSession.from_dict(_data_of(body))
        if session.session_id != session_id:
            logger.warning(
                f"Backend echoed session {session.session_id[:8]}..., "
                f"expected {session_id[:8]}..."
            )
        logger.debug(f"Created pairing session {session_id[:8]}...")
        return session

    async def check_status(self, session_id: str) -> AuthStatus:
        """Poll whether a session has been linked.

        Read-only; a pending session returns ``authenticated=False``.

        Raises:
            NetworkError: On transport failure.
            ServerError: On HTTP error or failed envelope.
        """
        body = await self._request(
            "GET", self.CHECK_STATUS_PATH, params={"sessionId": session_id}
        )
        if not body.get("success"):
            raise ServerError(
                "Failed to check auth status",
                server_message=_message_of(body),
            )
        return AuthStatus.from_dict(_data_of(body))

    async def link(self, bearer_token: str, session_id: str) -> LinkResult:
        """Link the caller's identity to a pending session.

        A failed envelope is returned, not raised, so its message can be
        shown to the user.

        Args:
            bearer_token: Token of the signed-in user.
            session_id: Session id decoded from the scanned QR code.

        Raises:
            NetworkError: On transport failure.
            ServerError: On HTTP error status or unparseable body.
        """
        body = await self._request(
            "POST",
            self.LINK_PATH,
            json_body={"sessionId": session_id},
            headers={"Authorization": f"Bearer {bearer_token}"},
        )
        return LinkResult(success=bool(body.get("success")), message=_message_of(body))

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, str]] = None,
        json_body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded envelope."""
        if self._session is None:
            raise RuntimeError("Client not initialized - use async context manager")

        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                raw = await resp.read()
                status = resp.status
        except aiohttp.ClientError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"{method} {path} timed out") from e

        # Proxy error pages may not be UTF-8
        text = raw.decode("utf-8", errors="replace")

        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = None

        if status >= 400:
            logger.warning(f"{method} {path} returned {status}: {text[:100]}")
            raise ServerError(
                f"HTTP {status}",
                status=status,
                server_message=_message_of(body) if isinstance(body, dict) else None,
            )

        if not isinstance(body, dict):
            raise ServerError(f"Malformed response from {path}", status=status)

        return body

    async def close(self) -> None:
        """Close the HTTP session if owned."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None


def _data_of(body: dict[str, Any]) -> dict[str, Any]:
    data = body.get("data")
    if not isinstance(data, dict):
        raise ServerError("Response envelope has no data object")
    return data


def _message_of(body: dict[str, Any]) -> Optional[str]:
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None
