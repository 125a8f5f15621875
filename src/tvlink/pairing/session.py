"""Pairing session data model.

Values exchanged with the backend session store while a TV waits
to be linked.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from tvlink.errors import ServerError


@dataclass
class PairingSession:
    """One pairing attempt, as created on the backend.

    Attributes:
        session_id: Client-generated UUID, primary key on the backend.
        auth_url: Payload to encode in the QR code.
        expires_at: Backend expiry timestamp in epoch milliseconds.
        created_at: Unix timestamp when the session was created locally.
    """

    session_id: str
    auth_url: str
    expires_at: int
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "PairingSession":
        """Create from the ``data`` object of a create-session response.

        Raises:
            ServerError: If required fields are missing or mistyped.
        """
        try:
            session_id = d["sessionId"]
            auth_url = d["authUrl"]
            expires_at = int(d["expiresAt"])
        except (KeyError, TypeError, ValueError) as e:
            raise ServerError(f"Unexpected create-session response: {e}") from e

        if not isinstance(session_id, str) or not isinstance(auth_url, str) or not auth_url:
            raise ServerError("Unexpected create-session response: bad field types")

        return cls(session_id=session_id, auth_url=auth_url, expires_at=expires_at)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check whether the backend expiry has passed.

        Args:
            now: Unix timestamp in seconds. Defaults to current time.
        """
        if now is None:
            now = time.time()
        return now * 1000 >= self.expires_at


@dataclass(frozen=True)
class AuthStatus:
    """Result of one check-status poll."""

    authenticated: bool
    token: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "AuthStatus":
        """Create from the ``data`` object of a check-status response.

        Raises:
            ServerError: If ``authenticated`` is missing or not a bool.
        """
        authenticated = d.get("authenticated")
        if not isinstance(authenticated, bool):
            raise ServerError("Unexpected check-status response: no authenticated flag")
        return cls(
            authenticated=authenticated,
            token=d.get("token"),
            user_id=d.get("userId"),
        )


@dataclass(frozen=True)
class LinkResult:
    """Result of a link request."""

    success: bool
    message: Optional[str] = None
