"""Phone side of QR pairing.

A signed-in phone scans the TV's QR code and asks the backend to link
its identity to the TV's pending session.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Protocol

from tvlink.errors import (
    FailureKind,
    NetworkError,
    NotAuthenticatedError,
    PairingFailure,
    ServerError,
    TokenUnavailableError,
    classify_error,
)
from tvlink.pairing.client import PairingSessionClient
from tvlink.pairing.codec import SessionCodec
from tvlink.pairing.state import StateHolder

logger = logging.getLogger(__name__)

LINK_FAILED_MESSAGE = "Failed to link TV device"


class MobileLinkState(Enum):
    """Phone linking states."""

    IDLE = auto()
    SCANNING = auto()
    PROCESSING = auto()
    SUCCESS = auto()
    ERROR = auto()


@dataclass(frozen=True)
class Identity:
    """The signed-in user on the phone."""

    user_id: str
    email: str = ""


class IdentityProvider(Protocol):
    """Protocol for the phone's sign-in state."""

    def current_user(self) -> Optional[Identity]:
        """Return the signed-in user, or None."""
        ...

    def auth_token(self) -> Optional[str]:
        """Return a non-expired bearer token, or None."""
        ...


class StaticIdentityProvider:
    """IdentityProvider backed by fixed values."""

    def __init__(self, user: Optional[Identity], token: Optional[str]):
        self._user = user
        self._token = token

    def current_user(self) -> Optional[Identity]:
        return self._user

    def auth_token(self) -> Optional[str]:
        return self._token


@dataclass(frozen=True)
class MobileLinkSnapshot:
    """Current state with its associated data."""

    state: MobileLinkState
    session_id: Optional[str] = None
    failure: Optional[PairingFailure] = None


class MobileLinkStateMachine:
    """Turns scanned QR content into a single link request.

    Scans are only acted on while SCANNING. The switch to PROCESSING
    happens before the first await, so duplicate camera frames of the
    same code can never trigger a second link request.
    """

    def __init__(
        self,
        client: PairingSessionClient,
        identity: IdentityProvider,
        codec: Optional[SessionCodec] = None,
    ):
        """Initialize the state machine.

        Args:
            client: Pairing backend client.
            identity: Source of the signed-in user and bearer token.
            codec: Payload decoder.
        """
        self._client = client
        self._identity = identity
        self._codec = codec or SessionCodec()
        self._state = StateHolder(MobileLinkSnapshot(MobileLinkState.IDLE))
        self._generation = 0

    @property
    def state(self) -> MobileLinkState:
        """Current state."""
        return self._state.value.state

    @property
    def snapshot(self) -> MobileLinkSnapshot:
        """Current state with its associated data."""
        return self._state.value

    def subscribe(
        self, listener: Callable[[MobileLinkSnapshot], None]
    ) -> Callable[[], None]:
        """Register a listener for state changes."""
        return self._state.subscribe(listener)

    def start_scanning(self) -> None:
        """Begin accepting scans.

        Raises:
            ValueError: If a link request is in flight or already succeeded.
        """
        if self.state in (MobileLinkState.PROCESSING, MobileLinkState.SUCCESS):
            raise ValueError(f"Cannot start scanning from {self.state}")
        self._state.set(MobileLinkSnapshot(MobileLinkState.SCANNING))

    def reset(self) -> None:
        """Return to IDLE. A link request still in flight is disregarded."""
        self._generation += 1
        self._state.set(MobileLinkSnapshot(MobileLinkState.IDLE))

    async def on_scan(self, raw: str) -> None:
        """Handle one decoded camera frame.

        Args:
            raw: Text read from a QR code.
        """
        if self.state != MobileLinkState.SCANNING:
            logger.debug(f"Ignoring scan while {self.state.name}")
            return

        session_id = self._codec.decode(raw)
        if session_id is None:
            logger.debug("Ignoring non-pairing QR code")
            return

        self._state.set(
            MobileLinkSnapshot(MobileLinkState.PROCESSING, session_id=session_id)
        )
        logger.debug(f"Scanned session {session_id[:8]}...")

        user = self._identity.current_user()
        if user is None:
            logger.error("User not authenticated")
            self._fail(session_id, classify_error(NotAuthenticatedError()))
            return

        token = self._identity.auth_token()
        if not token:
            logger.error("Failed to retrieve auth token")
            self._fail(session_id, classify_error(TokenUnavailableError()))
            return

        logger.info(f"Linking session {session_id[:8]}... for user {user.email or user.user_id}")
        generation = self._generation

        try:
            result = await self._client.link(token, session_id)
        except (NetworkError, ServerError) as e:
            logger.error(f"Error during TV link: {e}")
            if generation == self._generation:
                self._fail(session_id, classify_error(e))
            return

        if generation != self._generation:
            logger.debug("Link finished after reset, ignoring result")
            return

        if result.success:
            logger.info("Successfully linked TV device")
            self._state.set(
                MobileLinkSnapshot(MobileLinkState.SUCCESS, session_id=session_id)
            )
        else:
            logger.error(f"Failed to link TV device: {result.message}")
            self._fail(
                session_id,
                PairingFailure(FailureKind.SERVER, result.message or LINK_FAILED_MESSAGE),
            )

    def _fail(self, session_id: str, failure: PairingFailure) -> None:
        self._state.set(
            MobileLinkSnapshot(
                MobileLinkState.ERROR, session_id=session_id, failure=failure
            )
        )
