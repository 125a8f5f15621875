"""TV side of QR pairing.

The TV registers a pairing session, shows its auth URL as a QR code and
polls the backend until a signed-in phone links the session, the attempt
cap runs out, or the backend returns an unusable answer.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Awaitable, Callable, Optional

from tvlink.errors import (
    PairingFailure,
    PairingTimeoutError,
    ProtocolError,
    StorageError,
    TvLinkError,
    classify_error,
)
from tvlink.pairing.client import PairingSessionClient
from tvlink.pairing.codec import SessionCodec
from tvlink.pairing.qr_generator import QrGenerator
from tvlink.pairing.session import PairingSession
from tvlink.pairing.state import StateHolder
from tvlink.token_store import TokenStore

logger = logging.getLogger(__name__)


class TvPairingState(Enum):
    """TV pairing states."""

    IDLE = auto()
    AWAITING_SESSION = auto()
    SHOWING_CODE = auto()
    AUTHENTICATED = auto()
    FAILED = auto()


VALID_TRANSITIONS = {
    TvPairingState.IDLE: {TvPairingState.AWAITING_SESSION},
    TvPairingState.AWAITING_SESSION: {
        TvPairingState.SHOWING_CODE,
        TvPairingState.FAILED,
        TvPairingState.IDLE,
    },
    TvPairingState.SHOWING_CODE: {
        TvPairingState.AUTHENTICATED,
        TvPairingState.FAILED,
        TvPairingState.IDLE,
        TvPairingState.AWAITING_SESSION,
    },
    TvPairingState.AUTHENTICATED: {TvPairingState.IDLE},
    TvPairingState.FAILED: {TvPairingState.AWAITING_SESSION, TvPairingState.IDLE},
}


@dataclass(frozen=True)
class TvPairingSnapshot:
    """Everything a screen needs to render the current state.

    Attributes:
        state: Current state.
        session: Backend session, set from SHOWING_CODE on.
        qr: QR rendering of the session's auth URL.
        user_id: Linked identity, set in AUTHENTICATED.
        failure: Classified reason, set in FAILED.
        attempts: Poll attempts made for the current session.
    """

    state: TvPairingState
    session: Optional[PairingSession] = None
    qr: Optional[QrGenerator] = None
    user_id: Optional[str] = None
    failure: Optional[PairingFailure] = None
    attempts: int = 0


Sleep = Callable[[float], Awaitable[None]]


class TvPairingStateMachine:
    """Drives one TV's pairing attempts.

    At most one poll task is alive at a time. Each start bumps a
    generation counter; results belonging to an older generation are
    dropped before they can touch state.

    Usage:
        machine = TvPairingStateMachine(client, token_store)
        machine.subscribe(render)
        await machine.start()
        await machine.wait()
    """

    POLL_INTERVAL = 5.0  # seconds
    MAX_ATTEMPTS = 60  # 5 minutes at the default interval

    def __init__(
        self,
        client: PairingSessionClient,
        token_store: TokenStore,
        codec: Optional[SessionCodec] = None,
        poll_interval: float = POLL_INTERVAL,
        max_attempts: int = MAX_ATTEMPTS,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the state machine.

        Args:
            client: Pairing backend client.
            token_store: Where the issued credential is persisted.
            codec: Session id generator and QR renderer.
            poll_interval: Delay between status polls in seconds.
            max_attempts: Polls before giving up.
            sleep: Delay function, replaceable with a fake clock.
        """
        self._client = client
        self._token_store = token_store
        self._codec = codec or SessionCodec()
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._sleep = sleep

        self._state = StateHolder(TvPairingSnapshot(TvPairingState.IDLE))
        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def state(self) -> TvPairingState:
        """Current state."""
        return self._state.value.state

    @property
    def snapshot(self) -> TvPairingSnapshot:
        """Current state with its associated data."""
        return self._state.value

    def subscribe(
        self, listener: Callable[[TvPairingSnapshot], None]
    ) -> Callable[[], None]:
        """Register a listener for state changes.

        Returns:
            Function that removes the listener.
        """
        return self._state.subscribe(listener)

    async def start(self) -> None:
        """Begin a new pairing attempt with a fresh session id.

        Cancels any poll loop still running. Returns once the machine
        is SHOWING_CODE (poll loop running) or FAILED.
        """
        self._cancel_task()
        self._generation += 1
        generation = self._generation

        self._transition(TvPairingSnapshot(TvPairingState.AWAITING_SESSION))

        session_id = self._codec.create()
        logger.debug(f"Creating pairing session {session_id[:8]}...")

        try:
            session = await self._client.create_session(session_id)
        except TvLinkError as e:
            if generation != self._generation:
                return
            logger.error(f"Failed to create pairing session: {e}")
            self._fail(classify_error(e))
            return

        if generation != self._generation:
            logger.debug(f"Dropping superseded session {session_id[:8]}...")
            return

        self._transition(
            TvPairingSnapshot(
                TvPairingState.SHOWING_CODE,
                session=session,
                qr=self._codec.encode(session.auth_url),
            )
        )
        logger.info(f"Pairing session started: {session_id[:8]}...")

        self._task = asyncio.create_task(self._poll(session.session_id, generation))

    async def retry(self) -> None:
        """Start over after a failure. Sessions are never reused.

        Raises:
            ValueError: If the machine is not FAILED.
        """
        if self.state != TvPairingState.FAILED:
            raise ValueError(f"Cannot retry from {self.state}")
        await self.start()

    def stop(self) -> None:
        """Cancel pairing and return to IDLE without persisting anything."""
        self._cancel_task()
        self._generation += 1
        if self.state != TvPairingState.IDLE:
            self._transition(TvPairingSnapshot(TvPairingState.IDLE))
            logger.info("Pairing cancelled")

    async def wait(self) -> None:
        """Wait for the current poll loop, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _poll(self, session_id: str, generation: int) -> None:
        """Poll check-status until linked, failed, or out of attempts."""
        logger.debug(f"Polling session {session_id[:8]}...")

        for attempt in range(1, self._max_attempts + 1):
            try:
                status = await self._client.check_status(session_id)
            except TvLinkError as e:
                logger.warning(f"Poll attempt {attempt} failed: {e}")
                status = None

            if generation != self._generation:
                return

            self._state.set(replace(self.snapshot, attempts=attempt))

            if status is not None and status.authenticated:
                self._complete(status.token, status.user_id, attempt)
                return

            await self._sleep(self._poll_interval)

            if generation != self._generation:
                return

        logger.error(f"Authentication timeout after {self._max_attempts} attempts")
        self._fail(classify_error(PairingTimeoutError()))

    def _complete(self, token: Optional[str], user_id: Optional[str], attempt: int) -> None:
        """Persist the issued credential and enter AUTHENTICATED."""
        if not token or not user_id:
            logger.error("Session authenticated but token or userId is missing")
            self._fail(classify_error(ProtocolError("missing token or userId")))
            return

        try:
            self._token_store.save(token, user_id)
        except StorageError as e:
            logger.error(f"Failed to persist credential: {e}")
            self._fail(classify_error(e))
            return

        self._transition(
            replace(
                self.snapshot,
                state=TvPairingState.AUTHENTICATED,
                user_id=user_id,
                attempts=attempt,
            )
        )
        logger.info(f"TV authenticated after {attempt} attempts")

    def _fail(self, failure: PairingFailure) -> None:
        self._transition(
            replace(self.snapshot, state=TvPairingState.FAILED, failure=failure)
        )

    def _transition(self, snapshot: TvPairingSnapshot) -> None:
        """Move to a new snapshot, validating the state change.

        Raises:
            ValueError: If the transition is not allowed.
        """
        current = self.state
        if snapshot.state != current and snapshot.state not in VALID_TRANSITIONS[current]:
            raise ValueError(f"Invalid transition: {current} -> {snapshot.state}")
        self._state.set(snapshot)

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
