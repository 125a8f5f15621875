"""Exceptions and failure classification for tvlink."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class TvLinkError(Exception):
    """Base exception for all tvlink errors."""

    pass


class NetworkError(TvLinkError):
    """Transport or connectivity failure."""

    pass


class ServerError(TvLinkError):
    """Backend reported failure or returned an unexpected response.

    Attributes:
        status: HTTP status code, if the failure came from an HTTP status.
        server_message: Message supplied by the backend, if any.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        server_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.status = status
        self.server_message = server_message


class ProtocolError(TvLinkError):
    """Success envelope with semantically invalid content."""

    pass


class PairingTimeoutError(TvLinkError):
    """Poll attempts exhausted without the session being linked."""

    pass


class NotAuthenticatedError(TvLinkError):
    """No signed-in identity on the linking device."""

    pass


class TokenUnavailableError(TvLinkError):
    """Signed in, but no usable bearer token."""

    pass


class InvalidPayloadError(TvLinkError):
    """Scanned content is not a pairing payload."""

    pass


class StorageError(TvLinkError):
    """Storage operation error."""

    pass


class ConfigError(TvLinkError):
    """Invalid configuration value."""

    pass


class FailureKind(Enum):
    """Classification attached to terminal failure states."""

    NETWORK = auto()
    SERVER = auto()
    NOT_FOUND = auto()
    PROTOCOL = auto()
    TIMEOUT = auto()
    STORAGE = auto()
    NOT_SIGNED_IN = auto()
    TOKEN_UNAVAILABLE = auto()
    UNKNOWN = auto()


@dataclass(frozen=True)
class PairingFailure:
    """Why a pairing or linking attempt ended."""

    kind: FailureKind
    message: str


NETWORK_MESSAGE = "Network connection error. Please check your internet connection."
TIMEOUT_MESSAGE = "Authentication timeout. Please try again."
INVALID_RESPONSE_MESSAGE = "Authentication error: Invalid response"
NOT_SIGNED_IN_MESSAGE = "You must be signed in to link TV"
TOKEN_UNAVAILABLE_MESSAGE = "Authentication token not available"


def classify_error(exc: BaseException) -> PairingFailure:
    """Map an exception to a user-facing failure.

    Args:
        exc: Exception raised by a pairing operation.

    Returns:
        PairingFailure with a kind and human-readable message.
    """
    if isinstance(exc, NetworkError):
        return PairingFailure(FailureKind.NETWORK, NETWORK_MESSAGE)

    if isinstance(exc, ServerError):
        if exc.status == 404:
            return PairingFailure(
                FailureKind.NOT_FOUND,
                "Authentication endpoint not found (HTTP 404)",
            )
        if exc.server_message:
            return PairingFailure(FailureKind.SERVER, exc.server_message)
        if exc.status is not None and exc.status >= 500:
            return PairingFailure(
                FailureKind.SERVER,
                f"Server error (HTTP {exc.status}). "
                "The authentication service may be unavailable.",
            )
        return PairingFailure(FailureKind.SERVER, str(exc) or "Server error")

    if isinstance(exc, ProtocolError):
        return PairingFailure(FailureKind.PROTOCOL, INVALID_RESPONSE_MESSAGE)
    if isinstance(exc, PairingTimeoutError):
        return PairingFailure(FailureKind.TIMEOUT, TIMEOUT_MESSAGE)
    if isinstance(exc, StorageError):
        return PairingFailure(
            FailureKind.STORAGE, f"Could not save credential: {exc}"
        )
    if isinstance(exc, NotAuthenticatedError):
        return PairingFailure(FailureKind.NOT_SIGNED_IN, NOT_SIGNED_IN_MESSAGE)
    if isinstance(exc, TokenUnavailableError):
        return PairingFailure(
            FailureKind.TOKEN_UNAVAILABLE, TOKEN_UNAVAILABLE_MESSAGE
        )

    return PairingFailure(FailureKind.UNKNOWN, str(exc) or "Unknown error occurred")
