"""Pairing payload codec.

A pairing payload is a URI of the form ``<scheme>://<host>?sessionId=<id>``.
The TV renders the backend's auth URL as a QR code; the phone scans it and
recovers the session id.
"""

import logging
import uuid
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from tvlink.config import DEFAULT_HOST, DEFAULT_SCHEME
from tvlink.errors import InvalidPayloadError
from tvlink.pairing.qr_generator import QrGenerator

logger = logging.getLogger(__name__)

SESSION_ID_PARAM = "sessionId"


class SessionCodec:
    """Create, encode and decode pairing session identifiers."""

    def __init__(
        self,
        scheme: str = DEFAULT_SCHEME,
        host: str = DEFAULT_HOST,
        qr_size: int = 512,
    ):
        """Initialize codec.

        Args:
            scheme: URI scheme a payload must carry.
            host: URI host a payload must carry.
            qr_size: Edge length in pixels of rendered QR images.
        """
        self.scheme = scheme.lower()
        self.host = host.lower()
        self.qr_size = qr_size

    @staticmethod
    def create() -> str:
        """Generate a new session id (random UUID4, canonical form)."""
        return str(uuid.uuid4())

    def build_payload(self, session_id: str) -> str:
        """Build the canonical payload URI for a session id."""
        query = urlencode({SESSION_ID_PARAM: session_id})
        return f"{self.scheme}://{self.host}?{query}"

    def encode(self, auth_url: str) -> QrGenerator:
        """Prepare a QR rendering of an auth URL.

        Args:
            auth_url: URL returned by the backend for the session.

        Returns:
            QrGenerator producing terminal, PNG, HTML or image output.
        """
        return QrGenerator(auth_url, size=self.qr_size)

    def parse(self, raw: str) -> str:
        """Extract the session id from scanned text.

        Args:
            raw: Raw text read from a QR code.

        Returns:
            Session id.

        Raises:
            InvalidPayloadError: If the text is not a pairing payload.
        """
        if not raw or not isinstance(raw, str):
            raise InvalidPayloadError("Empty scan content")

        try:
            parts = urlsplit(raw.strip())
            # hostname comes back lower-cased
            scheme = parts.scheme.lower()
            host = parts.hostname
            params = parse_qs(parts.query)
        except ValueError as e:
            raise InvalidPayloadError(f"Unparseable scan content: {e}") from e

        if scheme != self.scheme or host != self.host:
            raise InvalidPayloadError(f"Not a {self.scheme}://{self.host} payload")

        values = params.get(SESSION_ID_PARAM)
        if not values or not values[0]:
            raise InvalidPayloadError(f"Payload has no {SESSION_ID_PARAM}")
        return values[0]

    def decode(self, raw: str) -> Optional[str]:
        """Extract the session id, or None for anything else.

        Never raises, so a scanner can keep scanning.
        """
        try:
            return self.parse(raw)
        except InvalidPayloadError as e:
            logger.debug(f"Ignoring scan: {e}")
            return None
