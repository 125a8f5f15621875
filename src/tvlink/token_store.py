"""Persistent storage for the credential issued by TV pairing.

The credential is kept in a small JSON file readable only by its owner:

    {"tv_auth_token": "...", "tv_user_id": "..."}

Both fields are written and cleared together.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from tvlink.errors import StorageError

logger = logging.getLogger(__name__)

TOKEN_KEY = "tv_auth_token"
USER_ID_KEY = "tv_user_id"


@dataclass(frozen=True)
class IssuedCredential:
    """Bearer token issued to this TV and the user it is scoped to."""

    token: str
    user_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {TOKEN_KEY: self.token, USER_ID_KEY: self.user_id}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "IssuedCredential":
        """Create from dict."""
        return cls(token=d[TOKEN_KEY], user_id=d[USER_ID_KEY])


class TokenStore:
    """File-backed store for the TV's issued credential.

    Attributes:
        path: JSON file holding the credential.
    """

    def __init__(self, path: Path) -> None:
        """Initialize store.

        Args:
            path: Path to credential file. Parent is created on first save.
        """
        self.path = Path(path).expanduser()

    def save(self, token: str, user_id: str) -> None:
        """Persist a credential, replacing any previous one.

        Raises:
            StorageError: If a field is empty or the file can't be written.
        """
        if not token or not user_id:
            raise StorageError("Both token and user id are required")

        data = json.dumps(IssuedCredential(token, user_id).to_dict(), indent=2)
        tmp_path = self.path.with_name(self.path.name + ".tmp")

        try:
            if not self.path.parent.exists():
                self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
                os.chmod(self.path.parent, 0o700)

            # Write with restricted permissions, then swap in atomically
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            try:
                os.write(fd, data.encode())
                os.fsync(fd)
            finally:
                os.close(fd)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

        logger.debug(f"Saved credential for user {user_id}")

    def load(self) -> Optional[IssuedCredential]:
        """Load the stored credential.

        Returns:
            IssuedCredential, or None if absent or unreadable.
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text())
            credential = IssuedCredential.from_dict(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read credential file: {e}")
            return None
        except (KeyError, TypeError) as e:
            logger.warning(f"Ignoring malformed credential file: {e}")
            return None

        if not credential.token or not credential.user_id:
            return None
        return credential

    def clear(self) -> None:
        """Remove the stored credential (sign-out).

        Raises:
            StorageError: If the file exists but can't be removed.
        """
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {self.path}: {e}") from e
        logger.debug("Cleared stored credential")

    def is_paired(self) -> bool:
        """Check whether a credential is stored."""
        return self.load() is not None
