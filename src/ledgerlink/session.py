"""Session credential storage.

The store holds the login flag and the plaintext password used as the
request-signing secret for the active session. It is the only process-wide
mutable state; every signer takes a store explicitly.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Snapshot of the session credential."""

    logged_in: bool = False
    password: str | None = None


class CredentialStore(Protocol):
    """Capability interface over the session credential."""

    def credential(self) -> Credential: ...

    def set_session(self, password: str) -> None: ...

    def clear_session(self) -> None: ...

    def get_password(self) -> str | None: ...

    def is_logged_in(self) -> bool: ...


class MemorySessionStore:
    """Credential store kept in process memory."""

    def __init__(self) -> None:
        self._credential = Credential()

    def credential(self) -> Credential:
        return self._credential

    def set_session(self, password: str) -> None:
        if not password:
            logger.error("Cannot store empty password")
            return
        self._credential = Credential(logged_in=True, password=password)

    def clear_session(self) -> None:
        self._credential = Credential()

    def get_password(self) -> str | None:
        return self._credential.password

    def is_logged_in(self) -> bool:
        return self._credential.logged_in


class FileSessionStore:
    """Credential store persisted to a JSON file.

    The file survives process restarts so consecutive commands share one
    login. It is written with owner-only permissions and removed on logout.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def credential(self) -> Credential:
        """Read the stored credential; unreadable files count as logged out."""
        if not self.path.exists():
            return Credential()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return Credential()

        if not isinstance(data, dict) or data.get("logged_in") is not True:
            return Credential()

        password = data.get("password")
        if not isinstance(password, str) or not password:
            return Credential()
        return Credential(logged_in=True, password=password)

    def set_session(self, password: str) -> None:
        if not password:
            logger.error("Cannot store empty password")
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"logged_in": True, "password": password}, f)
        logger.debug("Session stored in %s", self.path)

    def clear_session(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.debug("Session cleared from %s", self.path)

    def get_password(self) -> str | None:
        return self.credential().password

    def is_logged_in(self) -> bool:
        return self.credential().logged_in
