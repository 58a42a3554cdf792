"""On-disk OAuth token storage."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TOKEN_FIELDS = ("access_token", "refresh_token", "scope", "token_type", "expiry_date")


class TokenStore:
    """Persist a single OAuth token as JSON, readable only by its owner.

    The stored shape is::

        {"access_token", "refresh_token", "scope", "token_type", "expiry_date"}

    where ``expiry_date`` is in epoch milliseconds.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> dict[str, Any] | None:
        """Load token from disk.

        Returns:
            Token dict, or None if the file is missing or unreadable.
        """
        if not self.path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.path) as f:
                token = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load token from {self.path}: {e}")
            return None

        if not isinstance(token, dict):
            logger.error(f"Ignoring malformed token file {self.path}")
            return None

        return token

    def save(self, token: dict[str, Any]) -> None:
        """Write token to disk with 0600 permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = {key: token.get(key) for key in TOKEN_FIELDS}
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        os.chmod(self.path, 0o600)

        logger.info(f"Token saved to {self.path}")

    def delete(self) -> None:
        """Remove the token file."""
        self.path.unlink()
        logger.info(f"Token removed from {self.path}")
