"""Runtime configuration.

Configuration comes from the process environment, optionally seeded from a
``.env`` file in the current directory:

    CLIENT_ID        - Google OAuth client ID (required)
    CLIENT_SECRET    - Google OAuth client secret (required)
    LOOKER_CLI_HOME  - Directory holding token.json (default ~/.looker-cli)
    LOG_LEVEL        - Logging level (default WARNING)

Everything the rest of the package needs is carried by a ``Settings`` value
that is passed in explicitly, so nothing reads the environment behind the
caller's back.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from looker_cli.exceptions import ConfigurationError

DEFAULT_HOME = Path.home() / ".looker-cli"
TOKEN_FILENAME = "token.json"
ENV_FILENAME = ".env"

DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"

# Loopback redirect for installed apps; the user pastes the code (or the
# whole redirect URL) back into the terminal.
DEFAULT_REDIRECT_URI = "http://localhost"


def load_env_file(env_path: Path | None = None) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file. Defaults to ``.env`` in the working directory.

    Returns:
        Dictionary of loaded variables.
    """
    env_path = env_path or Path.cwd() / ENV_FILENAME
    loaded: dict[str, str] = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :]
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            # Remove surrounding quotes
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Only set if not already in environment (env vars take precedence)
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once.

    ``LOG_LEVEL`` wins over ``level``; if the root logger already has
    handlers only its level is changed.
    """
    chosen = (os.environ.get("LOG_LEVEL") or level or "WARNING").upper()
    lvl = getattr(logging, chosen, logging.WARNING)
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            level=lvl,
        )
    else:
        root.setLevel(lvl)


def config_home() -> Path:
    """Directory holding per-user state."""
    override = os.environ.get("LOOKER_CLI_HOME")
    return Path(override).expanduser() if override else DEFAULT_HOME


@dataclass(frozen=True)
class Settings:
    """Everything needed to authenticate against Google Drive."""

    client_id: str
    client_secret: str
    token_path: Path = field(default_factory=lambda: config_home() / TOKEN_FILENAME)
    scopes: tuple[str, ...] = (DRIVE_SCOPE,)
    redirect_uri: str = DEFAULT_REDIRECT_URI

    def __post_init__(self) -> None:
        missing = [
            name
            for name, value in (("CLIENT_ID", self.client_id), ("CLIENT_SECRET", self.client_secret))
            if not value
        ]
        if missing:
            raise ConfigurationError(missing)

    @classmethod
    def from_env(cls, token_path: str | Path | None = None) -> Settings:
        """Build settings from environment variables.

        Raises:
            ConfigurationError: If CLIENT_ID or CLIENT_SECRET is unset.
        """
        kwargs = {}
        if token_path:
            kwargs["token_path"] = Path(token_path)
        return cls(
            client_id=os.environ.get("CLIENT_ID", "").strip(),
            client_secret=os.environ.get("CLIENT_SECRET", "").strip(),
            **kwargs,
        )


def get_config_status() -> dict:
    """Get status of local configuration without touching the network.

    Returns:
        Dictionary with configuration status.
    """
    home = config_home()
    return {
        "home": str(home),
        "env_file": (Path.cwd() / ENV_FILENAME).exists(),
        "client_id": bool(os.environ.get("CLIENT_ID")),
        "client_secret": bool(os.environ.get("CLIENT_SECRET")),
        "token": (home / TOKEN_FILENAME).exists(),
    }
