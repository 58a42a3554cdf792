"""Google OAuth authentication and token storage."""

from looker_cli.google.oauth import GoogleOAuth
from looker_cli.google.token_store import TokenStore

__all__ = [
    "GoogleOAuth",
    "TokenStore",
]
