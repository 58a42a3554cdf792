"""Google OAuth management using Authlib.

This module provides the OAuth 2.0 authorization-code flow for the Drive API:
- Reuse of a stored token after a remote introspection check
- Interactive authorization with a pluggable code prompt
- Token revocation
- Google API service creation

Tokens are stored through ``TokenStore`` at the path carried by ``Settings``.
"""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable
from typing import Any

import requests
from authlib.integrations.requests_client import OAuth2Session
from authlib.oauth2 import OAuth2Error
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from looker_cli.config import Settings
from looker_cli.exceptions import AuthorizationCancelled, TokenError
from looker_cli.google.token_store import TokenStore
from looker_cli.outcome import Outcome

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]
BrowserOpener = Callable[[str], bool]


def _to_session_token(stored: dict[str, Any]) -> dict[str, Any]:
    """Convert the on-disk token shape to Authlib's."""
    expiry_date = stored.get("expiry_date")
    return {
        "access_token": stored.get("access_token"),
        "refresh_token": stored.get("refresh_token"),
        "token_type": stored.get("token_type") or "Bearer",
        "scope": stored.get("scope") or "",
        "expires_at": expiry_date / 1000 if expiry_date else None,
    }


def _to_stored_token(token: dict[str, Any]) -> dict[str, Any]:
    """Convert an Authlib token to the on-disk shape."""
    expires_at = token.get("expires_at")
    return {
        "access_token": token.get("access_token"),
        "refresh_token": token.get("refresh_token"),
        "scope": token.get("scope"),
        "token_type": token.get("token_type", "Bearer"),
        "expiry_date": int(expires_at * 1000) if expires_at else None,
    }


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the OAuth 2.0 authorization-code flow, token persistence and
    Google API service creation.

    Example:
        >>> auth = GoogleOAuth(Settings.from_env())
        >>> auth.get_client()  # prompts for a code on first use
        >>> drive = auth.build_service("drive", "v3")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(self, settings: Settings, store: TokenStore | None = None):
        """Initialize Google OAuth.

        Args:
            settings: Client credentials, scopes and token location.
            store: Token storage. Defaults to a store at ``settings.token_path``.
        """
        self.settings = settings
        self.store = store or TokenStore(settings.token_path)

        self.session = OAuth2Session(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            scope=" ".join(settings.scopes),
            redirect_uri=settings.redirect_uri,
            update_token=self._save_token,
            token_endpoint=self.TOKEN_URL,
            token_endpoint_auth_method="client_secret_post",
        )

        self._state: str | None = None

    def _save_token(
        self,
        token: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ) -> None:
        """Save token to storage (also used as Authlib's update callback)."""
        token = dict(token)
        if access_token:
            token["access_token"] = access_token
        # Google omits refresh_token on refresh responses
        if not token.get("refresh_token"):
            previous = self.session.token or {}
            token["refresh_token"] = refresh_token or previous.get("refresh_token")

        self.store.save(_to_stored_token(token))

    def is_authorized(self) -> bool:
        """Check if a token is attached to the session."""
        return bool(self.session.token and self.session.token.get("access_token"))

    def get_client(
        self,
        prompt: Prompt | None = None,
        open_browser: BrowserOpener | None = None,
    ) -> GoogleOAuth:
        """Return an authorized client, running the interactive flow if needed.

        A stored token is reused only if the token-info endpoint accepts it.

        Args:
            prompt: Reads the authorization code. Defaults to ``input``.
            open_browser: Opens the authorization URL. Defaults to
                ``webbrowser.open``.

        Returns:
            This instance, with a valid token attached.
        """
        stored = self.store.load()
        if stored:
            self.session.token = _to_session_token(stored)
            try:
                self.introspect()
                return self
            except (TokenError, requests.RequestException) as e:
                logger.info(f"Token introspection failed: {e}")
                print("Stored token is invalid, requesting new token...")

        self.authorize(prompt=prompt, open_browser=open_browser)
        return self

    def introspect(self) -> dict[str, Any]:
        """Ask Google whether the current access token is valid.

        Returns:
            Token info (audience, scope, expires_in, ...).

        Raises:
            TokenError: If there is no token or Google rejects it.
        """
        if not self.is_authorized():
            raise TokenError("No access token to check")

        response = self.session.get(
            self.TOKENINFO_URL,
            params={"access_token": self.session.token["access_token"]},
            withhold_token=True,
        )
        if response.status_code != 200:
            raise TokenError(f"Token rejected by Google ({response.status_code}): {response.text}")
        return response.json()

    def get_authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        authorization_url, state = self.session.create_authorization_url(
            self.AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
        )

        self._state = state
        return authorization_url

    def authorize(
        self,
        prompt: Prompt | None = None,
        open_browser: BrowserOpener | None = None,
    ) -> dict[str, Any]:
        """Run the interactive authorization-code flow.

        Blocks until the prompt returns.

        Raises:
            AuthorizationCancelled: If no code is entered.
            TokenError: If the code exchange fails.
        """
        prompt = prompt or input
        open_browser = open_browser or webbrowser.open

        url = self.get_authorization_url()
        print(f"Authorize this app by visiting this URL:\n{url}\n")
        print("Opening browser...")

        opened = Outcome.attempt("Opening browser", open_browser, url)
        if not opened.ok or not opened.value:
            print("Could not open browser automatically. Please visit the URL above manually.")

        code = prompt("Enter the authorization code: ").strip()
        if not code:
            raise AuthorizationCancelled()

        token = self.fetch_token(code)
        print(f"Token stored to {self.store.path}")
        return token

    def fetch_token(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for tokens and store them.

        Args:
            code: The bare authorization code, or the full redirect URL.

        Returns:
            The fetched OAuth token dict.
        """
        kwargs: dict[str, Any] = {}
        if code.startswith(("http://", "https://")):
            kwargs["authorization_response"] = code
            kwargs["state"] = self._state
        else:
            kwargs["code"] = code

        try:
            token = self.session.fetch_token(
                self.TOKEN_URL,
                grant_type="authorization_code",
                **kwargs,
            )
        except OAuth2Error as e:
            raise TokenError(f"Error retrieving access token: {e}") from e

        self.session.token = token
        self._save_token(token)
        return token

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Raises:
            TokenError: If not authorized.
        """
        if not self.is_authorized():
            raise TokenError("Not authorized; run a command to start the login flow")

        token = self.session.token
        return GoogleCredentials(
            token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            token_uri=self.TOKEN_URL,
            client_id=self.settings.client_id,
            client_secret=self.settings.client_secret,
            scopes=list(self.settings.scopes),
        )

    def build_service(self, service_name: str = "drive", version: str = "v3") -> Any:
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service (e.g., 'drive').
            version: API version (e.g., 'v3').

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)

    def revoke(self) -> bool:
        """Revoke the stored token remotely, then delete it locally.

        Returns:
            False if there was no token file, True once revoked.

        Raises:
            TokenError: If the token file is unreadable or Google refuses the revocation.
        """
        if not self.store.exists():
            logger.warning("No token to revoke")
            return False

        stored = self.store.load()
        if not stored:
            raise TokenError(f"Cannot read token file {self.store.path}")

        # Revoking the refresh token also revokes its access tokens
        token = stored.get("refresh_token") or stored.get("access_token")
        if not token:
            raise TokenError(f"Token file {self.store.path} holds no token to revoke")

        response = self.session.post(
            self.REVOKE_URL,
            data={"token": token},
            withhold_token=True,
        )
        if response.status_code != 200:
            raise TokenError(f"Failed to revoke token ({response.status_code}): {response.text}")

        self.store.delete()
        logger.info("Token revoked successfully")
        return True
