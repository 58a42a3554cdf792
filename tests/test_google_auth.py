"""Tests for Google OAuth authentication."""

import json
import stat
from unittest.mock import Mock, patch

import pytest
import requests

from looker_cli.config import DRIVE_SCOPE
from looker_cli.exceptions import AuthorizationCancelled, TokenError
from looker_cli.google import GoogleOAuth, TokenStore


def _response(status_code=200, payload=None, text=""):
    return Mock(status_code=status_code, json=Mock(return_value=payload or {}), text=text)


@pytest.fixture
def exchanged_token():
    return {
        "access_token": "ya29.fresh",
        "refresh_token": "1//fresh-refresh",
        "scope": DRIVE_SCOPE,
        "token_type": "Bearer",
        "expires_in": 3599,
        "expires_at": 1700000000,
    }


@pytest.fixture
def token_file(settings, stored_token):
    TokenStore(settings.token_path).save(stored_token)
    return settings.token_path


class TestGoogleOAuthBasics:
    """Test basic GoogleOAuth functionality."""

    def test_not_authorized_without_token(self, settings):
        auth = GoogleOAuth(settings)
        assert auth.is_authorized() is False

    def test_get_authorization_url(self, settings):
        """Should generate an offline authorization URL for the Drive scope."""
        auth = GoogleOAuth(settings)
        url = auth.get_authorization_url()
        assert url.startswith(GoogleOAuth.AUTHORIZE_URL)
        assert "client_id=test-client-id.apps.googleusercontent.com" in url
        assert "scope=" in url
        assert "auth%2Fdrive" in url
        assert "access_type=offline" in url
        assert "response_type=code" in url

    def test_get_credentials_requires_token(self, settings):
        with pytest.raises(TokenError):
            GoogleOAuth(settings).get_credentials()

    def test_introspect_requires_token(self, settings):
        with pytest.raises(TokenError, match="No access token"):
            GoogleOAuth(settings).introspect()


class TestGetClient:
    """Test stored-token reuse and the interactive flow."""

    def test_reuses_valid_stored_token(self, settings, token_file):
        """Should skip the prompt when Google accepts the stored token."""
        auth = GoogleOAuth(settings)
        prompt = Mock()
        with patch.object(
            auth.session, "get", return_value=_response(200, {"scope": DRIVE_SCOPE})
        ) as get:
            assert auth.get_client(prompt=prompt) is auth

        prompt.assert_not_called()
        assert get.call_args.args[0] == GoogleOAuth.TOKENINFO_URL
        assert get.call_args.kwargs["params"] == {"access_token": "ya29.test-access-token"}
        assert auth.session.token["refresh_token"] == "1//test-refresh-token"

    def test_credentials_built_from_stored_token(self, settings, token_file):
        auth = GoogleOAuth(settings)
        with patch.object(auth.session, "get", return_value=_response(200)):
            auth.get_client(prompt=Mock())

        creds = auth.get_credentials()
        assert creds.token == "ya29.test-access-token"
        assert creds.refresh_token == "1//test-refresh-token"
        assert creds.client_id == settings.client_id

    def test_invalid_token_triggers_interactive_flow(
        self, settings, token_file, exchanged_token, capsys
    ):
        """Should prompt for a new code when introspection fails."""
        auth = GoogleOAuth(settings)
        with (
            patch.object(auth.session, "get", return_value=_response(400, text="invalid_token")),
            patch.object(auth.session, "fetch_token", return_value=exchanged_token) as fetch,
        ):
            auth.get_client(prompt=lambda _: " 4/0-code \n", open_browser=lambda url: True)

        assert fetch.call_args.kwargs["code"] == "4/0-code"
        assert fetch.call_args.kwargs["grant_type"] == "authorization_code"
        assert "Stored token is invalid" in capsys.readouterr().out
        assert json.loads(token_file.read_text())["access_token"] == "ya29.fresh"

    def test_network_failure_during_introspection_triggers_flow(
        self, settings, token_file, exchanged_token
    ):
        auth = GoogleOAuth(settings)
        with (
            patch.object(auth.session, "get", side_effect=requests.ConnectionError("offline")),
            patch.object(auth.session, "fetch_token", return_value=exchanged_token),
        ):
            auth.get_client(prompt=lambda _: "code", open_browser=lambda url: True)
        assert auth.session.token["access_token"] == "ya29.fresh"

    def test_first_run_stores_token(self, settings, exchanged_token, capsys):
        """Should store the exchanged token with owner-only permissions."""
        auth = GoogleOAuth(settings)
        prompts = []

        def prompt(message):
            prompts.append(message)
            return "4/0-code"

        with patch.object(auth.session, "fetch_token", return_value=exchanged_token):
            auth.get_client(prompt=prompt, open_browser=lambda url: True)

        assert prompts == ["Enter the authorization code: "]
        path = settings.token_path
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert json.loads(path.read_text()) == {
            "access_token": "ya29.fresh",
            "refresh_token": "1//fresh-refresh",
            "scope": DRIVE_SCOPE,
            "token_type": "Bearer",
            "expiry_date": 1700000000000,
        }
        assert f"Token stored to {path}" in capsys.readouterr().out

    def test_browser_failure_is_not_fatal(self, settings, exchanged_token, capsys):
        """Should print the manual-visit hint when the browser can't open."""
        auth = GoogleOAuth(settings)

        def broken_browser(url):
            raise OSError("no display")

        with patch.object(auth.session, "fetch_token", return_value=exchanged_token):
            auth.get_client(prompt=lambda _: "code", open_browser=broken_browser)

        out = capsys.readouterr().out
        assert "accounts.google.com" in out
        assert "Please visit the URL above manually" in out

    def test_accepts_redirect_url(self, settings, exchanged_token):
        """Should pass a pasted redirect URL through with the session state."""
        auth = GoogleOAuth(settings)
        redirect = "http://localhost/?code=4/0-code&state=abc"
        with patch.object(auth.session, "fetch_token", return_value=exchanged_token) as fetch:
            auth.get_client(prompt=lambda _: redirect, open_browser=lambda url: True)

        kwargs = fetch.call_args.kwargs
        assert kwargs["authorization_response"] == redirect
        assert kwargs["state"] == auth._state
        assert "code" not in kwargs

    def test_empty_code_aborts(self, settings):
        auth = GoogleOAuth(settings)
        with (
            patch.object(auth.session, "fetch_token") as fetch,
            pytest.raises(AuthorizationCancelled),
        ):
            auth.get_client(prompt=lambda _: "   ", open_browser=lambda url: True)
        fetch.assert_not_called()
        assert not settings.token_path.exists()

    def test_exchange_failure_raises_token_error(self, settings):
        from authlib.oauth2 import OAuth2Error

        auth = GoogleOAuth(settings)
        with (
            patch.object(
                auth.session, "fetch_token", side_effect=OAuth2Error(error="invalid_grant")
            ),
            pytest.raises(TokenError, match="Error retrieving access token"),
        ):
            auth.get_client(prompt=lambda _: "bad", open_browser=lambda url: True)


class TestTokenRefreshCallback:
    """Test the Authlib update_token callback."""

    def test_keeps_previous_refresh_token(self, settings):
        auth = GoogleOAuth(settings)
        auth._save_token(
            {"access_token": "ya29.refreshed", "scope": DRIVE_SCOPE, "expires_at": 1800000000},
            refresh_token="1//original",
        )
        saved = TokenStore(settings.token_path).load()
        assert saved["access_token"] == "ya29.refreshed"
        assert saved["refresh_token"] == "1//original"
        assert saved["expiry_date"] == 1800000000000


class TestRevoke:
    """Test token revocation."""

    def test_no_token(self, settings):
        auth = GoogleOAuth(settings)
        with patch.object(auth.session, "post") as post:
            assert auth.revoke() is False
        post.assert_not_called()

    def test_revokes_and_deletes(self, settings, token_file):
        auth = GoogleOAuth(settings)
        with patch.object(auth.session, "post", return_value=_response(200)) as post:
            assert auth.revoke() is True

        assert post.call_args.args[0] == GoogleOAuth.REVOKE_URL
        assert post.call_args.kwargs["data"] == {"token": "1//test-refresh-token"}
        assert not token_file.exists()

    def test_remote_failure_propagates_and_keeps_file(self, settings, token_file):
        auth = GoogleOAuth(settings)
        with (
            patch.object(auth.session, "post", return_value=_response(400, text="invalid_token")),
            pytest.raises(TokenError, match="Failed to revoke"),
        ):
            auth.revoke()
        assert token_file.exists()

    def test_unreadable_token_file(self, settings):
        settings.token_path.parent.mkdir(parents=True)
        settings.token_path.write_text("garbage")
        with pytest.raises(TokenError, match="Cannot read token file"):
            GoogleOAuth(settings).revoke()
