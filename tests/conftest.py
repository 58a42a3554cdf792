"""Shared fixtures."""

import json
from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from looker_cli.config import Settings


def http_error(status: int, message: str) -> HttpError:
    """Build an HttpError shaped like a Drive API error response."""
    content = json.dumps({"error": {"code": status, "message": message}}).encode()
    return HttpError(httplib2.Response({"status": status}), content)


@pytest.fixture
def settings(tmp_path):
    """Settings with a token path inside tmp_path."""
    return Settings(
        client_id="test-client-id.apps.googleusercontent.com",
        client_secret="test-client-secret",
        token_path=tmp_path / "config" / "token.json",
    )


@pytest.fixture
def stored_token():
    return {
        "access_token": "ya29.test-access-token",
        "refresh_token": "1//test-refresh-token",
        "scope": "https://www.googleapis.com/auth/drive",
        "token_type": "Bearer",
        "expiry_date": 4070908800000,
    }


@pytest.fixture
def drive_service():
    """Mock Drive v3 service; configure ``drive_service.files.return_value``."""
    return MagicMock()


@pytest.fixture
def fake_downloader():
    """Replacement for MediaIoBaseDownload driven by a request -> payload map.

    A payload that is an exception is raised from ``next_chunk``.
    """

    def factory(payloads):
        class FakeDownloader:
            def __init__(self, fh, request, chunksize=None):
                self._fh = fh
                self._payload = payloads[request]

            def next_chunk(self):
                if isinstance(self._payload, Exception):
                    raise self._payload
                self._fh.write(self._payload)
                return None, True

        return FakeDownloader

    return factory
