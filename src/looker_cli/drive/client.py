"""Google Drive API client for Looker Studio reports."""

from __future__ import annotations

import contextlib
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from looker_cli.google import GoogleOAuth
from looker_cli.outcome import Outcome

logger = logging.getLogger(__name__)


@dataclass
class Report:
    """A Drive file believed to be a report or dashboard."""

    id: str
    name: str
    modified_time: datetime | None = None
    size: int | None = None
    owners: list[str] | None = None
    web_view_link: str | None = None
    mime_type: str = ""


@dataclass
class ExportResult:
    """Where an export was written and how."""

    path: Path
    format: str
    used_fallback: bool = False


@dataclass
class CloneResult:
    """A freshly copied report."""

    id: str
    name: str
    web_view_link: str | None = None


GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
PDF_MIME_TYPE = "application/pdf"

REPORT_KEYWORDS = ("looker", "data studio", "dashboard", "report")
REPORT_FIELDS = "files(id, name, modifiedTime, size, owners, webViewLink, mimeType)"
EXPORT_FORMATS = ("pdf", "json")

JSON_EXPORT_NOTE = (
    "This is metadata only. Looker Studio reports cannot be fully exported "
    "as JSON via Drive API."
)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9\-_\s]")


def sanitize_filename(name: str) -> str:
    """Replace every character outside letters, digits, ``-``, ``_`` and whitespace with ``_``."""
    return _UNSAFE_FILENAME_CHARS.sub("_", name)


class DriveClient:
    """Google Drive API client for Looker Studio reports.

    Usage:
        auth = GoogleOAuth(Settings.from_env()).get_client()
        client = DriveClient(auth)

        # Find reports
        reports = client.list_reports()

        # Export one to PDF in the current directory
        result = client.export_report(reports[0].id)

        # Copy it next to the original
        clone = client.clone_report(reports[0].id, "Q4 Sales")
    """

    def __init__(self, auth: GoogleOAuth | None = None, service: Any = None) -> None:
        """Initialize Drive client.

        Args:
            auth: Authorized OAuth client used to build the Drive service.
            service: Prebuilt Drive v3 service (takes precedence over ``auth``).
        """
        if auth is None and service is None:
            raise ValueError("DriveClient needs either an authorized GoogleOAuth or a service")
        self._auth = auth
        self._service = service

    def _get_service(self) -> Any:
        """Get or create Drive API service."""
        if self._service is None:
            self._service = self._auth.build_service("drive", "v3")
        return self._service

    # =========================================================================
    # Listing
    # =========================================================================

    def list_reports(self) -> list[Report]:
        """List report-like files accessible to the user.

        Runs a keyword search on file names and a search for Google Docs,
        concatenates both (keyword hits first) and keeps the first
        occurrence of each file ID.

        Returns:
            List of Report objects.
        """
        service = self._get_service()

        name_query = " or ".join(f"name contains '{keyword}'" for keyword in REPORT_KEYWORDS)
        keyword_files = self._search(service, f"({name_query}) and trashed=false", 100)
        document_files = self._search(
            service, f"mimeType='{GOOGLE_DOC_MIME_TYPE}' and trashed=false", 50
        )

        seen: set[str] = set()
        unique = []
        for item in keyword_files + document_files:
            if item["id"] in seen:
                continue
            seen.add(item["id"])
            unique.append(item)

        logger.info(
            f"Found {len(keyword_files)} keyword and {len(document_files)} document matches, "
            f"{len(unique)} unique"
        )
        return [self._parse_report(item) for item in unique]

    def _search(self, service: Any, query: str, page_size: int) -> list[dict]:
        logger.debug(f"Searching Drive: {query}")
        results = (
            service.files().list(q=query, fields=REPORT_FIELDS, pageSize=page_size).execute()
        )
        return results.get("files", [])

    # =========================================================================
    # Metadata
    # =========================================================================

    def get_file_info(self, file_id: str) -> dict[str, Any]:
        """Get full metadata for a file.

        Args:
            file_id: Drive file ID.

        Returns:
            Raw Drive file resource.

        Raises:
            HttpError: If the file does not exist or is not accessible.
        """
        service = self._get_service()
        return service.files().get(fileId=file_id, fields="*").execute()

    def get_view_link(self, file_id: str) -> Outcome[str]:
        """Fetch a file's web view link without failing the caller."""
        service = self._get_service()
        return Outcome.attempt(
            "Fetching view link",
            lambda: service.files().get(fileId=file_id, fields="webViewLink").execute().get(
                "webViewLink"
            ),
        )

    # =========================================================================
    # Export
    # =========================================================================

    def resolve_output_path(
        self, name: str, export_format: str, output_path: str | Path | None = None
    ) -> Path:
        """Pick the export destination.

        An explicit ``output_path`` wins; otherwise the sanitized file name
        with a ``.pdf``/``.json`` suffix in the current directory.
        """
        if output_path:
            return Path(output_path)
        return Path.cwd() / f"{sanitize_filename(name)}.{export_format}"

    def export_report(
        self,
        file_id: str,
        export_format: str = "pdf",
        output_path: str | Path | None = None,
    ) -> ExportResult:
        """Export a report to a local file.

        Args:
            file_id: Drive file ID.
            export_format: "pdf" for a rendered document, "json" for metadata.
            output_path: Destination. Derived from the file name if omitted.

        Returns:
            ExportResult describing the written file.

        Raises:
            ValueError: If the format is not supported.
            HttpError: If the file is missing or every download path fails.
            OSError: If the destination cannot be written.
        """
        if export_format not in EXPORT_FORMATS:
            raise ValueError(
                f"Unsupported export format: {export_format}. Use one of: {', '.join(EXPORT_FORMATS)}"
            )

        service = self._get_service()
        file_meta = (
            service.files().get(fileId=file_id, fields="id, name, mimeType, webViewLink").execute()
        )
        name = file_meta.get("name") or f"report_{file_id}"
        path = self.resolve_output_path(name, export_format, output_path)

        if export_format == "json":
            self._export_metadata(service, file_id, path)
            return ExportResult(path=path, format=export_format)

        try:
            request = service.files().export_media(fileId=file_id, mimeType=PDF_MIME_TYPE)
            self._stream_to_file(request, path)
            return ExportResult(path=path, format=export_format)
        except HttpError as e:
            logger.warning(f"PDF export failed, trying to download original file: {e}")

        request = service.files().get_media(fileId=file_id)
        self._stream_to_file(request, path)
        return ExportResult(path=path, format=export_format, used_fallback=True)

    def _export_metadata(self, service: Any, file_id: str, path: Path) -> None:
        """Write full metadata as pretty-printed JSON."""
        metadata = service.files().get(fileId=file_id, fields="*").execute()
        exported_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        data = {
            "metadata": metadata,
            "exportedAt": exported_at.replace("+00:00", "Z"),
            "note": JSON_EXPORT_NOTE,
        }

        with open(path, "w") as f:
            json.dump(data, f, indent=2)

    def _stream_to_file(self, request: Any, path: Path) -> None:
        """Download a media request chunk by chunk into ``path``."""
        with open(path, "wb") as fh:
            downloader = MediaIoBaseDownload(fh, request)
            done = False
            while not done:
                status, done = downloader.next_chunk()
                if status:
                    logger.debug(f"Downloaded {int(status.progress() * 100)}%")

    # =========================================================================
    # Clone
    # =========================================================================

    def clone_report(self, file_id: str, new_title: str) -> CloneResult:
        """Copy a report into the same folder(s) under a new name.

        Args:
            file_id: Drive file ID of the source.
            new_title: Name for the copy.

        Returns:
            CloneResult for the new file.
        """
        service = self._get_service()

        original = service.files().get(fileId=file_id, fields="id, name, mimeType, parents").execute()

        body: dict[str, Any] = {"name": new_title}
        if original.get("parents"):
            body["parents"] = original["parents"]

        copied = service.files().copy(fileId=file_id, body=body).execute()
        new_id = copied["id"]
        logger.info(f"Cloned {file_id} as {new_title!r} ({new_id})")

        link = self.get_view_link(new_id)
        return CloneResult(id=new_id, name=new_title, web_view_link=link.value)

    def _parse_report(self, data: dict) -> Report:
        """Parse report from API response."""
        modified_time = None
        if data.get("modifiedTime"):
            with contextlib.suppress(ValueError):
                modified_time = datetime.fromisoformat(data["modifiedTime"].replace("Z", "+00:00"))

        size = None
        if data.get("size"):
            with contextlib.suppress(ValueError):
                size = int(data["size"])

        owners = None
        if data.get("owners"):
            owners = [
                owner.get("displayName") or owner.get("emailAddress") or "Unknown"
                for owner in data["owners"]
            ]

        return Report(
            id=data["id"],
            name=data.get("name", ""),
            modified_time=modified_time,
            size=size,
            owners=owners,
            web_view_link=data.get("webViewLink"),
            mime_type=data.get("mimeType", ""),
        )
