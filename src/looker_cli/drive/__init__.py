"""Google Drive access for Looker Studio reports.

Usage:
    from looker_cli.drive import DriveClient

    client = DriveClient(auth)

    # Find reports
    reports = client.list_reports()

    # Export to PDF (falls back to the raw file if Drive can't render it)
    result = client.export_report(reports[0].id, "pdf")

    # Clone next to the original
    clone = client.clone_report(reports[0].id, "Copy of report")
"""

from __future__ import annotations

from looker_cli.drive.client import (
    CloneResult,
    DriveClient,
    ExportResult,
    Report,
    sanitize_filename,
)

__all__ = ["CloneResult", "DriveClient", "ExportResult", "Report", "sanitize_filename"]
