"""CLI for looker-cli - manage Looker Studio reports stored in Google Drive.

Usage:
    looker-cli list                                      # List accessible reports
    looker-cli export --id <fileId> [--format pdf|json]  # Export a report
                      [--output <path>]
    looker-cli clone --id <fileId> --name <name>         # Clone a report
    looker-cli logout                                    # Revoke and remove the stored token
    looker-cli config                                    # Show configuration status
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

from looker_cli import __version__

if TYPE_CHECKING:
    from looker_cli.drive import DriveClient

logger = logging.getLogger(__name__)

PROG = "looker-cli"


def _connect() -> DriveClient:
    """Authenticate (interactively if needed) and return a DriveClient."""
    from looker_cli.config import Settings
    from looker_cli.drive import DriveClient
    from looker_cli.google import GoogleOAuth

    auth = GoogleOAuth(Settings.from_env()).get_client()
    return DriveClient(auth)


def _print_error(message: str, error: Exception) -> None:
    print(f"Error {message}: {error}", file=sys.stderr)
    logger.debug(f"Error {message}", exc_info=True)


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def cmd_list() -> int:
    """List all accessible Looker Studio reports."""
    print("Listing Looker Studio reports...\n")

    try:
        client = _connect()
        reports = client.list_reports()
    except Exception as e:
        _print_error("listing reports", e)
        return 1

    if not reports:
        print("No Looker Studio reports found.")
        print("Make sure you have reports in your Google Drive that contain keywords like:")
        print('- "looker"')
        print('- "data studio"')
        print('- "dashboard"')
        print('- "report"')
        return 0

    print(f"Found {len(reports)} report(s):\n")

    separator = "-" * 77
    print(separator)
    print(f"{'TITLE':<30} | {'FILE ID':<28} | {'LAST MODIFIED':<13}")
    print(separator)
    for report in reports:
        modified = report.modified_time.strftime("%Y-%m-%d") if report.modified_time else "unknown"
        print(f"{_truncate(report.name, 30):<30} | {_truncate(report.id, 28):<28} | {modified:<13}")
    print(separator)
    print()

    print("Detailed Information:\n")
    for index, report in enumerate(reports, start=1):
        print(f"{index}. {report.name}")
        print(f"   File ID : {report.id}")
        if report.modified_time:
            print(f"   Modified: {report.modified_time.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        if report.size:
            print(f"   Size    : {report.size} bytes")
        if report.owners:
            print(f"   Owners  : {', '.join(report.owners)}")
        if report.web_view_link:
            print(f"   Link    : {report.web_view_link}")
        print()

    print("Use these File IDs with the export and clone commands:")
    print(f"   {PROG} export --id <FILE_ID> --format pdf")
    print(f'   {PROG} clone --id <FILE_ID> --name "My New Report"')
    return 0


def cmd_export(file_id: str, export_format: str = "pdf", output: str | None = None) -> int:
    """Export a Looker Studio report to PDF or JSON metadata."""
    from looker_cli.drive.client import EXPORT_FORMATS

    print("Exporting Looker Studio report...")
    print(f"   File ID: {file_id}")
    print(f"   Format : {export_format.upper()}")
    if output:
        print(f"   Output : {output}")
    print()

    if not file_id or not file_id.strip():
        print("File ID is required", file=sys.stderr)
        return 1

    if export_format not in EXPORT_FORMATS:
        print(
            f"Invalid format. Supported formats: {', '.join(EXPORT_FORMATS)}",
            file=sys.stderr,
        )
        return 1

    try:
        client = _connect()
    except Exception as e:
        _print_error("authenticating", e)
        return 1

    print("Checking file information...")
    try:
        info = client.get_file_info(file_id)
    except Exception as e:
        logger.debug(f"File lookup failed: {e}")
        print(
            "File not found or not accessible. Please check the file ID and your permissions.",
            file=sys.stderr,
        )
        return 1
    print(f"   File: {info.get('name')}")
    print(f"   Type: {info.get('mimeType')}")
    print()

    print("Starting export...")
    try:
        result = client.export_report(file_id, export_format, output)
    except Exception as e:
        _print_error("exporting report", e)
        return 1

    if result.used_fallback:
        print("PDF export is not available for this file; downloaded the original file instead.")
    print("Export completed successfully!")
    print(f"   Output file: {result.path}")

    if result.format == "json":
        print()
        print("Note: JSON export contains metadata only.")
        print("   Looker Studio reports cannot be fully exported as JSON via the Drive API.")
        print("   For complete data export, use the PDF format or export directly from Looker Studio.")

    return 0


def _clone_hints(error: Exception) -> list[str]:
    message = str(error).lower()
    if "permission" in message:
        return [
            "Common solutions:",
            "   - Make sure you have edit access to the source report",
            "   - Check that the report owner has enabled copying",
            "   - Try refreshing your authentication token",
        ]
    if "not found" in message:
        return [
            "The file might be:",
            "   - Deleted or moved",
            "   - Not shared with your account",
            "   - The file ID might be incorrect",
        ]
    return []


def cmd_clone(file_id: str, name: str) -> int:
    """Clone a Looker Studio report under a new name."""
    print("Cloning Looker Studio report...")
    print(f"   Source File ID: {file_id}")
    print(f"   New Name      : {name}")
    print()

    if not file_id or not file_id.strip():
        print("File ID is required", file=sys.stderr)
        return 1

    if not name or not name.strip():
        print("Report name is required", file=sys.stderr)
        return 1

    try:
        client = _connect()
    except Exception as e:
        _print_error("authenticating", e)
        return 1

    print("Checking source file information...")
    try:
        info = client.get_file_info(file_id)
    except Exception as e:
        logger.debug(f"Source lookup failed: {e}")
        print(
            "Source file not found or not accessible. "
            "Please check the file ID and your permissions.",
            file=sys.stderr,
        )
        return 1
    print(f"   Source File: {info.get('name')}")
    print(f"   Type       : {info.get('mimeType')}")
    print(f"   Size       : {info.get('size') or 'Unknown'} bytes")
    print()

    print("Creating clone...")
    try:
        clone = client.clone_report(file_id, name)
    except Exception as e:
        _print_error("cloning report", e)
        hints = _clone_hints(e)
        if hints:
            print()
            for line in hints:
                print(line)
        return 1

    print("Clone completed successfully!")
    print(f"   New File ID: {clone.id}")
    print(f"   New Name   : {clone.name}")
    print()

    if clone.web_view_link:
        print(f"View your cloned report: {clone.web_view_link}")
    else:
        print("Clone created but unable to retrieve view link.")

    print()
    print("You can now:")
    print("   - Edit the cloned report in Looker Studio")
    print(f"   - Export it: {PROG} export --id {clone.id} --format pdf")
    print(f"   - List all reports: {PROG} list")
    return 0


def cmd_logout() -> int:
    """Revoke the stored OAuth token and delete it."""
    from looker_cli.config import Settings
    from looker_cli.google import GoogleOAuth

    try:
        auth = GoogleOAuth(Settings.from_env())
        revoked = auth.revoke()
    except Exception as e:
        _print_error("revoking token", e)
        return 1

    if revoked:
        print("Token revoked and removed successfully")
    else:
        print("No stored token to revoke")
    return 0


def cmd_config() -> int:
    """Show where configuration lives and what is set."""
    from looker_cli.config import get_config_status

    status = get_config_status()

    def mark(value: bool) -> str:
        return "[x]" if value else "[ ]"

    print("=" * 60)
    print("LOOKER-CLI CONFIGURATION")
    print("=" * 60)
    print()
    print(f"Config directory: {status['home']}")
    print()
    print(f"  .env in current directory: {mark(status['env_file'])}")
    print(f"  CLIENT_ID:                 {mark(status['client_id'])}")
    print(f"  CLIENT_SECRET:             {mark(status['client_secret'])}")
    print(f"  token.json:                {mark(status['token'])}")
    print()

    if not (status["client_id"] and status["client_secret"]):
        print("Create OAuth client credentials at:")
        print("  https://console.cloud.google.com/apis/credentials")
        print("and set CLIENT_ID and CLIENT_SECRET in your environment or .env file.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="CLI tool for managing Looker Studio reports",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    # list command
    subparsers.add_parser("list", help="List all accessible Looker Studio reports")

    # export command
    export_parser = subparsers.add_parser("export", help="Export a Looker Studio report")
    export_parser.add_argument(
        "--id", dest="file_id", required=True, help="File ID of the report to export"
    )
    # Validated in cmd_export so a bad value exits 1 before authenticating
    export_parser.add_argument(
        "--format",
        dest="export_format",
        default="pdf",
        help="Export format (json|pdf, default: pdf)",
    )
    export_parser.add_argument("--output", help="Output file path")

    # clone command
    clone_parser = subparsers.add_parser("clone", help="Clone a Looker Studio report")
    clone_parser.add_argument(
        "--id", dest="file_id", required=True, help="File ID of the report to clone"
    )
    clone_parser.add_argument("--name", required=True, help="Name for the cloned report")

    # logout command
    subparsers.add_parser("logout", help="Revoke and remove the stored OAuth token")

    # config command
    subparsers.add_parser("config", help="Show configuration status")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from looker_cli.config import configure_logging, load_env_file

    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    load_env_file()
    configure_logging("DEBUG" if args.verbose else None)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "list":
        return cmd_list()

    if args.command == "export":
        return cmd_export(args.file_id, args.export_format, args.output)

    if args.command == "clone":
        return cmd_clone(args.file_id, args.name)

    if args.command == "logout":
        return cmd_logout()

    if args.command == "config":
        return cmd_config()

    return 0


if __name__ == "__main__":
    sys.exit(main())
