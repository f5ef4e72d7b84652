"""
Excel Upload Console

Command line front-end for the upload orchestrator. Notifications from
the orchestrator are rendered with rich; the workflow itself lives in
excel_upload.services.

Usage:
    python -m excel_upload upload data/batch.xlsx --batch-no B2025001 --rate 1
    python -m excel_upload upload data/batch.xlsx --batch-no B2025001 --export-errors
    python -m excel_upload batches
    python -m excel_upload delete B2025001
    python -m excel_upload template

Exit codes: 0 = success, 1 = rejected (validation, conflict or row errors), 2 = backend unreachable/failed.
"""

import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from excel_upload.config import get_settings
from excel_upload.logging_config import setup_logging
from excel_upload.models.enums import ErrorCategory, NotificationKind, SpreadsheetMediaType
from excel_upload.models.schemas import SelectedFile, UploadResult
from excel_upload.sentry_integration import init_sentry, tag_batch
from excel_upload.services.notifications import Notification
from excel_upload.services.upload_orchestrator import UploadOrchestrator

console = Console()
EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_BACKEND_FAILED = 2

_KIND_STYLES = {
    NotificationKind.success: ("green", "✓"),
    NotificationKind.warning: ("yellow", "!"),
    NotificationKind.error: ("red", "✗"),
}

_MEDIA_TYPES_BY_SUFFIX = {
    ".xlsx": SpreadsheetMediaType.xlsx.value,
    ".xls": SpreadsheetMediaType.xls.value,
}


def render_notification(notification: Notification):
    style, icon = _KIND_STYLES[notification.kind]
    console.print(f"[{style}]{icon} {escape(notification.message)}[/{style}]")


def read_selected_file(path: Path) -> SelectedFile:
    """Load a file the way a browser would hand it over: bytes plus declared media type."""
    content_type = _MEDIA_TYPES_BY_SUFFIX.get(path.suffix.lower())
    if content_type is None:
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return SelectedFile(filename=path.name, content=path.read_bytes(), content_type=content_type)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="excel_upload",
        description="Upload transaction spreadsheets and manage upload batches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m excel_upload upload data/batch.xlsx --batch-no B2025001
  python -m excel_upload upload data/batch.xlsx --batch-no B2025001 --branch 001 --source MAN --rate 24500
  python -m excel_upload delete B2025001 --yes
""",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Sub-command")

    upload = subparsers.add_parser("upload", help="Upload a spreadsheet as a new batch")
    upload.add_argument("file", type=Path, help="Path to the .xlsx/.xls file")
    upload.add_argument("--batch-no", required=True, help="Batch number (max 20 characters)")
    upload.add_argument("--branch", help="Branch code (default: first branch)")
    upload.add_argument("--source", help="Source code (default: first source code)")
    upload.add_argument("--rate", help="Exchange rate (default: 1)")
    upload.add_argument("--date", help="Entry date YYYY-MM-DD (default: branch working day)")
    upload.add_argument(
        "--export-errors",
        action="store_true",
        help="Write batch_<batchNo>_errors.csv when rows were rejected",
    )

    subparsers.add_parser("batches", help="List uploaded batches")

    delete = subparsers.add_parser("delete", help="Delete an uploaded batch")
    delete.add_argument("batch_no", help="Batch number")
    delete.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("template", help="Download the upload template")

    return parser.parse_args(argv)


def _print_result(result: UploadResult):
    summary = Table(title=f"Batch {result.batch_no}", show_header=False)
    summary.add_row("Total rows", str(result.total_rows))
    summary.add_row("Imported", str(result.success_count))
    summary.add_row("Errors", str(result.error_count))
    if result.skipped_count:
        summary.add_row("Skipped", str(result.skipped_count))
    if result.processing_time_ms is not None:
        summary.add_row("Processing time", f"{result.processing_time_ms} ms")
    console.print(summary)

    if not result.errors:
        return

    errors = Table(title="Row errors")
    errors.add_column("Row", justify="right")
    errors.add_column("Account")
    errors.add_column("Amount", justify="right")
    errors.add_column("Error")
    for error in result.errors[:20]:
        errors.add_row(
            str(error.row_number),
            escape(error.account or ""),
            "" if error.amount is None else str(error.amount),
            escape(error.error_message),
        )
    console.print(errors)
    if len(result.errors) > 20:
        console.print(f"[dim]... {len(result.errors) - 20} more[/dim]")


async def _run_upload(orchestrator: UploadOrchestrator, args: argparse.Namespace) -> int:
    selected = read_selected_file(args.file)
    await orchestrator.initialize()

    form = orchestrator.form
    if args.branch:
        await orchestrator.select_branch(args.branch)
    if args.source:
        form.set_value("source_code", args.source)
    if args.rate:
        form.set_value("exch_rate", args.rate)
    if args.date:
        form.set_value("entry_date", args.date)
    form.set_value("batch_no", args.batch_no)
    form.mark_all_touched()

    for name in form.invalid_fields:
        for error in form.errors(name).values():
            console.print(f"[red]✗ {escape(error['message'])}[/red]")

    if not orchestrator.on_file_selected(selected):
        return EXIT_REJECTED

    tag_batch(args.batch_no)
    outcome = await orchestrator.upload_file()

    if outcome.result is not None:
        _print_result(outcome.result)

    if args.export_errors and outcome.result is not None and outcome.result.errors:
        path = orchestrator.export_error_report()
        if path:
            console.print(f"[dim]Error report written to {path}[/dim]")

    if outcome.ok:
        return EXIT_OK
    if outcome.category == ErrorCategory.transport:
        return EXIT_BACKEND_FAILED
    return EXIT_REJECTED


async def _run_batches(orchestrator: UploadOrchestrator) -> int:
    batches = await orchestrator.load_batch_summary()

    table = Table(title="Uploaded batches")
    table.add_column("Batch")
    table.add_column("Records", justify="right")
    for entry in batches:
        table.add_row(entry.batch_no, str(entry.record_count))
    console.print(table)
    return EXIT_OK


async def _run_delete(orchestrator: UploadOrchestrator, args: argparse.Namespace) -> int:
    orchestrator.form.set_value("batch_no", args.batch_no)

    def confirm(question: str) -> bool:
        return args.yes or Confirm.ask(question, console=console)

    deleted = await orchestrator.delete_batch(confirm)
    return EXIT_OK if deleted else EXIT_REJECTED


async def _run_template(orchestrator: UploadOrchestrator) -> int:
    path = await orchestrator.download_template()
    if path is None:
        return EXIT_BACKEND_FAILED
    console.print(f"[dim]Template saved to {path}[/dim]")
    return EXIT_OK


async def _dispatch(args: argparse.Namespace) -> int:
    settings = get_settings()
    orchestrator = UploadOrchestrator.from_settings(settings)
    orchestrator.notifications.subscribe(render_notification)

    async with orchestrator.client:
        if args.command == "upload":
            return await _run_upload(orchestrator, args)
        if args.command == "batches":
            return await _run_batches(orchestrator)
        if args.command == "delete":
            return await _run_delete(orchestrator, args)
        return await _run_template(orchestrator)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()

    setup_logging(
        level=args.log_level or settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
    )
    init_sentry(dsn=settings.SENTRY_DSN, environment=settings.ENVIRONMENT)

    try:
        return asyncio.run(_dispatch(args))
    except FileNotFoundError as err:
        console.print(f"[red]✗ File not found: {err.filename}[/red]")
        return EXIT_REJECTED
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return EXIT_REJECTED


if __name__ == "__main__":
    sys.exit(main())
