"""Audit command: scan, review and purge cleanup candidates."""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from threading import Event
from typing import Optional

import typer

from ..actions.remediation import RemediationEngine
from ..audit.models import AuditError, CleanupCategory, ErrorKind, RemediationResult
from ..audit.session import AuditPhase, AuditSession
from ..auth.oauth import OAuthManager
from ..auth.service import DriveServiceFactory
from ..classifier.base import Classifier
from ..classifier.gemini import GeminiClassifier
from ..common.exceptions import AuthenticationError, ClassificationError, ConfigError
from ..common.rate_limiter import TokenBucketRateLimiter
from ..config.settings import Settings, get_settings
from ..config.store import ConfigStore, resolve_api_key, resolve_model
from ..reporting.exporter import ReportExporter
from ..sources.base import FileSource
from ..sources.demo import DemoFileSource
from ..sources.drive_source import DriveFileSource
from .formatters import (
    console,
    create_progress,
    create_table,
    format_size,
    format_total,
    print_error,
    print_info,
    print_panel,
    print_success,
    print_warning,
    truncate,
)

audit_app = typer.Typer(help="Audit Drive for cleanup candidates")

CATEGORY_STYLES = {
    CleanupCategory.DUPLICATE: "yellow",
    CleanupCategory.LARGE: "red",
    CleanupCategory.OLD: "white",
}

REVIEW_PROMPT = "Toggle numbers (e.g. 1,3-5), [a]ll, [c]lear, [p]urge, [q]uit"


def build_source(settings: Settings) -> FileSource:
    """Create the live Drive source and start initializing its client.

    Raises:
        AuthenticationError: If not authenticated
    """
    oauth_manager = OAuthManager(settings.token_path, settings.credentials_path)
    if not oauth_manager.is_authenticated():
        raise AuthenticationError(
            "Not authenticated. Run 'drive-purge auth login' first, or try --demo."
        )

    service_factory = DriveServiceFactory(oauth_manager, settings.service_ready_timeout)
    service_factory.start()
    rate_limiter = TokenBucketRateLimiter(settings.rate_limit)
    return DriveFileSource(
        service_factory,
        rate_limiter,
        page_size=settings.page_size,
        max_files=settings.max_files,
    )


def build_classifier(settings: Settings) -> Classifier:
    """Create the Gemini classifier from settings and saved configuration.

    Raises:
        ClassificationError: If no API key is configured
        ConfigError: If the saved configuration cannot be read
    """
    store = ConfigStore(settings.store_path)
    return GeminiClassifier(
        api_key=resolve_api_key(settings, store),
        model=resolve_model(settings, store),
    )


def parse_selection(text: str, count: int) -> list[int]:
    """Parse '1,3-5' into zero-based indices.

    Raises:
        ValueError: If a number is malformed or out of range
    """
    indices: list[int] = []

    for part in text.replace(" ", "").split(","):
        if not part:
            continue
        if "-" in part:
            start_text, end_text = part.split("-", 1)
            start, end = int(start_text), int(end_text)
            if start > end:
                raise ValueError(f"Invalid range: {part}")
            numbers = range(start, end + 1)
        else:
            numbers = range(int(part), int(part) + 1)

        for number in numbers:
            if not 1 <= number <= count:
                raise ValueError(f"No finding numbered {number}")
            indices.append(number - 1)

    if not indices:
        raise ValueError("Nothing to toggle")
    return indices


def show_summary(session: AuditSession) -> None:
    stats = session.stats()
    lines = [
        session.status_message,
        "",
        f"Files scanned: {len(session.files):,}",
        f"Files flagged: {len(session.candidates):,}",
        f"Potential savings: {format_total(stats.candidate_bytes, stats.unknown_size_candidates)}",
    ]
    title = "Audit Summary (demo)" if session.is_demo else "Audit Summary"
    print_panel(title, "\n".join(lines), style="green")


def show_findings(session: AuditSession) -> None:
    table = create_table(title="Audit Findings")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Sel", width=3)
    table.add_column("Category", width=10)
    table.add_column("Conf.", width=5)
    table.add_column("Name", style="white", width=36)
    table.add_column("Size", style="green", width=12)
    table.add_column("Modified", style="yellow", width=10)
    table.add_column("Reason")

    for number, candidate in enumerate(session.candidates, start=1):
        file = session.file(candidate.file_id)
        if file is None:
            continue
        style = CATEGORY_STYLES[candidate.category]
        table.add_row(
            str(number),
            "[green]✓[/green]" if session.is_selected(file.file_id) else "",
            f"[{style}]{candidate.category.value}[/{style}]",
            f"{candidate.confidence:.2f}",
            truncate(file.name, 36),
            format_size(file.size),
            file.modified_time.strftime("%Y-%m-%d"),
            candidate.reason,
        )

    console.print(table)
    stats = session.stats()
    print_info(
        f"Selected {len(session.selection)}/{len(session.candidates)} "
        f"({format_total(stats.selected_bytes, stats.unknown_size_selected)})"
    )


def review_loop(session: AuditSession) -> bool:
    """Let the user adjust the selection.

    Returns:
        True if the user asked to purge
    """
    while True:
        show_findings(session)
        choice = typer.prompt(REVIEW_PROMPT, default="p").strip().lower()

        if choice in ("p", "purge"):
            if not session.selection:
                print_warning("Nothing selected.")
                continue
            return True
        if choice in ("q", "quit"):
            return False
        if choice in ("a", "all"):
            session.select_all()
            continue
        if choice in ("c", "clear"):
            session.clear_selection()
            continue

        try:
            indices = parse_selection(choice, len(session.candidates))
        except ValueError as e:
            print_error(str(e))
            continue

        candidates = session.candidates
        for index in indices:
            session.toggle_selection(candidates[index].file_id)


def run_purge(session: AuditSession) -> RemediationResult:
    """Remediate with a progress bar. Ctrl-C stops submitting new files.

    The cancel event exists before the purge starts, so an interrupt that
    arrives while the worker is still starting up is not lost.
    """
    progress = create_progress()
    cancel = Event()

    with progress:
        task = progress.add_task("[cyan]Trashing files...", total=len(session.selection))
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="purge")
        future = executor.submit(
            session.remediate,
            lambda file_id, ok: progress.update(task, advance=1),
            cancel,
        )

        try:
            while True:
                try:
                    result = future.result(timeout=0.2)
                    break
                except FutureTimeoutError:
                    continue
        except KeyboardInterrupt:
            print_warning("Stopping after in-flight files finish...")
            cancel.set()
            result = future.result()
        finally:
            executor.shutdown(wait=True)

        progress.update(task, description="[green]Purge complete!")

    return result


def show_result(session: AuditSession, result: RemediationResult) -> None:
    if session.is_demo:
        print_info("Demo files are never sent to Drive; trashing was simulated.")

    if result.succeeded:
        print_success(f"Moved {len(result.succeeded)} files to the trash")
    if result.failed:
        print_warning(f"Failed to trash {len(result.failed)} files")
        table = create_table()
        table.add_column("File ID", style="cyan", width=33)
        table.add_column("Reason", style="red", width=16)
        table.add_column("Message")
        for file_id, failure in result.failed.items():
            table.add_row(file_id, failure.reason.value, failure.message)
        console.print(table)
        print_info("Failed files stay selected for another attempt.")
    if result.cancelled:
        print_warning(f"{len(result.cancelled)} files were not attempted")


def report_error(error: Optional[AuditError]) -> None:
    if error is None:
        print_error("Audit failed")
        return

    print_error(error.message)
    if error.kind == ErrorKind.AUTHORIZATION:
        print_info("Run 'drive-purge auth login' to reconnect your Drive.")
    elif error.kind in (ErrorKind.SOURCE_UNAVAILABLE, ErrorKind.CLASSIFICATION):
        print_info("This is usually temporary. Run the audit again to retry.")


def export_report(session: AuditSession, report: Optional[Path], format: str) -> None:
    if report is None:
        return

    exporter = ReportExporter()
    if format == "json":
        exporter.export_json(session, report)
    else:
        exporter.export_csv(session, report)
    print_success(f"Exported findings to: {report}")


@audit_app.command()
def audit(
    demo: bool = typer.Option(
        False, "--demo", help="Audit a built-in sample file set instead of your Drive"
    ),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", min=0.0, max=1.0,
        help="Pre-select candidates above this confidence [default: from settings]",
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Purge the pre-selected files without reviewing"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show findings without trashing anything"
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", "-o", help="Export findings to this file"
    ),
    format: str = typer.Option(
        "csv", "--format", "-f", help="Report format: csv or json"
    ),
) -> None:
    """Find cleanup candidates and move the chosen ones to the trash."""
    settings = get_settings()
    format = format.lower()

    if format not in ("csv", "json"):
        print_error(f"Invalid format: {format}. Must be 'csv' or 'json'")
        raise typer.Exit(1)

    try:
        classifier = build_classifier(settings)
        source = DemoFileSource() if demo else build_source(settings)
    except (AuthenticationError, ClassificationError, ConfigError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    status_display = console.status("Starting audit...")

    def on_change(current: AuditSession) -> None:
        if current.phase in (AuditPhase.SCANNING, AuditPhase.ANALYZING):
            status_display.update(f"[cyan]{current.status_message}")

    session = AuditSession(
        source,
        classifier,
        engine_factory=lambda: RemediationEngine(settings.remediation_workers),
        confidence_threshold=settings.confidence_threshold if threshold is None else threshold,
        on_change=on_change,
    )

    with status_display:
        reviewing = session.start_scan()

    if not reviewing:
        report_error(session.last_error)
        raise typer.Exit(1)

    show_summary(session)

    if not session.candidates:
        print_success("Nothing to clean up!")
        export_report(session, report, format)
        return

    if dry_run:
        show_findings(session)
        print_warning("[DRY RUN] No files were moved to the trash")
        export_report(session, report, format)
        return

    while True:
        if yes:
            show_findings(session)
            purge = bool(session.selection)
            if not purge:
                print_info("No candidates are above the confidence threshold.")
        else:
            purge = review_loop(session)
            if purge and not session.is_demo:
                purge = typer.confirm(
                    f"\nMove {len(session.selection)} files to the trash?",
                    default=False,
                )

        if not purge:
            print_info("No files were moved to the trash.")
            export_report(session, report, format)
            return

        result = run_purge(session)
        show_result(session, result)

        if yes or not result.failed:
            break
        if not typer.confirm("Review the remaining candidates and retry?", default=False):
            break
        session.resume_review()

    export_report(session, report, format)

    if session.last_error and session.last_error.kind == ErrorKind.AUTHORIZATION:
        report_error(session.last_error)
        raise typer.Exit(1)
    if result.all_failed:
        raise typer.Exit(1)
