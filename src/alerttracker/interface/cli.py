"""
CLI main entry point.

Top-level invocation boundary: fatal errors are printed and forwarded to
the operator address; lock contention exits with code 2 and no alert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import typer

from alerttracker.application.container import Container
from alerttracker.application.diagnostics import run_diagnostics, scheduled_skip_reason
from alerttracker.application.digest_service import STATUS_PREVIEW, STATUS_SKIPPED, DigestService
from alerttracker.application.error_notifier import ErrorNotifier
from alerttracker.application.push_service import PushService
from alerttracker.application.sync_service import SyncService
from alerttracker.domain.errors import RunInProgressError
from alerttracker.infrastructure.config_loader import ConfigLoader
from alerttracker.infrastructure.logging_config import setup_logging
from alerttracker.infrastructure.mailer import SmtpMailer
from alerttracker.interface.formatted_console import ConsoleRenderer

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config") / "tracker_config.json"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LOCKED = 2

renderer = ConsoleRenderer()

app = typer.Typer(
    name="alerttracker",
    help="Mirror an external alerts sheet, track responses, push comments back.",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@dataclass
class CliState:
    config_path: Path


ScheduledOption = typer.Option(
    False, "--scheduled", help="Invoked by a scheduler (honors weekdays_only)."
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="Tracker config JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on the console."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log (DEBUG) to this file."),
):
    """Alerts tracker: sync, push, digest."""
    setup_logging(logging.DEBUG if verbose else logging.INFO, log_file)
    ctx.obj = CliState(config_path=config)


def load_container(state: CliState) -> Container:
    loader = ConfigLoader(state.config_path.parent)
    config = loader.load_tracker_config(state.config_path.name)
    return Container(config)


def fallback_notifier(state: CliState) -> ErrorNotifier:
    """Notifier built from whatever the unloadable config still provides."""
    loader = ConfigLoader(state.config_path.parent)
    error_email, smtp = loader.load_notification_settings(state.config_path.name)
    return ErrorNotifier(SmtpMailer(smtp), error_email)


def run_operation(
    ctx: typer.Context,
    operation: str,
    action: Callable[[Container], None],
    scheduled: bool = False,
) -> None:
    """Load config, apply the scheduled guard, run, and handle fatal errors."""
    container: Container | None = None
    try:
        container = load_container(ctx.obj)
        if scheduled:
            reason = scheduled_skip_reason(container)
            if reason:
                renderer.info(f"Scheduled {operation} skipped: {reason}")
                return
        action(container)
    except RunInProgressError as e:
        renderer.warning(f"{operation}: already running. {e}")
        raise typer.Exit(EXIT_LOCKED) from None
    except Exception as e:  # pylint: disable=broad-except
        logger.exception("%s failed", operation)
        renderer.error(f"{operation} failed: {e}")
        if container is not None:
            notifier = ErrorNotifier(container.mailer, container.config.error_email)
        else:
            notifier = fallback_notifier(ctx.obj)
        notifier.notify(operation, e)
        raise typer.Exit(EXIT_FAILED) from None
    finally:
        if container is not None:
            container.close()


def _mode(scheduled: bool) -> str:
    return "scheduled" if scheduled else "manual"


def _do_sync(container: Container, mode: str) -> None:
    renderer.header("Sync")
    renderer.step(f"Reading '{container.config.source_tab}' from {container.config.source_path}")
    outcome = SyncService(container).sync(mode=mode)
    if not outcome.completed:
        renderer.warning(f"Sync skipped: {outcome.note}")
        return
    renderer.render_sync_stats(outcome.stats)
    renderer.success(f"Sync {outcome.run_id} completed at {outcome.sync_time}")


def _do_push(container: Container, mode: str) -> None:
    renderer.header("Push")
    result = PushService(container).push(mode=mode)
    renderer.render_push_summary(result.summary)


def _do_email(container: Container, preview: Optional[Path] = None) -> None:
    renderer.header("Daily Digest")
    result = DigestService(container).send(preview_path=preview)
    if result.status == STATUS_PREVIEW:
        renderer.success(f"Preview written to {result.preview_path}")
    elif result.status == STATUS_SKIPPED:
        renderer.warning(f"Digest not sent: {result.error}")
    else:
        renderer.success(f"'{result.subject}' sent to {len(result.recipients)} recipient(s)")
    renderer.info(", ".join(f"{k}: {v}" for k, v in result.counts.items()))


@app.command()
def init(ctx: typer.Context):
    """Create the tracker tabs and history schema if missing."""

    def action(container: Container) -> None:
        created = container.tracker.ensure()
        container.history.initialize_schema()
        if created:
            renderer.success(f"Created: {', '.join(created)}")
        else:
            renderer.info("Tracker already initialized")

    run_operation(ctx, "init", action)


@app.command()
def sync(ctx: typer.Context, scheduled: bool = ScheduledOption):
    """Mirror the source tab into Raw/Working and recompute groups."""
    run_operation(ctx, "sync", lambda c: _do_sync(c, _mode(scheduled)), scheduled)


@app.command()
def push(ctx: typer.Context, scheduled: bool = ScheduledOption):
    """Append ready responses to the source comment column."""
    run_operation(ctx, "push", lambda c: _do_push(c, _mode(scheduled)), scheduled)


@app.command("sync-push")
def sync_push(ctx: typer.Context, scheduled: bool = ScheduledOption):
    """Sync, then push."""

    def action(container: Container) -> None:
        _do_sync(container, _mode(scheduled))
        _do_push(container, _mode(scheduled))

    run_operation(ctx, "sync-push", action, scheduled)


@app.command()
def email(
    ctx: typer.Context,
    preview: Optional[Path] = typer.Option(
        None, "--preview", help="Write the HTML here instead of sending."
    ),
    scheduled: bool = ScheduledOption,
):
    """Send the daily digest of open alerts."""
    run_operation(ctx, "email", lambda c: _do_email(c, preview), scheduled)


@app.command("sync-email")
def sync_email(ctx: typer.Context, scheduled: bool = ScheduledOption):
    """Sync, then send the daily digest."""

    def action(container: Container) -> None:
        _do_sync(container, _mode(scheduled))
        _do_email(container)

    run_operation(ctx, "sync-email", action, scheduled)


@app.command("refresh-templates")
def refresh_templates(ctx: typer.Context):
    """Re-apply the Template dropdown from the Templates tab."""

    def action(container: Container) -> None:
        count = container.tracker.refresh_template_dropdown()
        renderer.success(f"Template dropdown refreshed ({count} labels)")

    run_operation(ctx, "refresh-templates", action)


@app.command()
def diagnostics(ctx: typer.Context):
    """Show config, source, tracker and history health."""

    def action(container: Container) -> None:
        report = run_diagnostics(container)
        renderer.render_diagnostics(report)
        if not report.healthy:
            renderer.warning("One or more checks failed")

    run_operation(ctx, "diagnostics", action)


def main() -> int:
    """
    Main entry point for the alerttracker CLI.

    Returns:
        int: Exit code
    """
    try:
        app()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_FAILED
    return EXIT_OK
