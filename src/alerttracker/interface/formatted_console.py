"""
Formatted Console Output - Rich Renderer for CLI.

Centralizes how the CLI prints headers, status lines and run summaries.
"""

from __future__ import annotations

import os

from rich.console import Console
from rich.table import Table

from alerttracker.application.diagnostics import DiagnosticsReport
from alerttracker.domain.change_types import PushSummary, SyncStats


class Icons:
    """UTF-8 Icons."""

    CHECK = "✅"
    CROSS = "❌"
    WARN = "⚠️"
    INFO = "ℹ️"
    CHART = "📊"
    ARROW = "➜"


class ConsoleRenderer:
    """Renders formatted output to the console."""

    def __init__(self, console: Console | None = None):
        no_color = bool(os.environ.get("NO_COLOR"))
        self.console = console or Console(no_color=no_color, highlight=False)

    def header(self, title: str) -> None:
        self.console.print()
        self.console.rule(f"[bold cyan]{title}[/]", align="left")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]{Icons.INFO} {message}[/]")

    def success(self, message: str) -> None:
        self.console.print(f"[green]{Icons.CHECK} {message}[/]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]{Icons.WARN} {message}[/]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{Icons.CROSS} {message}[/]")

    def step(self, message: str) -> None:
        self.console.print(f"[cyan]{Icons.ARROW} {message}[/]")

    def render_sync_stats(self, stats: SyncStats) -> None:
        """Group tallies for one sync."""
        table = Table(title=f"{Icons.CHART} Sync Summary", show_header=False, box=None)
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right")
        table.add_row("Rows fetched", str(stats.fetched))
        table.add_row("Blank rows skipped", str(stats.skipped_blank))
        table.add_row("Rows mirrored", str(stats.mirrored))
        table.add_row("[blue]New[/]", str(stats.new))
        table.add_row("[yellow]Updated[/]", str(stats.updated))
        table.add_row("Ongoing", str(stats.ongoing))
        table.add_row("[green]Resolved[/]", str(stats.resolved))
        if stats.changed_after_resolution:
            table.add_row(
                "[dark_orange]Changed after resolution[/]",
                str(stats.changed_after_resolution),
            )
        self.console.print(table)

    def render_push_summary(self, summary: PushSummary) -> None:
        """Counters and per-row errors for one push."""
        if not summary.writeback_enabled:
            self.warning("Writeback disabled in config; nothing was pushed.")
            return
        table = Table(title=f"{Icons.CHART} Push Summary ({summary.run_id})", show_header=False, box=None)
        table.add_column("Metric", style="bold")
        table.add_column("Count", justify="right")
        table.add_row("Considered", str(summary.considered))
        table.add_row("[green]Pushed[/]", str(summary.pushed))
        table.add_row("Skipped (no change)", str(summary.skipped_no_change))
        table.add_row("Skipped (not ready)", str(summary.skipped_not_ready))
        table.add_row("[red]Errors[/]", str(len(summary.errors)))
        self.console.print(table)
        for err in summary.errors:
            self.error(err)

    def render_diagnostics(self, report: DiagnosticsReport) -> None:
        table = Table(title="Diagnostics")
        table.add_column("Check", style="bold")
        table.add_column("Status")
        table.add_column("Detail")
        for check in report.checks:
            table.add_row(
                check.name,
                "[green]OK[/]" if check.ok else "[red]FAIL[/]",
                check.detail,
            )
        self.console.print(table)

        if report.sheet_counts:
            counts = Table(title="Tracker Tabs")
            counts.add_column("Tab", style="bold")
            counts.add_column("Rows", justify="right")
            for name, count in report.sheet_counts.items():
                counts.add_row(name, "[red]missing[/]" if count is None else str(count))
            self.console.print(counts)

        if report.last_push:
            p = report.last_push
            self.info(
                f"Last push {p['run_id']} at {p['timestamp']} ({p['mode']}): {p['notes']}"
            )

        config = Table(title="Configuration", show_header=False)
        config.add_column("Key", style="dim")
        config.add_column("Value")
        for key, value in report.config.items():
            config.add_row(key, str(value))
        self.console.print(config)
