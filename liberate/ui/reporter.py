"""Reporter for pipeline output and progress tracking."""

from contextlib import contextmanager

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from liberate.domain.models import DetectedAsset, Stage, StageEvent, TransferSummary
from liberate.ui.tables import create_asset_table, create_outcome_table

STAGE_STYLES = {
    Stage.UPLOADED: "blue",
    Stage.ANALYZED: "cyan",
    Stage.CONFIGURED: "cyan",
    Stage.CONVERTING: "yellow",
    Stage.EXPORTED: "green",
    Stage.FAILED: "red",
}


class Reporter:
    """Terminal reporter writing to stderr so stdout stays machine-readable."""

    FAILURE_PREVIEW_LIMIT = 10

    def __init__(self, silent: bool = False, console: Console | None = None) -> None:
        """Initialize reporter.

        Args:
            silent: If True, suppress all output (for testing/automation).
            console: Optional console, defaults to a stderr console.
        """
        self.silent = silent
        self.console = console or Console(stderr=True, quiet=silent)
        self.events: list[StageEvent] = []
        self._transfer_progress: Progress | None = None
        self._transfer_task_id: int | None = None

    def on_stage_event(self, event: StageEvent) -> None:
        """Stage observer: record and print each transition."""
        self.events.append(event)
        if self.silent:
            return

        style = STAGE_STYLES.get(event.stage, "white")
        line = f"[{style}]● {event.stage.value}[/{style}]"
        if event.message:
            line += f" [dim]{event.message}[/dim]"
        self.console.print(line)

    @contextmanager
    def transfer_context(self):
        """Context manager for transfer progress display."""
        if self.silent:
            yield None
            return

        progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )
        self._transfer_progress = progress
        with progress:
            self._transfer_task_id = progress.add_task("Uploading", total=None)
            try:
                yield progress
            finally:
                self._transfer_progress = None
                self._transfer_task_id = None

    def create_transfer_progress_hook(self):
        """Create a progress hook for file transfers."""
        if self.silent:

            def hook(path: str, current: int, total: int) -> None:
                pass

            return hook

        if self._transfer_progress is None:
            raise RuntimeError("Must be called within transfer_context")

        def hook(path: str, current: int, total: int) -> None:
            if self._transfer_progress is None or self._transfer_task_id is None:
                return
            self._transfer_progress.update(
                self._transfer_task_id, total=total, completed=current, description=path
            )

        return hook

    def report_assets(self, assets: list[DetectedAsset]) -> None:
        if self.silent:
            return
        if not assets:
            self.console.print("[dim]No platform assets detected[/dim]")
            return
        self.console.print(create_asset_table(assets))

    def report_summary(self, summary: TransferSummary) -> None:
        """Report the outcome of a transfer."""
        if self.silent:
            return

        color = "green" if summary.failed_count == 0 and summary.succeeded_count else "yellow"
        if summary.succeeded_count == 0:
            color = "red"
        self.console.print(
            f"\n[bold]{summary.target}[/bold] ({summary.provider}) - "
            f"[{color}]{summary.summary_line}[/{color}]"
        )

        failures = [outcome for outcome in summary.outcomes if not outcome.succeeded]
        if failures:
            self.console.print(create_outcome_table(failures[: self.FAILURE_PREVIEW_LIMIT]))
            remaining = len(failures) - self.FAILURE_PREVIEW_LIMIT
            if remaining > 0:
                self.console.print(f"      ... (+{remaining} more)")
        if summary.cancelled:
            self.report_warning("Transfer cancelled before all files were sent")

    def report_warning(self, message: str) -> None:
        """Report a warning message."""
        if not self.silent:
            self.console.print(f"\n[yellow]Warning:[/yellow] {message}")

    def report_error(self, message: str) -> None:
        """Report an error message."""
        if not self.silent:
            self.console.print(f"\n[red]Error:[/red] {message}")
