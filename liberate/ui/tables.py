"""Table rendering utilities for CLI output."""

from collections import Counter

from rich.table import Table

from liberate.domain.models import DetectedAsset, PipelineRun, TransferOutcome

KIND_COLORS = {
    "function_handler": "green",
    "table": "blue",
    "access_policy": "magenta",
    "config_reference": "yellow",
}


def create_asset_table(assets: list[DetectedAsset]) -> Table:
    """Create a table for displaying detected assets.

    Args:
        assets: Detected assets in classification order

    Returns:
        Rich Table object ready for display
    """
    table = Table(title=f"Detected assets ({len(assets)} total)")
    table.add_column("Kind", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Source", style="dim")
    table.add_column("Details", style="dim")

    for asset in assets:
        color = KIND_COLORS.get(asset.kind.value, "white")
        table.add_row(
            f"[{color}]{asset.kind.value}[/{color}]",
            asset.name,
            asset.source_path,
            asset.details or "-",
        )

    return table


def create_outcome_table(outcomes: list[TransferOutcome]) -> Table:
    """Create a table of per-file transfer outcomes."""
    table = Table(title="Transfer outcomes")
    table.add_column("Path", style="white")
    table.add_column("Result")
    table.add_column("Error", style="dim")

    for outcome in outcomes:
        table.add_row(
            outcome.relative_path,
            "[green]ok[/green]" if outcome.succeeded else "[red]failed[/red]",
            outcome.error_detail or "-",
        )

    return table


def create_runs_table(runs: dict[str, PipelineRun]) -> Table:
    """Create a table of stored runs keyed by source."""
    table = Table(title="Liberation runs")
    table.add_column("Source", style="cyan")
    table.add_column("Run", style="dim")
    table.add_column("Stage", no_wrap=True)
    table.add_column("Assets", justify="right")
    table.add_column("Routes", justify="right", style="green")
    table.add_column("Middlewares", justify="right", style="magenta")

    for source, run in sorted(runs.items()):
        conversion = run.conversion
        table.add_row(
            source,
            run.run_id[:8],
            run.stage.value,
            str(len(run.detected_assets)),
            f"{sum(r.ok for r in conversion.routes)}/{len(conversion.routes)}" if conversion else "-",
            str(sum(m.ok for m in conversion.middlewares)) if conversion else "-",
        )

    return table


def format_kind_summary(assets: list[DetectedAsset]) -> str:
    """Create a summary string of asset counts by kind.

    Returns:
        Formatted summary string like "2 function_handler, 3 table"
    """
    kind_counts = Counter(asset.kind.value for asset in assets)
    return ", ".join(f"{count} {kind}" for kind, count in sorted(kind_counts.items()))
