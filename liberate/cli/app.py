"""Typer-based CLI for the liberation pipeline."""

import asyncio
import logging
import signal
from contextlib import suppress
from pathlib import Path

import orjson
import typer
from rich.console import Console
from rich.logging import RichHandler

from liberate.config import Settings
from liberate.domain.errors import InputError, LiberationError
from liberate.domain.models import (
    FileSet,
    FtpCredentials,
    MigrationOptions,
    OrchestratedTarget,
    Stage,
    TransferMode,
    count_assets,
)
from liberate.operations.classify import classify
from liberate.operations.convert import HttpConversionService
from liberate.operations.ingest import load_archive, load_source
from liberate.operations.package import write_archive
from liberate.orchestrators import Liberation, Transfer
from liberate.state.manager import RunStateManager
from liberate.ui import Reporter
from liberate.ui.tables import create_runs_table, format_kind_summary

app = typer.Typer(help="Liberate a project from its hosting platform")
runs_app = typer.Typer(help="Inspect stored liberation runs")
app.add_typer(runs_app, name="runs")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Build the process configuration; show help when no subcommand is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    config = Settings()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    ctx.obj = config


def _config(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings()


def _emit(payload: dict) -> None:
    """Print a machine-readable summary on stdout."""
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


def _source_key(source: Path) -> str:
    return str(Path(source).resolve())


def _load(source: Path, reporter: Reporter) -> FileSet:
    try:
        return load_source(source)
    except InputError as e:
        reporter.report_error(str(e))
        raise typer.Exit(1) from e


@app.command()
def scan(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Project directory or zip archive"),
):
    """Classify a project and list its platform-coupled assets."""
    config = _config(ctx)
    reporter = Reporter()

    file_set = _load(source, reporter)
    assets = classify(file_set, config)

    reporter.report_assets(assets)
    if assets:
        reporter.console.print(f"\n[bold]Summary:[/bold] {format_kind_summary(assets)}")

    _emit(
        {
            "source": _source_key(source),
            "files": len(file_set),
            "counts": count_assets(assets),
            "assets": [asset.model_dump(mode="json") for asset in assets],
        }
    )


@app.command()
def convert(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Project directory or zip archive"),
    handlers: bool = typer.Option(True, "--handlers/--no-handlers", help="Convert function handlers"),
    policies: bool = typer.Option(True, "--policies/--no-policies", help="Extract access policies"),
    manifest: bool = typer.Option(True, "--manifest/--no-manifest", help="Keep the generated manifest"),
):
    """Analyze and convert a project, storing the run for `pack`."""
    config = _config(ctx)
    reporter = Reporter()
    controller = Liberation(config, HttpConversionService(config), observers=[reporter.on_stage_event])

    file_set = _load(source, reporter)
    options = MigrationOptions(
        convert_handlers=handlers,
        extract_policies=policies,
        generate_manifest=manifest,
    )

    try:
        run = controller.ingest(file_set)
    except InputError as e:
        reporter.report_error(str(e))
        raise typer.Exit(1) from e

    controller.analyze(run)
    controller.configure(run, options)
    asyncio.run(controller.convert(run))

    for warning in run.warnings:
        reporter.report_warning(warning)
    if run.error:
        reporter.report_error(run.error)

    with RunStateManager(config.state_file) as state:
        state.save_run(_source_key(source), run)

    conversion = run.conversion
    _emit(
        {
            "run_id": run.run_id,
            "stage": run.stage.value,
            "counts": run.asset_counts(),
            "routes": {
                "converted": sum(r.ok for r in conversion.routes) if conversion else 0,
                "total": len(conversion.routes) if conversion else 0,
            },
            "middlewares": sum(m.ok for m in conversion.middlewares) if conversion else 0,
            "failed": [item.name for item in conversion.failed_items] if conversion else [],
            "warnings": run.warnings,
            "error": run.error,
        }
    )

    if run.stage == Stage.FAILED:
        raise typer.Exit(1)


@app.command()
def pack(
    ctx: typer.Context,
    source: Path = typer.Argument(..., help="Project directory or zip archive already converted"),
    output: Path = typer.Option(..., "--output", "-o", help="Archive to write"),
    platform_folder: bool = typer.Option(
        True, "--platform-folder/--no-platform-folder", help="Copy the original platform folder"
    ),
):
    """Package a converted project into a deployable archive."""
    config = _config(ctx)
    reporter = Reporter()
    controller = Liberation(config)

    with RunStateManager(config.state_file) as state:
        run = state.get_run(_source_key(source))

    if run is None or run.stage != Stage.EXPORTED:
        reporter.report_error(f"No converted run for {source}; run `liberate convert` first")
        raise typer.Exit(1)

    run.source = _load(source, reporter)
    if run.options is not None:
        run.options.include_platform_folder = platform_folder
    try:
        files = controller.package(run)
    except LiberationError as e:
        reporter.report_error(str(e))
        raise typer.Exit(1) from e

    archive = write_archive(files, output)
    _emit(
        {
            "run_id": run.run_id,
            "archive": str(archive),
            "files": len(files),
            "bytes": files.total_size,
        }
    )


async def _dispatch(transfer: Transfer, files: FileSet, target, reporter: Reporter):
    """Run a dispatch, turning Ctrl-C into a cancel between files."""
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    with suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel.set)

    try:
        with reporter.transfer_context():
            return await transfer.dispatch(
                files, target, cancel=cancel, progress_hook=reporter.create_transfer_progress_hook()
            )
    finally:
        with suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


@app.command()
def deploy(
    ctx: typer.Context,
    archive: Path = typer.Argument(..., help="Archive produced by `pack`"),
    target: TransferMode = typer.Option(..., "--target", "-t", help="ftp or orchestrated"),
    host: str = typer.Option(None, "--host", help="FTP host"),
    user: str = typer.Option(None, "--user", help="FTP username"),
    password: str = typer.Option(
        None, "--password", envvar="LIBERATE_FTP_PASSWORD", help="FTP password"
    ),
    port: int = typer.Option(21, "--port", help="FTP port"),
    secure: bool = typer.Option(False, "--secure", help="Use FTP over TLS"),
    remote_path: str = typer.Option("/public_html", "--remote-path", help="Remote root directory"),
    server_id: str = typer.Option(None, "--server-id", help="Target server id"),
    server_address: str = typer.Option(None, "--server-address", help="Target server address"),
    project_name: str = typer.Option(None, "--project-name", help="Deployed project name"),
    token: str = typer.Option(None, "--token", envvar="LIBERATE_DEPLOY_TOKEN", help="Bearer token"),
):
    """Send a packaged archive to a remote host."""
    config = _config(ctx)
    reporter = Reporter()
    transfer = Transfer(config)

    try:
        files = load_archive(archive)
        if target == TransferMode.FTP:
            destination = FtpCredentials(
                host=host or "",
                username=user or "",
                password=password or "",
                port=port,
                secure=secure,
                remote_path=remote_path,
            )
        else:
            destination = OrchestratedTarget(
                server_id=server_id or "",
                server_address=server_address or "",
                project_name=project_name or archive.stem,
                token=token or "",
            )
        summary = asyncio.run(_dispatch(transfer, files, destination, reporter))
    except InputError as e:
        reporter.report_error(str(e))
        raise typer.Exit(1) from e

    reporter.report_summary(summary)
    _emit(summary.model_dump(mode="json") | {"summary": summary.summary_line})

    if summary.succeeded_count == 0:
        raise typer.Exit(1)


@runs_app.command("list")
def runs_list(ctx: typer.Context):
    """Show stored runs."""
    config = _config(ctx)
    reporter = Reporter()

    with RunStateManager(config.state_file) as state:
        runs = dict(state.data.runs)

    if not runs:
        reporter.console.print("[dim]No stored runs[/dim]")
        return

    Console().print(create_runs_table(runs))


if __name__ == "__main__":
    app()
