"""Liberate SDK.

A Python library for detecting platform-bound constructs in a project,
converting them into portable code, packaging the result and shipping it
to a remote host.

Quick Start (High-Level API):
    >>> from pathlib import Path
    >>> from liberate import scan_project
    >>> scan_project(Path("my-project"))  # Lists handlers, tables and policies

Quick Start (SDK API):
    >>> import asyncio
    >>> from liberate import Liberation, MigrationOptions, Settings, load_source
    >>> config = Settings(conversion_api_url="https://convert.example.com")
    >>> controller = Liberation(config)
    >>> run = asyncio.run(controller.run(load_source(Path("my-project"))))
    >>> files = controller.package(run)

Configuration:
    >>> import os
    >>> os.environ["LIBERATE_CONVERSION_TIMEOUT"] = "60"
    >>> config = Settings()  # Loads from environment

Public API:
    High-level functions:
        - scan_project: Classify a directory or archive
        - liberate_project: Run the pipeline and package the result

    Orchestrators:
        - Liberation: Pipeline controller (stage machine)
        - Conversion: Conversion orchestrator
        - Transfer: Transfer dispatcher

    Configuration:
        - Settings: Configuration model

    Domain Models:
        - FileSet, DetectedAsset, ConversionResult, PartialResult
        - MigrationOptions, PipelineRun, Stage, StageEvent
        - FtpCredentials, OrchestratedTarget, TransferSummary, TransferOutcome

    State Management:
        - RunStateManager: Run state persistence

    Reporters (for custom UIs):
        - Reporter: Progress reporter (use silent=True for headless mode)
"""

from pathlib import Path

# Configuration
from liberate.config import Settings

# Domain models
from liberate.domain import (
    AssetKind,
    ConversionResult,
    DetectedAsset,
    FileSet,
    FtpCredentials,
    MigrationOptions,
    OrchestratedTarget,
    PartialResult,
    PipelineRun,
    Stage,
    StageEvent,
    TransferOutcome,
    TransferSummary,
)
from liberate.domain.types import ConversionService, StageObserver

# Operations
from liberate.operations import classify, load_source, pack, write_archive

# Orchestrators
from liberate.orchestrators import Conversion, Liberation, Transfer

# State management
from liberate.state.manager import RunStateManager

# UI Reporters
from liberate.ui import Reporter

__all__ = [
    # High-level functions
    "scan_project",
    "liberate_project",
    # Operations
    "classify",
    "load_source",
    "pack",
    "write_archive",
    # Orchestrators
    "Liberation",
    "Conversion",
    "Transfer",
    # Configuration
    "Settings",
    # Domain models
    "AssetKind",
    "FileSet",
    "DetectedAsset",
    "ConversionResult",
    "PartialResult",
    "MigrationOptions",
    "PipelineRun",
    "Stage",
    "StageEvent",
    "FtpCredentials",
    "OrchestratedTarget",
    "TransferSummary",
    "TransferOutcome",
    # State management
    "RunStateManager",
    # Reporters
    "Reporter",
]

# Version
__version__ = "0.1.0"


# High-level convenience functions
def scan_project(source: Path, config: Settings | None = None) -> list[DetectedAsset]:
    """Classify a project directory or zip archive.

    Args:
        source: Project directory or zip archive
        config: Layout configuration. If None, uses Settings().

    Returns:
        Detected assets in classification order
    """
    return classify(load_source(source), config)


async def liberate_project(
    file_set: FileSet,
    options: MigrationOptions | None = None,
    config: Settings | None = None,
    service: ConversionService | None = None,
    observers: list[StageObserver] | None = None,
) -> tuple[PipelineRun, FileSet | None]:
    """Run the pipeline end to end (high-level convenience function).

    Args:
        file_set: Ingested project files
        options: Migration options. Defaults to MigrationOptions().
        config: Pipeline configuration. If None, uses Settings().
        service: Conversion service. Defaults to the HTTP client.
        observers: Stage observers

    Returns:
        The finished run and its packaged files, or None when the run failed

    Example:
        >>> import asyncio
        >>> from liberate import liberate_project, load_source
        >>> run, files = asyncio.run(liberate_project(load_source(Path("app.zip"))))
    """
    controller = Liberation(config, service, observers)
    run = await controller.run(file_set, options)
    if run.stage != Stage.EXPORTED:
        return run, None
    return run, controller.package(run)
