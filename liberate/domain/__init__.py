"""Domain models and business logic."""

from liberate.domain.models import (
    CONFIG_REFERENCE_DETAIL,
    AssetKind,
    ConversionResult,
    DetectedAsset,
    FileSet,
    FtpCredentials,
    MigrationOptions,
    OrchestratedTarget,
    PartialResult,
    PipelineRun,
    ResultKind,
    ResultStatus,
    Stage,
    StageEvent,
    TransferMode,
    TransferOutcome,
    TransferSummary,
)
from liberate.domain.types import (
    ConversionService,
    RemoteSession,
    StageObserver,
    TransferProgressHook,
)

__all__ = [
    "CONFIG_REFERENCE_DETAIL",
    "AssetKind",
    "ConversionResult",
    "DetectedAsset",
    "FileSet",
    "FtpCredentials",
    "MigrationOptions",
    "OrchestratedTarget",
    "PartialResult",
    "PipelineRun",
    "ResultKind",
    "ResultStatus",
    "Stage",
    "StageEvent",
    "TransferMode",
    "TransferOutcome",
    "TransferSummary",
    "ConversionService",
    "RemoteSession",
    "StageObserver",
    "TransferProgressHook",
]
