"""Domain models for the liberation pipeline."""

import asyncio
from collections.abc import Iterator, Mapping
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, SecretStr

CONFIG_REFERENCE_DETAIL = "referenced in config"


class FileSet(Mapping[str, bytes]):
    """Immutable ordered mapping of relative paths to raw content.

    Used both for the ingested project and for packaged output. Text content
    is stored as UTF-8 bytes; insertion order is preserved.
    """

    __slots__ = ("_files",)

    def __init__(self, files: Mapping[str, bytes | str] | None = None):
        normalized: dict[str, bytes] = {}
        for path, content in (files or {}).items():
            _check_relative_path(path)
            if isinstance(content, str):
                content = content.encode("utf-8")
            normalized[path] = bytes(content)
        self._files = normalized

    def __getitem__(self, path: str) -> bytes:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __repr__(self) -> str:
        return f"FileSet({len(self._files)} files)"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FileSet):
            return list(self._files.items()) == list(other._files.items())
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def text(self, path: str) -> str:
        """Return the content of ``path`` decoded as UTF-8."""
        return self._files[path].decode("utf-8", errors="replace")

    @property
    def total_size(self) -> int:
        return sum(len(content) for content in self._files.values())


def _check_relative_path(path: str) -> None:
    if not path or path.startswith("/") or "\\" in path:
        raise ValueError(f"Not a forward-slash relative path: {path!r}")
    segments = path.split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        raise ValueError(f"Path has empty or relative segments: {path!r}")


class AssetKind(str, Enum):
    """Kind of platform-coupled construct found in a project."""

    FUNCTION_HANDLER = "function_handler"
    TABLE = "table"
    ACCESS_POLICY = "access_policy"
    CONFIG_REFERENCE = "config_reference"


class DetectedAsset(BaseModel):
    """One classified construct and the file it came from."""

    model_config = ConfigDict(frozen=True)

    kind: AssetKind
    name: str
    source_path: str  # Expected handler path for config-only functions
    details: str | None = None

    @property
    def is_config_reference(self) -> bool:
        """Return True for functions declared in config with no handler file."""
        return self.kind == AssetKind.FUNCTION_HANDLER and self.details == CONFIG_REFERENCE_DETAIL


class ResultKind(str, Enum):
    """Kind of portable artifact produced by conversion."""

    ROUTE = "route"
    MIDDLEWARE = "middleware"


class ResultStatus(str, Enum):
    """Outcome of converting a single item."""

    OK = "ok"
    FAILED = "failed"


class ConversionResult(BaseModel):
    """Converted artifact, or the record of a failed conversion."""

    kind: ResultKind
    name: str
    content: str = ""
    status: ResultStatus = ResultStatus.OK
    error_detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK


class PartialResult(BaseModel):
    """Everything the conversion stage produced, including failures."""

    routes: list[ConversionResult] = Field(default_factory=list)
    middlewares: list[ConversionResult] = Field(default_factory=list)
    manifest: str | None = None  # docker-compose text from the conversion service
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None  # Set when the handler batch failed outright

    @property
    def is_hard_failure(self) -> bool:
        return self.error is not None

    @property
    def failed_items(self) -> list[ConversionResult]:
        return [r for r in [*self.routes, *self.middlewares] if not r.ok]

    def __repr__(self) -> str:
        """Return string representation of the result."""
        ok_routes = sum(1 for r in self.routes if r.ok)
        ok_middlewares = sum(1 for m in self.middlewares if m.ok)
        return (
            f"PartialResult("
            f"routes={ok_routes}/{len(self.routes)}, "
            f"middlewares={ok_middlewares}/{len(self.middlewares)}, "
            f"warnings={len(self.warnings)}, "
            f"error={self.error is not None})"
        )


class MigrationOptions(BaseModel):
    """User-selected options for a liberation run."""

    convert_handlers: bool = True
    extract_policies: bool = True
    include_platform_folder: bool = True
    generate_manifest: bool = True


class Stage(str, Enum):
    """Pipeline stage of a liberation run."""

    UPLOADED = "uploaded"
    ANALYZED = "analyzed"
    CONFIGURED = "configured"
    CONVERTING = "converting"
    EXPORTED = "exported"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.EXPORTED, Stage.FAILED)


class PipelineRun(BaseModel):
    """State of one liberation session, owned by a single controller."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str
    stage: Stage = Stage.UPLOADED
    # Stages entered since ingestion or the last retry, in order
    reached: list[Stage] = Field(default_factory=lambda: [Stage.UPLOADED])
    source: FileSet = Field(default_factory=FileSet, exclude=True)
    detected_assets: list[DetectedAsset] = Field(default_factory=list)
    options: MigrationOptions | None = None
    conversion: PartialResult | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None

    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def lock(self) -> asyncio.Lock:
        """Guards the run while a stage is in progress."""
        return self._lock

    def asset_counts(self) -> dict[str, int]:
        """Count detected assets by kind."""
        return count_assets(self.detected_assets)


class StageEvent(BaseModel):
    """Notification emitted on every stage transition."""

    run_id: str
    stage: Stage
    previous: Stage | None = None
    message: str | None = None


class TransferMode(str, Enum):
    """How a packaged project reaches its remote target."""

    FTP = "ftp"
    ORCHESTRATED = "orchestrated"


class TransferOutcome(BaseModel):
    """Result of pushing one file (or one payload) to a remote target."""

    relative_path: str
    succeeded: bool
    error_detail: str | None = None


class TransferSummary(BaseModel):
    """Aggregated transfer outcomes."""

    mode: TransferMode
    target: str
    provider: str | None = None
    total_files: int = 0
    succeeded_count: int = 0
    outcomes: list[TransferOutcome] = Field(default_factory=list)
    cancelled: bool = False
    message: str | None = None

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.succeeded)

    @property
    def summary_line(self) -> str:
        return f"{self.succeeded_count} of {self.total_files} succeeded"


class FtpCredentials(BaseModel):
    """Credentials for direct remote file transfer."""

    host: str
    username: str
    password: SecretStr
    port: int = 21
    secure: bool = False
    remote_path: str = "/public_html"


class OrchestratedTarget(BaseModel):
    """Target server for an orchestrated deployment."""

    server_id: str
    server_address: str
    project_name: str
    token: SecretStr
    orchestrator_url: str | None = None  # Falls back to Settings.orchestrator_url


def count_assets(assets: list[DetectedAsset]) -> dict[str, int]:
    """Count assets by kind, with a zero entry for every kind."""
    counts = {kind.value: 0 for kind in AssetKind}
    for asset in assets:
        counts[asset.kind.value] += 1
    return counts
