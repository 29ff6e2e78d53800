"""Pipeline controller.

Sequences classification, configuration, conversion and packaging for one
run at a time, and emits a ``StageEvent`` on every transition.
"""

from logging import getLogger
from uuid import uuid4

from liberate.config import Settings
from liberate.domain.errors import InputError, StageTransitionError, redact
from liberate.domain.models import (
    FileSet,
    MigrationOptions,
    PartialResult,
    PipelineRun,
    Stage,
    StageEvent,
)
from liberate.domain.types import ConversionService, StageObserver
from liberate.operations.classify import classify
from liberate.operations.package import pack
from liberate.orchestrators.conversion import Conversion

logger = getLogger(__name__)

TRANSITIONS: dict[Stage, set[Stage]] = {
    Stage.UPLOADED: {Stage.ANALYZED, Stage.FAILED},
    Stage.ANALYZED: {Stage.CONFIGURED, Stage.FAILED},
    Stage.CONFIGURED: {Stage.CONVERTING, Stage.FAILED},
    Stage.CONVERTING: {Stage.EXPORTED, Stage.FAILED},
    Stage.EXPORTED: set(),
    Stage.FAILED: set(),
}

RETRYABLE_STAGES = (Stage.UPLOADED, Stage.ANALYZED, Stage.CONFIGURED)


class Liberation:
    """Drives liberation runs through their stages.

    This orchestrator coordinates the entire pipeline:
    1. Ingest a source file set (uploaded)
    2. Classify it (analyzed)
    3. Record migration options (configured)
    4. Convert through the remote service (converting -> exported or failed)
    5. Package the exported run
    """

    def __init__(
        self,
        config: Settings | None = None,
        service: ConversionService | None = None,
        observers: list[StageObserver] | None = None,
    ):
        """Initialize the pipeline controller.

        Args:
            config: Pipeline configuration. If None, creates new Settings() from environment.
            service: Conversion service passed to the conversion orchestrator.
            observers: Callbacks notified of every stage transition.
        """
        self.config = config if config is not None else Settings()
        self.conversion = Conversion(self.config, service)
        self.observers: list[StageObserver] = list(observers or [])

    def subscribe(self, observer: StageObserver) -> None:
        self.observers.append(observer)

    def ingest(self, file_set: FileSet, run_id: str | None = None) -> PipelineRun:
        """Start a new run from an ingested file set."""
        if not file_set:
            raise InputError("The project contains no files")

        run = PipelineRun(run_id=run_id or uuid4().hex, stage=Stage.UPLOADED, source=file_set)
        self._emit(run, None, f"{len(file_set)} files ingested")
        return run

    def analyze(self, run: PipelineRun) -> PipelineRun:
        self._check_idle(run)
        self._check_transition(run, Stage.ANALYZED)
        run.detected_assets = classify(run.source, self.config)
        self._advance(run, Stage.ANALYZED, f"{len(run.detected_assets)} assets detected")
        return run

    def configure(self, run: PipelineRun, options: MigrationOptions) -> PipelineRun:
        self._check_idle(run)
        self._check_transition(run, Stage.CONFIGURED)
        run.options = options
        self._advance(run, Stage.CONFIGURED)
        return run

    async def convert(self, run: PipelineRun) -> PartialResult:
        """Run the conversion stage.

        The run ends ``exported`` unless the handler batch failed, in which
        case it ends ``failed`` with a redacted error and no conversion.
        """
        async with run.lock:
            self._check_transition(run, Stage.CONVERTING)
            if run.options is None:
                raise StageTransitionError(f"Run {run.run_id} has no migration options")
            self._advance(run, Stage.CONVERTING)

            try:
                result = await self.conversion.convert(run.source, run.detected_assets, run.options)
            except Exception as exc:
                self.fail(run, f"Conversion failed: {exc}")
                raise

            run.warnings.extend(result.warnings)
            if result.is_hard_failure:
                self.fail(run, result.error or "Handler conversion failed")
                return result

            run.conversion = result
            self._advance(run, Stage.EXPORTED, repr(result))
            return result

    def package(self, run: PipelineRun) -> FileSet:
        """Build the output file set of an exported run."""
        if run.stage != Stage.EXPORTED or run.conversion is None or run.options is None:
            raise StageTransitionError(f"Run {run.run_id} is {run.stage.value}, not exported")
        return pack(run.source, run.conversion, run.detected_assets, run.options, self.config)

    def fail(self, run: PipelineRun, error: str) -> PipelineRun:
        """Move a run to ``failed``."""
        self._check_transition(run, Stage.FAILED)
        run.error = redact(error)
        run.conversion = None
        logger.error(f"Run {run.run_id} failed: {run.error}")
        self._advance(run, Stage.FAILED, run.error)
        return run

    def retry(self, run: PipelineRun, stage: Stage) -> PipelineRun:
        """Reset a run to ``stage`` and clear everything produced after it."""
        self._check_idle(run)
        if stage not in RETRYABLE_STAGES:
            raise StageTransitionError(f"Cannot retry from {stage.value}")
        if stage not in run.reached:
            raise StageTransitionError(f"Run {run.run_id} never reached {stage.value}")

        if stage == Stage.UPLOADED:
            run.detected_assets = []
        if stage in (Stage.UPLOADED, Stage.ANALYZED):
            run.options = None
        run.conversion = None
        run.warnings = []
        run.error = None
        run.reached = run.reached[: run.reached.index(stage)]

        self._advance(run, stage, "retry", check=False)
        return run

    async def run(self, file_set: FileSet, options: MigrationOptions | None = None) -> PipelineRun:
        """Take a file set from ingestion to an exported (or failed) run."""
        run = self.ingest(file_set)
        self.analyze(run)
        self.configure(run, options or MigrationOptions())
        await self.convert(run)
        return run

    def _check_idle(self, run: PipelineRun) -> None:
        if run.lock.locked():
            raise StageTransitionError(f"Run {run.run_id} is busy")

    def _check_transition(self, run: PipelineRun, stage: Stage) -> None:
        if stage not in TRANSITIONS[run.stage]:
            raise StageTransitionError(
                f"Run {run.run_id} cannot move from {run.stage.value} to {stage.value}"
            )

    def _advance(self, run: PipelineRun, stage: Stage, message: str | None = None, check: bool = True) -> None:
        if check:
            self._check_transition(run, stage)
        previous = run.stage
        run.stage = stage
        run.reached.append(stage)
        self._emit(run, previous, message)

    def _emit(self, run: PipelineRun, previous: Stage | None, message: str | None) -> None:
        event = StageEvent(run_id=run.run_id, stage=run.stage, previous=previous, message=message)
        logger.debug(f"Run {run.run_id}: {previous} -> {run.stage.value}")
        for observer in self.observers:
            try:
                observer(event)
            except Exception as exc:
                logger.warning(f"Stage observer failed: {exc}")
