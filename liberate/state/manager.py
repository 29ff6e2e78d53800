"""State persistence for liberation runs."""

from logging import getLogger
from pathlib import Path
from typing import Any

import orjson
from atomicwrites import atomic_write
from pydantic import BaseModel, Field, ValidationError

from liberate.domain.models import PipelineRun

logger = getLogger(__name__)


class RunState(BaseModel):
    """Stored runs keyed by their source location."""

    runs: dict[str, PipelineRun] = Field(default_factory=dict)


class RunStateManager:
    """Context manager for the run state file.

    Runs are stored without file contents; the source is re-read from disk
    when a stored run is resumed.

    Example:
        with RunStateManager(".liberate/state.json") as state:
            run = state.get_run("/path/to/project")
            ...
            state.save_run("/path/to/project", run)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.data = RunState()

    def __enter__(self) -> "RunStateManager":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            logger.debug(f"No run state at {self.path}, starting fresh")
            return self

        try:
            raw = orjson.loads(self.path.read_bytes())
        except (orjson.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load run state {self.path}: {e}")
            raise

        self.data = RunState(runs=self._valid_runs(raw))
        return self

    def get_run(self, source_key: str) -> PipelineRun | None:
        """Return the stored run for a source, if any."""
        return self.data.runs.get(source_key)

    def save_run(self, source_key: str, run: PipelineRun) -> None:
        """Store or replace the run for a source."""
        self.data.runs[source_key] = run

    def __exit__(self, exc_type, _exc_value, _traceback) -> bool:
        """Write the state back unless the block raised."""
        if exc_type is not None:
            return False

        document = orjson.dumps(self.data.model_dump(mode="json"), option=orjson.OPT_INDENT_2)
        try:
            with atomic_write(self.path, mode="wb", overwrite=True) as f:
                f.write(document + b"\n")
        except OSError as e:
            logger.error(f"Failed to write run state {self.path}: {e}")
            raise
        return False

    @staticmethod
    def _valid_runs(raw: Any) -> dict[str, PipelineRun]:
        """Keep the stored runs that still validate, dropping the rest."""
        runs = raw.get("runs") if isinstance(raw, dict) else None
        if not isinstance(runs, dict):
            return {}

        valid: dict[str, PipelineRun] = {}
        for key, entry in runs.items():
            try:
                valid[key] = PipelineRun.model_validate(entry)
            except ValidationError:
                logger.warning(f"Dropping unreadable stored run for {key}")
        return valid
