"""Tests for run state management."""

from pathlib import Path

import orjson
import pytest

from liberate.domain.models import (
    AssetKind,
    DetectedAsset,
    FileSet,
    MigrationOptions,
    PartialResult,
    PipelineRun,
    Stage,
)
from liberate.state.manager import RunStateManager


def _write_state(file_path: Path, payload) -> None:
    file_path.write_bytes(orjson.dumps(payload))


def test_run_round_trips_without_file_contents(tmp_path):
    """Stored runs keep their stage and results but never source bytes."""
    state_file = tmp_path / "state.json"
    run = PipelineRun(
        run_id="abc",
        stage=Stage.EXPORTED,
        source=FileSet({"secret.env": "API_KEY=do-not-store"}),
        detected_assets=[DetectedAsset(kind=AssetKind.TABLE, name="users", source_path="m.sql")],
        options=MigrationOptions(generate_manifest=False),
        conversion=PartialResult(manifest=None, warnings=["w"]),
    )

    with RunStateManager(state_file) as manager:
        manager.save_run("/projects/demo", run)

    assert b"do-not-store" not in state_file.read_bytes()

    with RunStateManager(state_file) as manager:
        loaded = manager.get_run("/projects/demo")

    assert loaded.run_id == "abc"
    assert loaded.stage == Stage.EXPORTED
    assert loaded.detected_assets[0].name == "users"
    assert loaded.options.generate_manifest is False
    assert loaded.conversion.warnings == ["w"]
    assert len(loaded.source) == 0


def test_state_manager_handles_invalid_payload(tmp_path):
    """Gracefully handle malformed state files."""
    state_file = tmp_path / "corrupt.json"
    _write_state(state_file, {"runs": ["not-a-dict"]})

    with RunStateManager(state_file) as manager:
        assert manager.get_run("/projects/demo") is None
        assert manager.data.runs == {}
        manager.save_run("/projects/demo", PipelineRun(run_id="r1"))

    persisted = orjson.loads(state_file.read_bytes())
    assert persisted["runs"]["/projects/demo"]["run_id"] == "r1"


def test_state_not_written_on_error(tmp_path):
    state_file = tmp_path / "state.json"

    with pytest.raises(RuntimeError):
        with RunStateManager(state_file) as manager:
            manager.save_run("/projects/demo", PipelineRun(run_id="r1"))
            raise RuntimeError("interrupted")

    assert not state_file.exists()


def test_unreadable_runs_are_dropped(tmp_path):
    state_file = tmp_path / "state.json"
    _write_state(
        state_file,
        {"runs": {"/good": {"run_id": "ok", "stage": "analyzed"}, "/bad": {"stage": "bogus"}}},
    )

    with RunStateManager(state_file) as manager:
        assert manager.get_run("/good").stage == Stage.ANALYZED
        assert manager.get_run("/bad") is None
