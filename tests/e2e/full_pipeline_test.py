"""End-to-end tests for the full pipeline.

These tests start from a project on disk and go through classification,
conversion, packaging, archive export and transfer, with only the remote
service and the remote host replaced by in-memory doubles.
"""

import asyncio

import pytest

from liberate import liberate_project, load_source, write_archive
from liberate.domain.models import FtpCredentials, MigrationOptions, Stage
from liberate.operations.ingest import load_archive
from liberate.orchestrators.transfer import Transfer
from liberate.ui import Reporter


@pytest.mark.asyncio
async def test_directory_to_remote_host(config, project_dir, tmp_path, service, make_session):
    reporter = Reporter(silent=True)

    run, files = await liberate_project(
        load_source(project_dir), config=config, service=service, observers=[reporter.on_stage_event]
    )

    assert run.stage == Stage.EXPORTED
    assert [event.stage for event in reporter.events][-1] == Stage.EXPORTED
    archive = write_archive(files, tmp_path / "dist" / "liberated.zip")

    shipped = load_archive(archive)
    assert dict(shipped) == dict(files)

    session = make_session()
    summary = await Transfer(config, session_factory=lambda creds: session).dispatch(
        shipped,
        FtpCredentials(host="ftp.example.com", username="deploy", password="pw"),
        cancel=asyncio.Event(),
    )

    assert summary.succeeded_count == len(files)
    assert "/public_html/backend/routes/auth-handler.ts" in session.written
    assert "/public_html/backend/middleware/rowSecurity.ts" in session.written
    assert "/public_html/frontend/src/App.tsx" in session.written
    assert session.close_calls == 1


@pytest.mark.asyncio
async def test_failed_run_produces_nothing(config, project_dir, failing_service):
    run, files = await liberate_project(load_source(project_dir), config=config, service=failing_service)

    assert run.stage == Stage.FAILED
    assert files is None


@pytest.mark.asyncio
async def test_options_shape_the_archive(config, project_dir, service):
    options = MigrationOptions(include_platform_folder=False, generate_manifest=False)

    run, files = await liberate_project(load_source(project_dir), options, config=config, service=service)

    assert run.options == options
    assert "docker-compose.yml" not in files
    assert not any(path.startswith("supabase/") for path in files)
