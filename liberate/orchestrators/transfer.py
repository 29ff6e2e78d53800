"""Transfer dispatcher.

Pushes a packaged file set to a remote target, either file by file over
one remote session or as a single orchestrated deployment.
"""

import asyncio
import posixpath
from collections.abc import Awaitable, Callable
from logging import getLogger
from typing import TypeVar

from liberate.config import Settings
from liberate.domain.errors import (
    InputError,
    OrchestrationError,
    TransferError,
    mask_host,
    redact,
)
from liberate.domain.models import (
    FileSet,
    FtpCredentials,
    OrchestratedTarget,
    TransferMode,
    TransferOutcome,
    TransferSummary,
)
from liberate.domain.types import RemoteSession, TransferProgressHook
from liberate.operations.transfer import (
    FtpSession,
    OrchestrationClient,
    detect_provider,
    remote_file_path,
)

logger = getLogger(__name__)

SessionFactory = Callable[[FtpCredentials], RemoteSession]
T = TypeVar("T")


async def _settle(awaitable: Awaitable[T]) -> tuple[T, bool]:
    """Await a session call to completion even if the caller is cancelled.

    Session calls run blocking I/O in worker threads, which cannot be
    interrupted. A cancellation arriving meanwhile is absorbed once the
    call has finished, and reported through the returned flag.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task), False
    except asyncio.CancelledError:
        current = asyncio.current_task()
        if current is not None:
            current.uncancel()
        return await task, True


class Transfer:
    """Dispatches packaged projects to remote targets."""

    def __init__(
        self,
        config: Settings | None = None,
        session_factory: SessionFactory | None = None,
        orchestration: OrchestrationClient | None = None,
    ):
        """Initialize the dispatcher.

        Args:
            config: Pipeline configuration. If None, creates new Settings() from environment.
            session_factory: Builds a remote session from credentials. Defaults to FtpSession.
            orchestration: Orchestration client. Defaults to OrchestrationClient(config).
        """
        self.config = config if config is not None else Settings()
        self.session_factory = session_factory or (lambda creds: FtpSession(creds, self.config))
        self.orchestration = orchestration or OrchestrationClient(self.config)

    async def dispatch(
        self,
        files: FileSet,
        target: FtpCredentials | OrchestratedTarget,
        cancel: asyncio.Event | None = None,
        progress_hook: TransferProgressHook | None = None,
    ) -> TransferSummary:
        """Send ``files`` to ``target``.

        Args:
            files: Packaged files
            target: FTP credentials or an orchestrated deployment target
            cancel: Set to stop before the next file; an in-flight write completes
            progress_hook: Optional callback(path, done, total)

        Returns:
            Transfer summary
        """
        if isinstance(target, FtpCredentials):
            return await self.upload(files, target, cancel, progress_hook)
        return await self.deploy(files, target)

    async def upload(
        self,
        files: FileSet,
        credentials: FtpCredentials,
        cancel: asyncio.Event | None = None,
        progress_hook: TransferProgressHook | None = None,
    ) -> TransferSummary:
        """Write files one at a time over a single remote session.

        Cancelling the calling task stops the upload like ``cancel`` does:
        the in-flight write finishes, the session is closed and the partial
        summary is returned.
        """
        if not credentials.host or not credentials.username or not credentials.password.get_secret_value():
            raise InputError("Incomplete connection details: host, username and password are required")
        if not files:
            raise InputError("No files to deploy")

        summary = TransferSummary(
            mode=TransferMode.FTP,
            target=credentials.host,
            provider=detect_provider(credentials.host),
            total_files=len(files),
        )
        logger.info(f"Starting upload of {len(files)} files to {mask_host(credentials.host)}")

        session = self.session_factory(credentials)
        interrupted = False
        try:
            _, interrupted = await _settle(session.connect())
            for index, path in enumerate(files, start=1):
                if interrupted or (cancel is not None and cancel.is_set()):
                    break

                upload = self._upload_file(session, credentials, path, files[path])
                outcome, interrupted = await _settle(upload)
                summary.outcomes.append(outcome)
                if progress_hook:
                    progress_hook(path, index, len(files))

            if interrupted or len(summary.outcomes) < len(files):
                summary.cancelled = True
                logger.info(f"Upload cancelled after {len(summary.outcomes)} files")
        except TransferError as exc:
            summary.message = redact(str(exc))
            logger.error(f"Upload aborted: {summary.message}")
        finally:
            try:
                await _settle(session.close())
            except Exception as exc:
                logger.warning(f"Failed to close session: {redact(str(exc))}")

        summary.succeeded_count = sum(1 for outcome in summary.outcomes if outcome.succeeded)
        if summary.message is None:
            summary.message = f"Uploaded to {summary.provider}: {summary.summary_line}"
        return summary

    async def _upload_file(
        self,
        session: RemoteSession,
        credentials: FtpCredentials,
        path: str,
        content: bytes,
    ) -> TransferOutcome:
        remote_path = remote_file_path(credentials.remote_path, path)
        try:
            parent = posixpath.dirname(remote_path)
            if parent:
                await session.ensure_dir(parent)
            await session.write(remote_path, content)
        except Exception as exc:
            detail = redact(str(exc))
            logger.error(f"Failed to upload {path}: {detail}")
            return TransferOutcome(relative_path=path, succeeded=False, error_detail=detail)
        return TransferOutcome(relative_path=path, succeeded=True)

    async def deploy(self, files: FileSet, target: OrchestratedTarget) -> TransferSummary:
        """Submit the whole file set as one orchestrated deployment."""
        if not target.server_id or not target.token.get_secret_value():
            raise InputError("Orchestrated deployment requires a server id and a token")
        if not files:
            raise InputError("No files to deploy")

        summary = TransferSummary(
            mode=TransferMode.ORCHESTRATED,
            target=target.server_id,
            provider=detect_provider(target.server_address),
            total_files=len(files),
        )
        logger.info(f"Submitting {len(files)} files to server {target.server_id}")

        try:
            ack = await self.orchestration.submit(files, target)
        except OrchestrationError as exc:
            detail = redact(str(exc))
            logger.error(f"Deployment rejected: {detail}")
            summary.outcomes.append(
                TransferOutcome(relative_path=target.project_name, succeeded=False, error_detail=detail)
            )
            summary.message = detail
            return summary

        summary.outcomes.append(TransferOutcome(relative_path=target.project_name, succeeded=True))
        summary.succeeded_count = len(files)
        summary.message = redact(str(ack.get("message") or "Deployment accepted"))
        return summary
