"""Remote-session and orchestration primitives."""

import asyncio
import base64
import ftplib
import io
import posixpath
import socket
from logging import getLogger

import httpx

from liberate.config import Settings
from liberate.domain.errors import (
    OrchestrationError,
    RemoteDirectoryExists,
    RemotePermissionError,
    TransferError,
    mask_host,
)
from liberate.domain.models import FileSet, FtpCredentials, OrchestratedTarget

logger = getLogger(__name__)

GENERIC_PROVIDER = "generic host"

# Hostname fragment -> provider label, checked in order
KNOWN_PROVIDERS: list[tuple[str, str]] = [
    ("ionos", "IONOS"),
    ("greengeeks", "GreenGeeks"),
    ("hostgator", "HostGator"),
    ("ovh", "OVH"),
    ("o2switch", "o2switch"),
    ("hostinger", "Hostinger"),
    ("bluehost", "Bluehost"),
]

DEPLOY_ENDPOINT = "/deploy-direct"


def detect_provider(host: str) -> str:
    """Best-effort hosting provider label for ``host``."""
    host_lower = host.lower()
    for fragment, label in KNOWN_PROVIDERS:
        if fragment in host_lower:
            return label
    return GENERIC_PROVIDER


class FtpSession:
    """One authenticated FTP(S) session.

    ``ftplib`` is blocking, so every primitive runs in a worker thread. The
    connection timeout applies to connect and login; after login the socket
    timeout is switched to the per-write timeout.
    """

    def __init__(self, credentials: FtpCredentials, config: Settings | None = None):
        self.credentials = credentials
        self.config = config if config is not None else Settings()
        self._ftp: ftplib.FTP | None = None

    async def connect(self) -> None:
        await asyncio.to_thread(self._connect)

    async def ensure_dir(self, path: str) -> None:
        await asyncio.to_thread(self._ensure_dir, path)

    async def write(self, path: str, content: bytes) -> None:
        await asyncio.to_thread(self._write, path, content)

    async def close(self) -> None:
        await asyncio.to_thread(self._close)

    def _connect(self) -> None:
        creds = self.credentials
        ftp: ftplib.FTP = ftplib.FTP_TLS() if creds.secure else ftplib.FTP()
        logger.info(f"Connecting to {mask_host(creds.host)}:{creds.port}")
        try:
            ftp.connect(creds.host, creds.port, timeout=self.config.transfer_connect_timeout)
            ftp.login(creds.username, creds.password.get_secret_value())
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
        except (ftplib.Error, OSError) as exc:
            ftp.close()
            raise TransferError(f"Could not connect to {mask_host(creds.host)}: {exc}") from exc

        if ftp.sock is not None:
            ftp.sock.settimeout(self.config.transfer_write_timeout)
        ftp.timeout = self.config.transfer_write_timeout
        self._ftp = ftp

    def _require(self) -> ftplib.FTP:
        if self._ftp is None:
            raise TransferError("Session is not connected")
        return self._ftp

    def _is_directory(self, ftp: ftplib.FTP, path: str) -> bool:
        current = ftp.pwd()
        try:
            ftp.cwd(path)
        except ftplib.error_perm:
            return False
        ftp.cwd(current)
        return True

    def _make_dir(self, ftp: ftplib.FTP, path: str) -> None:
        try:
            ftp.mkd(path)
        except ftplib.error_perm as exc:
            if self._is_directory(ftp, path):
                raise RemoteDirectoryExists(path) from exc
            raise RemotePermissionError(f"Cannot create {path}: {exc}") from exc

    def _ensure_dir(self, path: str) -> None:
        ftp = self._require()
        prefix = "/" if path.startswith("/") else ""
        parts = [part for part in path.split("/") if part]
        for index in range(1, len(parts) + 1):
            try:
                self._make_dir(ftp, prefix + "/".join(parts[:index]))
            except RemoteDirectoryExists:
                continue

    def _write(self, path: str, content: bytes) -> None:
        ftp = self._require()
        try:
            ftp.storbinary(f"STOR {path}", io.BytesIO(content))
        except ftplib.error_perm as exc:
            raise RemotePermissionError(f"Cannot write {path}: {exc}") from exc
        except (ftplib.Error, socket.timeout, OSError) as exc:
            raise TransferError(f"Write failed for {path}: {exc}") from exc

    def _close(self) -> None:
        ftp, self._ftp = self._ftp, None
        if ftp is None:
            return
        try:
            ftp.quit()
        except (ftplib.Error, OSError):
            ftp.close()
            raise


def remote_file_path(remote_root: str, relative_path: str) -> str:
    """Join the remote root and a relative path."""
    return posixpath.join(remote_root or "/", relative_path)


def encode_files(files: FileSet) -> tuple[dict[str, str], dict[str, str]]:
    """Turn file contents into JSON strings for the deployment payload.

    UTF-8 files are sent as text. Anything else is base64-encoded and listed
    in the returned encodings map, so binary assets arrive byte-for-byte.
    """
    contents: dict[str, str] = {}
    encodings: dict[str, str] = {}
    for path, content in files.items():
        try:
            contents[path] = content.decode("utf-8")
        except UnicodeDecodeError:
            contents[path] = base64.b64encode(content).decode("ascii")
            encodings[path] = "base64"
    return contents, encodings


class OrchestrationClient:
    """Submits a whole file set to the orchestration endpoint."""

    def __init__(self, config: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config if config is not None else Settings()
        self.transport = transport

    async def submit(self, files: FileSet, target: OrchestratedTarget) -> dict:
        """Post the deployment payload.

        Args:
            files: Packaged files
            target: Target server and bearer token

        Returns:
            Decoded acknowledgment body

        Raises:
            OrchestrationError: On transport failure or rejection
        """
        base_url = target.orchestrator_url or self.config.orchestrator_url
        if not base_url:
            raise OrchestrationError("No orchestrator URL configured")

        contents, encodings = encode_files(files)
        payload = {
            "server_id": target.server_id,
            "project_name": target.project_name,
            "files": contents,
            "encodings": encodings,
            "server_ip": target.server_address,
        }
        headers = {"Authorization": f"Bearer {target.token.get_secret_value()}"}

        async with httpx.AsyncClient(
            base_url=base_url,
            timeout=self.config.orchestrator_timeout,
            transport=self.transport,
        ) as client:
            try:
                resp = await client.post(DEPLOY_ENDPOINT, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                raise OrchestrationError(f"Deployment request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.is_success and body.get("success") is True:
            return body

        error = body.get("error") or f"HTTP {resp.status_code}"
        details = body.get("details")
        raise OrchestrationError(f"{error}: {details}" if details else str(error))
