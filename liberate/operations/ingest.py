"""Building file sets from directories and zip archives."""

import zipfile
from logging import getLogger
from pathlib import Path

from liberate.domain.errors import InputError
from liberate.domain.models import FileSet

logger = getLogger(__name__)

IGNORED_PREFIXES = ("__MACOSX/",)
IGNORED_DIRECTORIES = {".git", "node_modules", "__pycache__", ".liberate"}


def _is_ignored(path: str) -> bool:
    if path.startswith(IGNORED_PREFIXES):
        return True
    return any(part in IGNORED_DIRECTORIES for part in path.split("/")[:-1])


def load_directory(root: Path) -> FileSet:
    """Read every file under ``root`` into a file set, in sorted path order.

    Args:
        root: Project directory

    Returns:
        File set keyed by forward-slash paths relative to root
    """
    root = Path(root)
    if not root.is_dir():
        raise InputError(f"Not a directory: {root}")

    files: dict[str, bytes] = {}
    for file_path in sorted(p for p in root.rglob("*") if p.is_file()):
        relative = file_path.relative_to(root).as_posix()
        if _is_ignored(relative):
            continue
        files[relative] = file_path.read_bytes()

    logger.info(f"Loaded {len(files)} files from {root}")
    return FileSet(files)


def load_archive(archive_path: Path) -> FileSet:
    """Read a zip archive into a file set, preserving archive order.

    Directory entries and macOS resource forks are skipped. Entries that
    would escape the archive root are refused.
    """
    archive_path = Path(archive_path)
    if not archive_path.is_file():
        raise InputError(f"Archive not found: {archive_path}")

    files: dict[str, bytes] = {}
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                if member.is_dir() or _is_ignored(member.filename):
                    continue
                name = member.filename.removeprefix("./")
                if ".." in name.split("/") or name.startswith("/"):
                    raise InputError(f"Refusing archive entry outside root: {member.filename}")
                files[name] = archive.read(member)
    except zipfile.BadZipFile as exc:
        raise InputError(f"Not a zip archive: {archive_path}") from exc

    logger.info(f"Loaded {len(files)} files from {archive_path}")
    return FileSet(files)


def load_source(source: Path) -> FileSet:
    """Load a project from a directory or a zip archive."""
    source = Path(source)
    if source.is_dir():
        return load_directory(source)
    return load_archive(source)
