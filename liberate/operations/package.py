"""Archive layout, generated guide and zip export."""

import zipfile
from logging import getLogger
from pathlib import Path

from atomicwrites import atomic_write

from liberate.config import Settings
from liberate.domain.errors import PackagingError
from liberate.domain.models import (
    AssetKind,
    DetectedAsset,
    FileSet,
    MigrationOptions,
    PartialResult,
    count_assets,
)

logger = getLogger(__name__)

MANIFEST_NAME = "docker-compose.yml"
GUIDE_NAME = "README.md"
ROUTES_DIR = "backend/routes"
MIDDLEWARE_DIR = "backend/middleware"
FRONTEND_DIR = "frontend"

# Fixed zip timestamp so the same file set always yields the same bytes
ARCHIVE_DATE_TIME = (1980, 1, 1, 0, 0, 0)


class _Layout:
    """Target-path map that refuses to place two files at one path."""

    def __init__(self) -> None:
        self.files: dict[str, bytes | str] = {}

    def place(self, path: str, content: bytes | str, origin: str) -> None:
        if path in self.files:
            raise PackagingError(f"Archive path collision at {path} (from {origin})")
        self.files[path] = content


def generate_guide(
    assets: list[DetectedAsset],
    conversion: PartialResult,
    options: MigrationOptions,
    config: Settings | None = None,
) -> str:
    """Render the README placed at the archive root.

    Built from asset counts and result names only; never embeds source text.
    """
    config = config if config is not None else Settings()
    counts = count_assets(assets)
    config_only = sum(1 for asset in assets if asset.is_config_reference)
    converted_routes = sum(1 for route in conversion.routes if route.ok)
    converted_middlewares = sum(1 for mw in conversion.middlewares if mw.ok)

    lines = [
        "# Liberated project",
        "",
        "This project was converted to run outside its original hosting platform.",
        "",
        "## Layout",
        "",
        "```",
        f"{FRONTEND_DIR}/            application files",
        f"{ROUTES_DIR}/      converted routes",
        f"{MIDDLEWARE_DIR}/  access-control middlewares",
    ]
    if options.include_platform_folder:
        lines.append(f"{config.platform_root}/            original platform folder")
    if conversion.manifest:
        lines.append(f"{MANIFEST_NAME}   full stack")
    lines += [
        f"{GUIDE_NAME}",
        "```",
        "",
        "## Deployment",
        "",
    ]
    if conversion.manifest:
        lines += ["```bash", "docker compose up -d", "```", ""]
    else:
        lines += ["No orchestration manifest was generated; start backend and frontend manually.", ""]

    lines += [
        "## Detected assets",
        "",
        f"- {counts[AssetKind.FUNCTION_HANDLER.value]} function handlers"
        f" ({config_only} declared in config only)",
        f"- {counts[AssetKind.ACCESS_POLICY.value]} access policies",
        f"- {counts[AssetKind.TABLE.value]} tables",
        "",
        "## Conversion",
        "",
        f"- {converted_routes} of {len(conversion.routes)} handlers converted to routes",
    ]
    if conversion.middlewares:
        lines.append(
            f"- {converted_middlewares} of {len(conversion.middlewares)} middlewares generated"
        )
    else:
        lines.append("- Security middlewares were not generated")

    for warning in conversion.warnings:
        lines.append(f"- Warning: {warning}")

    failed = conversion.failed_items
    if failed:
        lines += ["", "## Manual follow-up", ""]
        lines += [
            f"- not converted, manual migration required: `{item.name}`" for item in failed
        ]

    lines.append("")
    return "\n".join(lines)


def pack(
    file_set: FileSet,
    conversion: PartialResult,
    assets: list[DetectedAsset],
    options: MigrationOptions,
    config: Settings | None = None,
) -> FileSet:
    """Merge original files, converted files and generated documents.

    Args:
        file_set: Ingested project files
        conversion: Result of the conversion stage
        assets: Classified assets, used for guide counts
        options: Migration options
        config: Layout configuration, defaults to Settings()

    Returns:
        Output file set with a deterministic layout
    """
    config = config if config is not None else Settings()
    layout = _Layout()
    platform_prefix = f"{config.platform_root}/"

    for route in conversion.routes:
        if route.ok:
            layout.place(f"{ROUTES_DIR}/{route.name}{config.route_extension}", route.content, "route")

    for middleware in conversion.middlewares:
        if middleware.ok:
            layout.place(
                f"{MIDDLEWARE_DIR}/{middleware.name}{config.middleware_extension}",
                middleware.content,
                "middleware",
            )

    for path, content in file_set.items():
        if not path.startswith(platform_prefix):
            layout.place(f"{FRONTEND_DIR}/{path}", content, path)
        elif options.include_platform_folder:
            layout.place(f"{config.platform_root}/{path.removeprefix(platform_prefix)}", content, path)

    if conversion.manifest:
        layout.place(MANIFEST_NAME, conversion.manifest, "manifest")

    layout.place(GUIDE_NAME, generate_guide(assets, conversion, options, config), "guide")

    logger.info(f"Packed {len(layout.files)} files")
    return FileSet(layout.files)


def write_archive(file_set: FileSet, archive_path: Path) -> Path:
    """Write ``file_set`` to a zip archive with sorted entries.

    Args:
        file_set: Files to archive
        archive_path: Destination path

    Returns:
        The archive path
    """
    archive_path = Path(archive_path)
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    with atomic_write(archive_path, mode="wb", overwrite=True) as f:
        with zipfile.ZipFile(f, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path in sorted(file_set):
                info = zipfile.ZipInfo(path, date_time=ARCHIVE_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                archive.writestr(info, file_set[path])

    logger.info(f"Wrote {len(file_set)} files to {archive_path}")
    return archive_path
