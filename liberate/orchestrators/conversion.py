"""Conversion orchestrator.

Coordinates the two conversion calls: handlers into routes (required) and
migration scripts into access-control middlewares (best effort).
"""

import asyncio
from logging import getLogger

from liberate.config import Settings
from liberate.domain.errors import redact
from liberate.domain.models import (
    AssetKind,
    ConversionResult,
    DetectedAsset,
    FileSet,
    MigrationOptions,
    PartialResult,
    ResultKind,
    ResultStatus,
)
from liberate.domain.types import ConversionService, ServiceBatch, ServiceItem
from liberate.operations.classify import is_migration_script
from liberate.operations.convert import HttpConversionService

logger = getLogger(__name__)

MIDDLEWARES_SKIPPED_WARNING = "Policy extraction failed; security middlewares were not generated"


def results_from_batch(
    kind: ResultKind,
    batch: ServiceBatch,
    requested: list[str] | None = None,
) -> list[ConversionResult]:
    """Turn service items into conversion results.

    When ``requested`` is given, results follow that order and every
    requested name missing from the batch is recorded as failed.
    """
    by_name: dict[str, ConversionResult] = {}
    ordered: list[ConversionResult] = []
    for item in batch.items:
        content = item.get("content")
        if item.get("error") or content is None:
            result = ConversionResult(
                kind=kind,
                name=item["name"],
                status=ResultStatus.FAILED,
                error_detail=redact(item.get("error") or "empty result"),
            )
        else:
            result = ConversionResult(kind=kind, name=item["name"], content=content)
        by_name.setdefault(result.name, result)
        ordered.append(result)

    if requested is None:
        return ordered

    return [
        by_name.get(name)
        or ConversionResult(
            kind=kind,
            name=name,
            status=ResultStatus.FAILED,
            error_detail="no result returned",
        )
        for name in requested
    ]


class Conversion:
    """Orchestrates conversion of detected assets through the remote service."""

    def __init__(self, config: Settings | None = None, service: ConversionService | None = None):
        """Initialize the conversion orchestrator.

        Args:
            config: Pipeline configuration. If None, creates new Settings() from environment.
            service: Conversion service. Defaults to HttpConversionService(config).
        """
        self.config = config if config is not None else Settings()
        self.service = service if service is not None else HttpConversionService(self.config)

    def select_handlers(self, file_set: FileSet, assets: list[DetectedAsset]) -> list[ServiceItem]:
        """Return ``{name, content}`` for handlers whose file is present."""
        return [
            {"name": asset.name, "content": file_set.text(asset.source_path)}
            for asset in assets
            if asset.kind == AssetKind.FUNCTION_HANDLER and asset.source_path in file_set
        ]

    def select_migrations(self, file_set: FileSet) -> list[ServiceItem]:
        """Return every migration script as ``{name: path, content}``."""
        return [
            {"name": path, "content": file_set.text(path)}
            for path in file_set
            if is_migration_script(self.config, path)
        ]

    async def convert(
        self,
        file_set: FileSet,
        assets: list[DetectedAsset],
        options: MigrationOptions,
    ) -> PartialResult:
        """Run handler conversion and policy extraction concurrently.

        A failed handler call sets ``PartialResult.error``; a failed policy
        call only adds a warning.

        Args:
            file_set: Ingested project files
            assets: Classified assets
            options: Migration options

        Returns:
            Partial result holding every route and middleware, failed ones included
        """
        result = PartialResult()
        handlers = self.select_handlers(file_set, assets) if options.convert_handlers else []
        migrations = self.select_migrations(file_set) if options.extract_policies else []

        logger.info(
            f"Converting {len(handlers)} handlers and {len(migrations)} migration scripts"
        )

        await asyncio.gather(
            self._convert_handlers(handlers, options, result),
            self._extract_policies(migrations, result),
        )

        logger.info(f"Conversion complete: {result!r}")
        return result

    async def _convert_handlers(
        self,
        handlers: list[ServiceItem],
        options: MigrationOptions,
        result: PartialResult,
    ) -> None:
        if not handlers:
            return
        try:
            batch = await self.service.convert_handlers(handlers)
        except Exception as exc:
            result.error = redact(f"Handler conversion failed: {exc}")
            logger.error(result.error)
            return

        result.routes = results_from_batch(
            ResultKind.ROUTE, batch, requested=[item["name"] for item in handlers]
        )
        if options.generate_manifest:
            result.manifest = batch.manifest

    async def _extract_policies(self, migrations: list[ServiceItem], result: PartialResult) -> None:
        if not migrations:
            return
        try:
            batch = await self.service.extract_policies(migrations)
        except Exception as exc:
            logger.warning(redact(f"Policy extraction failed: {exc}"))
            result.warnings.append(MIDDLEWARES_SKIPPED_WARNING)
            return

        result.middlewares = results_from_batch(ResultKind.MIDDLEWARE, batch)
