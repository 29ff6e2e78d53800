"""Shared type definitions."""

from collections.abc import Callable
from typing import Protocol

from liberate.domain.models import StageEvent

# Progress hook for transfers (relative path, files done, total files)
TransferProgressHook = Callable[[str, int, int], None]

# Observer notified on every pipeline stage transition
StageObserver = Callable[[StageEvent], None]

# One item exchanged with the conversion service
ServiceItem = dict[str, str]


class ServiceBatch(Protocol):
    items: list[ServiceItem]
    manifest: str | None


class ConversionService(Protocol):
    """Remote service that rewrites platform code into portable code."""

    async def convert_handlers(self, items: list[ServiceItem]) -> ServiceBatch: ...

    async def extract_policies(self, items: list[ServiceItem]) -> ServiceBatch: ...


class RemoteSession(Protocol):
    """Remote file-transfer primitives used by the dispatcher."""

    async def connect(self) -> None: ...

    async def ensure_dir(self, path: str) -> None: ...

    async def write(self, path: str, content: bytes) -> None: ...

    async def close(self) -> None: ...
