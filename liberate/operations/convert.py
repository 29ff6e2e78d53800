"""Client for the remote conversion service."""

from dataclasses import dataclass, field

import httpx

from liberate.config import Settings
from liberate.domain.errors import ConversionServiceError
from liberate.domain.types import ServiceItem

HANDLERS_ENDPOINT = "/convert-handlers"
POLICIES_ENDPOINT = "/extract-policies"


@dataclass
class Batch:
    """Items returned by one conversion call."""

    items: list[ServiceItem] = field(default_factory=list)
    manifest: str | None = None


def parse_batch(payload: object) -> Batch:
    """Validate a service response body.

    Args:
        payload: Decoded JSON body

    Returns:
        Batch of ``{"name", "content"}`` or ``{"name", "error"}`` items
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        raise ConversionServiceError("Malformed conversion response: missing 'items' list")

    items: list[ServiceItem] = []
    for raw in payload["items"]:
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
            raise ConversionServiceError("Malformed conversion response: item without name")
        item = {"name": raw["name"]}
        if isinstance(raw.get("content"), str):
            item["content"] = raw["content"]
        if raw.get("error"):
            item["error"] = str(raw["error"])
        items.append(item)

    manifest = payload.get("manifest")
    return Batch(items=items, manifest=manifest if isinstance(manifest, str) else None)


class HttpConversionService:
    """Conversion service reached over HTTP.

    Each call posts ``{"items": [{"name", "content"}, ...]}`` and expects the
    same shape back, optionally with a ``manifest`` string.
    """

    def __init__(self, config: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize the client.

        Args:
            config: Pipeline configuration. If None, creates new Settings() from environment.
            transport: Optional httpx transport, used by tests
        """
        self.config = config if config is not None else Settings()
        self.transport = transport

    async def convert_handlers(self, items: list[ServiceItem]) -> Batch:
        return await self._post(HANDLERS_ENDPOINT, items)

    async def extract_policies(self, items: list[ServiceItem]) -> Batch:
        return await self._post(POLICIES_ENDPOINT, items)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.conversion_api_token is not None:
            headers["Authorization"] = f"Bearer {self.config.conversion_api_token.get_secret_value()}"
        return headers

    async def _post(self, endpoint: str, items: list[ServiceItem]) -> Batch:
        async with httpx.AsyncClient(
            base_url=self.config.conversion_api_url,
            timeout=self.config.conversion_timeout,
            transport=self.transport,
        ) as client:
            try:
                resp = await client.post(endpoint, json={"items": items}, headers=self._headers())
                resp.raise_for_status()
                payload = resp.json()
            except httpx.HTTPStatusError as exc:
                raise ConversionServiceError(
                    f"{endpoint} returned {exc.response.status_code}: {exc.response.text[:200]}"
                ) from exc
            except httpx.HTTPError as exc:
                raise ConversionServiceError(f"{endpoint} failed: {exc}") from exc
            except ValueError as exc:
                raise ConversionServiceError(f"{endpoint} returned invalid JSON") from exc

        return parse_batch(payload)
