"""Unit tests for the conversion service HTTP client."""

import json

import httpx
import pytest

from liberate.config import Settings
from liberate.domain.errors import ConversionServiceError
from liberate.operations.convert import HttpConversionService, parse_batch


class TestParseBatch:
    """Test response validation."""

    def test_items_and_manifest(self):
        batch = parse_batch(
            {
                "items": [{"name": "a", "content": "x"}, {"name": "b", "error": "nope"}],
                "manifest": "services: {}",
            }
        )

        assert batch.items == [{"name": "a", "content": "x"}, {"name": "b", "error": "nope"}]
        assert batch.manifest == "services: {}"

    def test_missing_items_is_an_error(self):
        with pytest.raises(ConversionServiceError):
            parse_batch({"routes": []})

    def test_item_without_name_is_an_error(self):
        with pytest.raises(ConversionServiceError):
            parse_batch({"items": [{"content": "x"}]})


class TestHttpConversionService:
    """Test requests against a mock transport."""

    @pytest.mark.asyncio
    async def test_posts_batch_with_bearer_token(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"items": [{"name": "a", "content": "route"}]})

        config = Settings(
            conversion_api_url="https://convert.test",
            conversion_api_token="s3cret",
            state_file=tmp_path / "state.json",
        )
        client = HttpConversionService(config, transport=httpx.MockTransport(handler))

        batch = await client.convert_handlers([{"name": "a", "content": "src"}])

        assert seen["path"] == "/convert-handlers"
        assert seen["auth"] == "Bearer s3cret"
        assert seen["body"] == {"items": [{"name": "a", "content": "src"}]}
        assert batch.items == [{"name": "a", "content": "route"}]

    @pytest.mark.asyncio
    async def test_http_error_raises(self, config):
        transport = httpx.MockTransport(lambda request: httpx.Response(502, text="bad gateway"))
        client = HttpConversionService(config, transport=transport)

        with pytest.raises(ConversionServiceError, match="502"):
            await client.extract_policies([{"name": "m.sql", "content": "x"}])

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, config):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        client = HttpConversionService(config, transport=transport)

        with pytest.raises(ConversionServiceError, match="invalid JSON"):
            await client.convert_handlers([{"name": "a", "content": "x"}])

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, config):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = HttpConversionService(config, transport=httpx.MockTransport(handler))

        with pytest.raises(ConversionServiceError, match="failed"):
            await client.convert_handlers([{"name": "a", "content": "x"}])
