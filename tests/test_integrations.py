"""
Tests for the document source client base.

Tests cover:
- IntegrationConfig validation
- href joining
- HTTP status to exception mapping
- JSON decoding
- Retry with backoff
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from mfegraph.integrations.base import (
    DocumentError,
    IntegrationClient,
    IntegrationConfig,
    IntegrationError,
    NotFoundError,
    RateLimitError,
    join_href,
)

from conftest import StubUpstream

DOC_URL = "https://docs.example.com/doc.json"


class DocumentClient(IntegrationClient):
    """Minimal concrete client for exercising the base class."""

    @property
    def name(self) -> str:
        return "docs"

    async def fetch(self, href: str):
        return await self._get_json(href)


# =============================================================================
# Configuration
# =============================================================================


class TestIntegrationConfig:
    """Tests for IntegrationConfig."""

    def test_defaults(self):
        config = IntegrationConfig()
        assert config.timeout == 10.0
        assert config.max_retries == 2
        assert config.max_connections == 20

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="timeout"):
            IntegrationConfig(timeout=0)

    def test_rejects_negative_retries(self):
        with pytest.raises(ValueError, match="max_retries"):
            IntegrationConfig(max_retries=-1)

    def test_config_is_immutable(self):
        config = IntegrationConfig()
        with pytest.raises(AttributeError):
            config.timeout = 1.0


# =============================================================================
# join_href
# =============================================================================


class TestJoinHref:
    """Tests for resolving document paths against a base href."""

    def test_joins_against_directory(self):
        assert (
            join_href("https://app.example.com/", "ep.builds.config.json", integration="t")
            == "https://app.example.com/ep.builds.config.json"
        )

    def test_replaces_last_segment_without_trailing_slash(self):
        assert (
            join_href("https://app.example.com/live", "ep.builds.config.json", integration="t")
            == "https://app.example.com/ep.builds.config.json"
        )

    def test_nested_relative_path(self):
        assert (
            join_href("https://app.example.com/live/", "release/ep.metadata.config.json", integration="t")
            == "https://app.example.com/live/release/ep.metadata.config.json"
        )

    @pytest.mark.parametrize("href", ["not a url", "/relative/path/", "ftp://files.example.com/", ""])
    def test_rejects_malformed_base(self, href):
        with pytest.raises(DocumentError, match="Malformed base href"):
            join_href(href, "ep.builds.config.json", integration="t")


# =============================================================================
# Requests
# =============================================================================


class TestDocumentFetch:
    """Tests for fetching and decoding documents."""

    @pytest.mark.asyncio
    async def test_returns_decoded_json(self, integration_config):
        upstream = StubUpstream({DOC_URL: {"hello": "world"}})
        client = DocumentClient(integration_config, transport=upstream.transport)

        assert await client.fetch(DOC_URL) == {"hello": "world"}
        assert upstream.count(DOC_URL) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_invalid_json_raises_document_error(self, integration_config):
        upstream = StubUpstream()
        upstream.add_raw(DOC_URL, b"<html>oops</html>")
        client = DocumentClient(integration_config, transport=upstream.transport)

        with pytest.raises(DocumentError, match="not valid JSON") as exc_info:
            await client.fetch(DOC_URL)
        assert exc_info.value.href == DOC_URL

    @pytest.mark.asyncio
    async def test_404_raises_not_found(self, integration_config):
        client = DocumentClient(integration_config, transport=StubUpstream().transport)

        with pytest.raises(NotFoundError) as exc_info:
            await client.fetch(DOC_URL)
        assert exc_info.value.status_code == 404
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_429_raises_rate_limit_with_retry_after(self, integration_config):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "3"}, text="slow down")

        client = DocumentClient(integration_config, transport=httpx.MockTransport(handler))

        with pytest.raises(RateLimitError) as exc_info:
            await client.fetch(DOC_URL)
        assert exc_info.value.retry_after == 3.0
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_5xx_is_retryable(self, integration_config):
        upstream = StubUpstream()
        upstream.fail(DOC_URL, 503)
        client = DocumentClient(integration_config, transport=upstream.transport)

        with pytest.raises(IntegrationError) as exc_info:
            await client.fetch(DOC_URL)
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable
        assert "[docs]" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error_is_wrapped(self, integration_config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = DocumentClient(integration_config, transport=httpx.MockTransport(handler))

        with pytest.raises(IntegrationError, match="Network error") as exc_info:
            await client.fetch(DOC_URL)
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self, integration_config):
        upstream = StubUpstream({DOC_URL: []})
        async with DocumentClient(integration_config, transport=upstream.transport) as client:
            await client.fetch(DOC_URL)
            assert client._client is not None
        assert client._client is None


# =============================================================================
# Retry
# =============================================================================


class TestRetry:
    """Tests for retry with backoff."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        responses = iter([
            httpx.Response(502, text="bad gateway"),
            httpx.Response(200, json={"ok": True}),
        ])
        calls = []

        def handler(request):
            calls.append(request)
            return next(responses)

        client = DocumentClient(
            IntegrationConfig(max_retries=2, retry_delay=0.0),
            transport=httpx.MockTransport(handler),
        )

        with patch("mfegraph.integrations.base.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            assert await client.fetch(DOC_URL) == {"ok": True}

        assert len(calls) == 2
        mock_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        upstream = StubUpstream()
        upstream.fail(DOC_URL, 500)
        client = DocumentClient(
            IntegrationConfig(max_retries=2, retry_delay=0.0),
            transport=upstream.transport,
        )

        with patch("mfegraph.integrations.base.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(IntegrationError):
                await client.fetch(DOC_URL)

        assert upstream.count(DOC_URL) == 3

    @pytest.mark.asyncio
    async def test_does_not_retry_not_found(self):
        upstream = StubUpstream()
        client = DocumentClient(
            IntegrationConfig(max_retries=3, retry_delay=0.0),
            transport=upstream.transport,
        )

        with pytest.raises(NotFoundError):
            await client.fetch(DOC_URL)

        assert upstream.count(DOC_URL) == 1

    def test_backoff_uses_retry_after(self):
        client = DocumentClient(IntegrationConfig(retry_delay=1.0))
        error = RateLimitError("slow down", "docs", retry_after=7.0)
        assert client._calculate_backoff(0, error) == 7.0

    def test_backoff_grows_exponentially(self):
        client = DocumentClient(IntegrationConfig(retry_delay=1.0))
        error = IntegrationError("boom", "docs", retryable=True)

        with patch("mfegraph.integrations.base.random.random", return_value=0.5):
            assert client._calculate_backoff(0, error) == 1.0
            assert client._calculate_backoff(2, error) == 4.0
            assert client._calculate_backoff(10, error) == 30.0
