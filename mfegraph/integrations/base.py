"""
Base classes for Mfegraph document sources.

Every upstream source is a static JSON document reachable over HTTP. This
module owns the shared mechanics: client lifecycle, retries, status mapping
and JSON decoding. Source adapters only decide *which* href to fetch and how
to shape the decoded document.

Design Principles:
1. Async-first: All I/O operations are async
2. Read-only: Only GET requests are ever issued
3. Observable: Logging hooks for requests and responses
4. Resilient: Built-in retry with exponential backoff

Retry Strategy:
    - Retryable errors: timeouts, network errors, 429, 5xx
    - Non-retryable: 4xx (except 429), malformed documents
    - Backoff: exponential with jitter
"""

from __future__ import annotations

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class IntegrationError(Exception):
    """Base exception for upstream document errors."""

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        href: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.integration = integration
        self.href = href
        self.status_code = status_code
        self.response_body = response_body
        self.retryable = retryable

    def __str__(self) -> str:
        parts = [f"[{self.integration}] {self.args[0]}"]
        if self.status_code:
            parts.append(f"(status={self.status_code})")
        return " ".join(parts)


class RateLimitError(IntegrationError):
    """Raised when the document host throttles us (429)."""

    def __init__(
        self,
        message: str,
        integration: str,
        *,
        retry_after: float | None = None,
        **kwargs,
    ):
        super().__init__(message, integration, retryable=True, **kwargs)
        self.retry_after = retry_after


class NotFoundError(IntegrationError):
    """Raised when a document does not exist (404)."""

    def __init__(self, message: str, integration: str, **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


class DocumentError(IntegrationError):
    """Raised when a document is not valid JSON or has an unexpected shape."""

    def __init__(self, message: str, integration: str, **kwargs):
        super().__init__(message, integration, retryable=False, **kwargs)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class IntegrationConfig:
    """Configuration for a document source client."""

    # Connection
    timeout: float = 10.0
    max_connections: int = 20

    # Retries
    max_retries: int = 2
    retry_delay: float = 0.5

    # Observability
    log_requests: bool = False
    log_responses: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")


# =============================================================================
# Helpers
# =============================================================================


def join_href(base_href: str, relative_path: str, *, integration: str) -> str:
    """
    Resolve a relative document path against a base location.

    Follows URL-join semantics: a base without a trailing slash has its last
    path segment replaced.

    Raises:
        DocumentError: If the base is not an absolute http(s) URL
    """
    try:
        base = httpx.URL(base_href)
    except (httpx.InvalidURL, TypeError) as e:
        raise DocumentError(
            f"Malformed base href {base_href!r}: {e}",
            integration,
            href=str(base_href),
        ) from e

    if base.scheme not in ("http", "https") or not base.host:
        raise DocumentError(
            f"Malformed base href {base_href!r}: expected an absolute http(s) URL",
            integration,
            href=base_href,
        )

    return str(base.join(relative_path))


# =============================================================================
# Base Client
# =============================================================================


class IntegrationClient(ABC):
    """
    Abstract base class for JSON document sources.

    Provides common functionality:
    - HTTP client management
    - Error handling and mapping
    - Request/response logging
    - Retry with backoff

    Subclasses must implement:
    - name: Source identifier used in logs and errors
    """

    def __init__(
        self,
        config: IntegrationConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the source client.

        Args:
            config: Source configuration
            transport: Optional httpx transport (used by tests to stub upstream)
        """
        self.config = config or IntegrationConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this source."""
        ...

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                limits=httpx.Limits(max_connections=self.config.max_connections),
                headers={"Accept": "application/json"},
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, href: str) -> Any:
        """
        Fetch a document and decode it as JSON.

        Args:
            href: Absolute document location

        Returns:
            The decoded JSON value

        Raises:
            IntegrationError: On transport failure or after max retries
            DocumentError: If the body is not valid JSON
        """
        response = await self._request("GET", href)

        try:
            return response.json()
        except ValueError as e:
            raise DocumentError(
                f"Document at {href} is not valid JSON: {e}",
                self.name,
                href=href,
                status_code=response.status_code,
            ) from e

    async def _request(
        self,
        method: str,
        href: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an HTTP request with retry and exponential backoff.

        Args:
            method: HTTP method
            href: Absolute URL
            params: Query parameters

        Returns:
            httpx.Response

        Raises:
            IntegrationError: On any non-retryable error or after max retries
        """
        last_error: IntegrationError | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                return await self._do_request(method, href, params=params)
            except IntegrationError as e:
                last_error = e

                if not e.retryable:
                    raise

                if attempt >= self.config.max_retries:
                    logger.warning(
                        f"[{self.name}] Max retries ({self.config.max_retries}) "
                        f"reached for {method} {href}"
                    )
                    raise

                backoff = self._calculate_backoff(attempt, e)
                logger.info(
                    f"[{self.name}] Retry {attempt + 1}/{self.config.max_retries} "
                    f"for {method} {href} after {backoff:.2f}s"
                )
                await asyncio.sleep(backoff)

        # Should never reach here, but satisfy type checker
        if last_error:
            raise last_error
        raise IntegrationError("Unknown error", self.name, href=href)

    def _calculate_backoff(
        self,
        attempt: int,
        error: IntegrationError,
    ) -> float:
        """
        Calculate backoff delay with exponential growth and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
            error: The error that triggered the retry

        Returns:
            Delay in seconds
        """
        if isinstance(error, RateLimitError) and error.retry_after:
            return error.retry_after

        base_delay = self.config.retry_delay * (2 ** attempt)

        # Add jitter (±25%)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)

        return min(base_delay + jitter, 30.0)

    async def _do_request(
        self,
        method: str,
        href: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Execute a single HTTP request.

        This is the internal method that _request wraps with retry logic.
        """
        client = await self._get_client()

        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {href} params={params}")

        try:
            response = await client.request(method=method, url=href, params=params)
        except httpx.TimeoutException as e:
            raise IntegrationError(
                f"Request timeout: {e}",
                self.name,
                href=href,
                retryable=True,
            ) from e
        except httpx.NetworkError as e:
            raise IntegrationError(
                f"Network error: {e}",
                self.name,
                href=href,
                retryable=True,
            ) from e
        except httpx.HTTPError as e:
            raise IntegrationError(
                f"HTTP error: {e}",
                self.name,
                href=href,
            ) from e

        if self.config.log_responses:
            logger.debug(
                f"[{self.name}] Response: status={response.status_code} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        self._check_response(response, href)
        return response

    def _check_response(self, response: httpx.Response, href: str) -> None:
        """
        Check response for errors and raise appropriate exceptions.

        Raises:
            RateLimitError: For 429
            NotFoundError: For 404
            IntegrationError: For other errors
        """
        if response.is_success:
            return

        status = response.status_code
        body = response.text

        if status == 429:
            retry_after = response.headers.get("Retry-After")
            try:
                retry_after_seconds = float(retry_after) if retry_after else None
            except ValueError:
                retry_after_seconds = None
            raise RateLimitError(
                "Rate limit exceeded",
                self.name,
                href=href,
                status_code=status,
                response_body=body,
                retry_after=retry_after_seconds,
            )

        if status == 404:
            raise NotFoundError(
                f"Document not found: {href}",
                self.name,
                href=href,
                status_code=status,
                response_body=body,
            )

        raise IntegrationError(
            f"Request failed: {href}",
            self.name,
            href=href,
            status_code=status,
            response_body=body,
            retryable=status >= 500,
        )

    async def __aenter__(self) -> "IntegrationClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
