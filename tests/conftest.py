"""
Pytest configuration and fixtures for Mfegraph tests.
"""

import sys
from collections import Counter
from pathlib import Path
from typing import Any

import httpx
import pytest

# Add the repository root to path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from mfegraph.engine import ResolutionEngine, SourceClients  # noqa: E402
from mfegraph.integrations.base import IntegrationConfig  # noqa: E402

REGISTRY_URL = "https://registry.example.com/v0/ep.global.config.json"

APP_SHELL_LIVE = "https://app-shell.example.com/"
APP_SHELL_TEST = "https://app-shell.test.example.com/"
NAVIGATION_LIVE = "https://navigation.example.com/"


class StubUpstream:
    """
    In-memory upstream serving JSON documents through httpx.MockTransport.

    Records every requested URL so tests can assert on fetch counts.
    """

    def __init__(self, documents: dict[str, Any] | None = None):
        self.documents: dict[str, Any] = dict(documents or {})
        self.raw: dict[str, bytes] = {}
        self.failures: dict[str, int] = {}
        self.requests: list[str] = []

    def add(self, href: str, document: Any) -> None:
        self.documents[href] = document

    def add_raw(self, href: str, body: bytes) -> None:
        self.raw[href] = body

    def fail(self, href: str, status_code: int = 500) -> None:
        self.failures[href] = status_code

    def count(self, href: str | None = None) -> int:
        if href is None:
            return len(self.requests)
        return Counter(self.requests)[href]

    def handler(self, request: httpx.Request) -> httpx.Response:
        href = str(request.url)
        self.requests.append(href)

        if href in self.failures:
            return httpx.Response(self.failures[href], text="upstream failure")
        if href in self.raw:
            return httpx.Response(200, content=self.raw[href])
        if href not in self.documents:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json=self.documents[href])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def registry_document() -> dict[str, Any]:
    """A registry with three apps, a self/mutual cycle and non-app entries."""
    return {
        "app-shell": {
            "type": "MFE_APP",
            "name": "App Shell",
            "dependencies": ["navigation", "app-shell"],
            "environments": {
                "live": {"href": APP_SHELL_LIVE},
                "test": {"href": APP_SHELL_TEST},
            },
        },
        "navigation": {
            "type": "MFE_APP",
            "name": "Navigation",
            "dependencies": ["app-shell"],
            "environments": {
                "live": {"href": NAVIGATION_LIVE},
            },
        },
        "dashboard": {
            "type": "MFE_APP",
            "name": "Dashboard",
            "dependencies": ["navigation", "does-not-exist"],
            "environments": {},
        },
        "analytics": {
            "type": "VENDOR",
            "name": "Analytics Vendor",
            "dependencies": [],
            "environments": {"live": {"href": "https://vendor.example.com/"}},
        },
        "api": {
            "type": "ENDPOINTS",
            "href": "https://api.example.com/",
        },
    }


def fleet_documents() -> dict[str, Any]:
    """Every upstream document of the test fleet, keyed by URL."""
    return {
        REGISTRY_URL: registry_document(),
        f"{APP_SHELL_LIVE}ep.builds.config.json": ["release", "feature-login"],
        f"{APP_SHELL_TEST}ep.builds.config.json": ["release"],
        f"{NAVIGATION_LIVE}ep.builds.config.json": ["release"],
        f"{APP_SHELL_LIVE}release/ep.metadata.config.json": {
            "buildId": "101",
            "buildName": "release",
        },
        f"{APP_SHELL_LIVE}feature-login/ep.metadata.config.json": {
            "buildId": "102",
            "buildName": "feature-login",
            "sourceName": "feature/login",
        },
        f"{APP_SHELL_TEST}release/ep.metadata.config.json": {
            "buildId": "201",
            "buildName": "release",
            "sourceName": "main",
        },
        f"{NAVIGATION_LIVE}release/ep.metadata.config.json": {
            "buildId": 301,
            "buildName": "release",
        },
    }


@pytest.fixture
def integration_config():
    """Client config without retries or delays."""
    return IntegrationConfig(timeout=5.0, max_retries=0, retry_delay=0.0)


@pytest.fixture
def upstream():
    """Stub upstream serving the test fleet."""
    return StubUpstream(fleet_documents())


@pytest.fixture
def sources(upstream, integration_config):
    """Source clients wired to the stub upstream."""
    return SourceClients.create(REGISTRY_URL, integration_config, transport=upstream.transport)


@pytest.fixture
def engine(sources):
    """Resolution engine over the stub upstream."""
    return ResolutionEngine(sources)
