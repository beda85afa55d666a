"""Shared fixtures for lens_mcp tests."""

from collections.abc import Iterator

import pytest
import respx

from lens_mcp.client import LensClient
from lens_mcp.config import Settings

BASE_URL = "http://test-lens:3001/api/"


@pytest.fixture(autouse=True)
def no_leaked_routes() -> Iterator[None]:
    """Fail a test that leaves routes on respx's global router."""
    yield
    leaked = list(respx.routes)
    respx.routes.clear()
    assert not leaked, f"respx routes leaked into the global router: {leaked}"


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        base_url=BASE_URL,
        timeout_seconds=5.0,
        port=3000,
    )


@pytest.fixture
def client(settings: Settings) -> LensClient:
    """Create test client."""
    return LensClient(settings)
