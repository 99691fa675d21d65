"""Shared test fixtures: settings, in-memory doubles and the FastAPI test client."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.dependencies import get_enricher, get_notifier, get_settings
from app.main import app
from app.services.discord_client import InMemoryNotifier
from app.services.github_client import InMemoryEnricher

WEBHOOK_SECRET = "dev-secret"


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a known secret, no inter-message delay and both event types."""
    return Settings(
        _env_file=None,
        github_webhook_secret=WEBHOOK_SECRET,
        supported_events="push,issues",
        delivery_delay_seconds=0.0,
        embed_title="",
        language_icon_template="https://icons.test/{slug}.svg",
        language_icon_fallback="https://icons.test/unknown.svg",
    )


@pytest.fixture
def mock_notifier() -> InMemoryNotifier:
    """Create a fresh in-memory notifier for test inspection."""
    return InMemoryNotifier()


@pytest.fixture
def mock_enricher() -> InMemoryEnricher:
    """Create an in-memory enricher with no canned commit details."""
    return InMemoryEnricher()


@pytest.fixture
async def client(
    test_settings: Settings,
    mock_notifier: InMemoryNotifier,
    mock_enricher: InMemoryEnricher,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient with dependencies overridden.

    Outbound Discord messages land in ``mock_notifier`` and commit
    enrichment comes from ``mock_enricher`` so no network access happens.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_notifier] = lambda: mock_notifier
    app.dependency_overrides[get_enricher] = lambda: mock_enricher
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio, the event loop the app is written for."""
    return "asyncio"
