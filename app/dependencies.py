"""Centralized FastAPI dependencies for use with Depends()."""

from typing import Annotated

import httpx
import structlog
from fastapi import Depends

from app.config import Settings, settings
from app.services.discord_client import (
    DiscardingNotifier,
    DiscordBotNotifier,
    DiscordWebhookNotifier,
    Notifier,
)
from app.services.github_client import Enricher, GitHubEnricher, NullEnricher
from app.services.notification_builder import BuilderOptions, NotificationBuilder

logger = structlog.get_logger()

_notifier: Notifier = DiscardingNotifier()
_enricher: Enricher = NullEnricher()


def init_production_deps(client: httpx.AsyncClient, config: Settings) -> None:
    """Swap the defaults for real Discord and GitHub implementations.

    Delivery uses the incoming-webhook URL when set, otherwise the bot token
    and channel id. With neither configured messages are logged and dropped,
    and a warning is logged at startup.
    """
    global _notifier, _enricher  # noqa: PLW0603

    mode = config.delivery_mode
    if mode == "webhook":
        _notifier = DiscordWebhookNotifier(
            client,
            config.discord_webhook_url,
            username=config.discord_username,
            timeout=config.delivery_timeout_seconds,
        )
    elif mode == "bot":
        _notifier = DiscordBotNotifier(
            client,
            config.discord_token,
            config.discord_channel_id,
            api_base=config.discord_api_base,
            timeout=config.delivery_timeout_seconds,
        )
    else:
        _notifier = DiscardingNotifier()
        logger.warning("discord_delivery_disabled")

    if config.enrich_commits:
        _enricher = GitHubEnricher(
            client,
            config.github_token,
            api_base=config.github_api_base,
            timeout=config.enrichment_timeout_seconds,
            concurrency=config.enrichment_concurrency,
        )


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings


def get_notifier() -> Notifier:
    """Return the application notifier instance.

    Defaults to DiscardingNotifier until a destination is configured.
    Swapped to a Discord implementation by ``init_production_deps()``.
    """
    return _notifier


def get_enricher() -> Enricher:
    """Return the application commit enricher.

    Defaults to NullEnricher (no enrichment) for development and testing.
    """
    return _enricher


def get_builder(config: Annotated[Settings, Depends(get_settings)]) -> NotificationBuilder:
    """Return a notification builder configured from settings."""
    return NotificationBuilder(
        BuilderOptions(
            title=config.embed_title,
            color=config.embed_color,
            icon_template=config.language_icon_template,
            icon_fallback=config.icon_fallback_url,
        )
    )


__all__ = [
    "get_builder",
    "get_enricher",
    "get_notifier",
    "get_settings",
    "init_production_deps",
]
