"""Discord delivery with protocol-based swappable implementations.

Production code uses ``DiscordBotNotifier`` (bot token + channel id) or
``DiscordWebhookNotifier`` (incoming-webhook URL). Tests use
``InMemoryNotifier`` which records messages for assertion without network
access. ``DiscardingNotifier`` stands in when no destination is configured. ``deliver_all`` sends a batch sequentially with a pause between
messages.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from app.schemas.messages import OutboundMessage

logger = structlog.get_logger()

RATE_LIMITED = 429


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of sending one message."""

    ok: bool
    status_code: int | None = None
    detail: str = ""
    retry_after: float | None = None


@dataclass
class DeliveryReport:
    """Outcome of sending a batch of messages."""

    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)


class Notifier(Protocol):
    """Protocol for posting one message to the destination channel."""

    async def send(self, message: OutboundMessage) -> DeliveryResult:
        """Post ``message`` and report the outcome. Must not raise on HTTP errors."""
        ...


def _retry_after(resp: httpx.Response) -> float | None:
    """Read Discord's rate-limit wait from the JSON body or the header."""
    try:
        data = resp.json()
    except ValueError:
        data = {}
    value = data.get("retry_after") if isinstance(data, dict) else None
    if value is None:
        value = resp.headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


async def _post_embed(
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    *,
    headers: dict[str, str] | None = None,
    timeout: float,
) -> DeliveryResult:
    try:
        resp = await client.post(url, json=body, headers=headers, timeout=timeout)
    except httpx.HTTPError as exc:
        return DeliveryResult(ok=False, detail=f"{type(exc).__name__}: {exc}")

    if resp.is_success:
        return DeliveryResult(ok=True, status_code=resp.status_code)
    retry_after = _retry_after(resp) if resp.status_code == RATE_LIMITED else None
    return DeliveryResult(
        ok=False,
        status_code=resp.status_code,
        detail=resp.text[:500],
        retry_after=retry_after,
    )


class DiscordBotNotifier:
    """Send embeds through the bot API: ``POST /channels/{id}/messages``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        channel_id: str,
        *,
        api_base: str = "https://discord.com/api/v10",
        timeout: float = 15.0,
    ) -> None:
        self._client = client
        self._token = token
        self._url = f"{api_base.rstrip('/')}/channels/{channel_id}/messages"
        self._timeout = timeout

    async def send(self, message: OutboundMessage) -> DeliveryResult:
        return await _post_embed(
            self._client,
            self._url,
            {"embeds": [message.to_embed()]},
            headers={"Authorization": f"Bot {self._token}"},
            timeout=self._timeout,
        )


class DiscordWebhookNotifier:
    """Send embeds to a pre-shared incoming-webhook URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        webhook_url: str,
        *,
        username: str = "",
        avatar_url: str = "",
        timeout: float = 15.0,
    ) -> None:
        self._client = client
        self._url = webhook_url
        self._username = username
        self._avatar_url = avatar_url
        self._timeout = timeout

    async def send(self, message: OutboundMessage) -> DeliveryResult:
        body: dict[str, Any] = {"embeds": [message.to_embed()]}
        if self._username:
            body["username"] = self._username
        if self._avatar_url:
            body["avatar_url"] = self._avatar_url
        return await _post_embed(self._client, self._url, body, timeout=self._timeout)


class InMemoryNotifier:
    """Test double that records sent messages.

    ``fail_on`` holds zero-based send indexes that should report failure.
    """

    def __init__(self, fail_on: Sequence[int] = ()) -> None:
        self.messages: list[OutboundMessage] = []
        self.fail_on = set(fail_on)
        self._attempts = 0

    async def send(self, message: OutboundMessage) -> DeliveryResult:
        attempt = self._attempts
        self._attempts += 1
        if attempt in self.fail_on:
            return DeliveryResult(ok=False, status_code=500, detail="simulated failure")
        self.messages.append(message)
        return DeliveryResult(ok=True, status_code=200)


class DiscardingNotifier:
    """Used when no Discord destination is configured.

    Logs each message title and drops it. Nothing is kept in memory.
    """

    async def send(self, message: OutboundMessage) -> DeliveryResult:
        logger.info("delivery_disabled_drop", title=message.title, fields=len(message.fields))
        return DeliveryResult(ok=True, detail="delivery disabled")


async def deliver_all(
    notifier: Notifier,
    messages: Sequence[OutboundMessage],
    *,
    delay: float = 1.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> DeliveryReport:
    """Send ``messages`` one at a time, in order.

    Waits ``delay`` seconds between messages, or the server's ``retry_after``
    when the previous send was rate limited. Failures are logged and counted
    but never retried, and do not stop later messages.
    """
    report = DeliveryReport()
    for index, message in enumerate(messages):
        if index:
            previous = report.results[-1]
            await sleep(max(delay, previous.retry_after or 0.0))

        result = await notifier.send(message)
        report.results.append(result)
        if not result.ok:
            logger.warning(
                "delivery_failed",
                index=index,
                status_code=result.status_code,
                detail=result.detail,
                retry_after=result.retry_after,
            )

    logger.info("delivery_finished", sent=report.sent, failed=report.failed)
    return report
