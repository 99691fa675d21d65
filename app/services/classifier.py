"""Decide what to do with an inbound webhook delivery.

Signature verification happens before the body is parsed. The outcome is one
of three small frozen dataclasses which the router maps onto HTTP responses.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

import structlog
from pydantic import ValidationError

from app.schemas.webhooks import (
    IssuesWebhookPayload,
    PushWebhookPayload,
    SupportedEvent,
    WebhookEnvelope,
)
from app.services.signature import verify_signature

logger = structlog.get_logger()

SIGNATURE_HEADER = "x-hub-signature-256"

# Maps an allow-list entry to the payload model that handles it.
EVENT_MODELS: dict[str, type[PushWebhookPayload] | type[IssuesWebhookPayload]] = {
    "push": PushWebhookPayload,
    "issues": IssuesWebhookPayload,
}


@dataclass(frozen=True)
class Accepted:
    event: SupportedEvent


@dataclass(frozen=True)
class Ignored:
    reason: str


@dataclass(frozen=True)
class Rejected:
    reason: str
    unauthorized: bool = False


Classification = Accepted | Ignored | Rejected


def classify(
    envelope: WebhookEnvelope,
    *,
    secret: bytes,
    allowed_events: Collection[str],
) -> Classification:
    """Verify, filter and parse one delivery.

    Args:
        envelope: The raw delivery.
        secret: Shared webhook secret.
        allowed_events: Event types to process (``push``, ``issues``).

    Returns:
        ``Rejected(unauthorized=True)`` on a bad signature,
        ``Rejected`` on an unparsable body, ``Ignored`` for unsupported events
        and empty pushes, ``Accepted`` with a typed payload otherwise.
    """
    if not verify_signature(secret, envelope.raw_body, envelope.header(SIGNATURE_HEADER)):
        return Rejected("invalid signature", unauthorized=True)

    event_type = envelope.event_type
    if event_type == "ping":
        return Ignored("ping")
    if event_type not in allowed_events or event_type not in EVENT_MODELS:
        return Ignored(f"unsupported event: {event_type or 'unknown'}")

    model = EVENT_MODELS[event_type]
    try:
        event = model.model_validate_json(envelope.raw_body)
    except ValidationError as exc:
        logger.warning("webhook_payload_invalid", event_type=event_type, errors=exc.error_count())
        return Rejected("malformed payload")

    if isinstance(event, PushWebhookPayload):
        if event.deleted:
            return Ignored("branch deleted")
        if not event.commits:
            return Ignored("no commits")
    elif event.action != "opened":
        return Ignored(f"unsupported issues action: {event.action}")

    return Accepted(event)
