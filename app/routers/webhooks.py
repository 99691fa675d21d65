"""GitHub webhook router: verify, classify, enrich, build and deliver."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.config import Settings
from app.dependencies import get_builder, get_enricher, get_notifier, get_settings
from app.schemas.webhooks import PushWebhookPayload, WebhookEnvelope
from app.services.classifier import Accepted, Ignored, classify
from app.services.discord_client import Notifier, deliver_all
from app.services.github_client import Enricher, enrich_push
from app.services.notification_builder import NotificationBuilder

logger = structlog.get_logger()

router = APIRouter(tags=["webhooks"])


@router.post("/webhook")
async def github_webhook(
    request: Request,
    config: Annotated[Settings, Depends(get_settings)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
    enricher: Annotated[Enricher, Depends(get_enricher)],
    builder: Annotated[NotificationBuilder, Depends(get_builder)],
) -> dict:
    """Receive a GitHub webhook delivery and relay it to Discord.

    The signature is checked against the raw body before anything else;
    a bad or missing signature returns 401 without any outbound call.
    """
    envelope = WebhookEnvelope.from_parts(await request.body(), request.headers)
    structlog.contextvars.bind_contextvars(
        delivery_id=envelope.header("x-github-delivery"),
        event_type=envelope.event_type,
    )
    try:
        outcome = classify(
            envelope,
            secret=config.github_webhook_secret.encode("utf-8"),
            allowed_events=config.allowed_events,
        )

        if isinstance(outcome, Ignored):
            logger.info("webhook_ignored", reason=outcome.reason)
            return {"status": "ignored", "reason": outcome.reason}

        if not isinstance(outcome, Accepted):
            logger.warning("webhook_rejected", reason=outcome.reason)
            raise HTTPException(
                status_code=(
                    status.HTTP_401_UNAUTHORIZED
                    if outcome.unauthorized
                    else status.HTTP_400_BAD_REQUEST
                ),
                detail=outcome.reason.capitalize(),
            )

        event = outcome.event
        enrichment = None
        if isinstance(event, PushWebhookPayload):
            enrichment = await enrich_push(enricher, event)

        messages = builder.build(event, enrichment)
        report = await deliver_all(notifier, messages, delay=config.delivery_delay_seconds)

        if report.sent == 0:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Failed to deliver notification",
            )

        logger.info("webhook_processed", sent=report.sent, failed=report.failed)
        return {
            "status": "processed",
            "messages_sent": report.sent,
            "messages_failed": report.failed,
        }
    finally:
        structlog.contextvars.unbind_contextvars("delivery_id", "event_type")
