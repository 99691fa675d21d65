"""Discord embed limits and the serialized-size estimator.

Size is measured as the byte length of the compact UTF-8 JSON encoding of
a message or field list, which is what is actually sent on the wire.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from pydantic import BaseModel

from app.schemas.messages import EmbedField, OutboundMessage

TITLE_LIMIT = 256
DESCRIPTION_LIMIT = 4096
FIELD_NAME_LIMIT = 256
FIELD_VALUE_LIMIT = 1024
FIELD_COUNT_LIMIT = 25
FOOTER_LIMIT = 2048
AUTHOR_NAME_LIMIT = 256

# Hard ceiling for one serialized embed.
MESSAGE_SIZE_LIMIT = 6000

# A group of fields appended to the base message stays below this many bytes;
# larger content goes to a secondary message. Mirrors FIELD_VALUE_LIMIT.
FIELD_BLOCK_THRESHOLD = 1024

ELLIPSIS = "..."


def serialized_size(obj: BaseModel | Sequence[BaseModel]) -> int:
    """Return the UTF-8 byte length of ``obj`` as compact JSON.

    Accepts a single model (message or field) or a sequence of models.
    ``None`` values are omitted, matching ``OutboundMessage.to_embed``.
    """
    if isinstance(obj, BaseModel):
        data = obj.model_dump(exclude_none=True)
    else:
        data = [item.model_dump(exclude_none=True) for item in obj]
    encoded = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
    return len(encoded.encode("utf-8"))


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, ending in ``...`` when shortened."""
    if len(text) <= limit:
        return text
    return text[: max(limit - len(ELLIPSIS), 0)] + ELLIPSIS


def truncate_bytes(text: str, max_bytes: int) -> str:
    """Cut ``text`` to at most ``max_bytes`` UTF-8 bytes, ending in ``...``.

    Returns an empty string when not even the ellipsis fits. Never splits a
    multi-byte character.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    if max_bytes <= len(ELLIPSIS):
        return ""
    head = encoded[: max_bytes - len(ELLIPSIS)].decode("utf-8", errors="ignore")
    return head + ELLIPSIS


def _clamp_field(field: EmbedField) -> EmbedField:
    # Discord rejects empty field names and values.
    return field.model_copy(
        update={
            "name": truncate(field.name, FIELD_NAME_LIMIT) or "\u200b",
            "value": truncate(field.value, FIELD_VALUE_LIMIT) or "\u200b",
        }
    )


def clamp_message(message: OutboundMessage) -> OutboundMessage:
    """Return a copy of ``message`` that respects every embed limit.

    Text values are ellipsized to their caps and the field list is cut to
    FIELD_COUNT_LIMIT. While the serialized size is at or over
    MESSAGE_SIZE_LIMIT the description is shortened first; trailing fields
    are dropped only once the description is gone. Never raises.
    """
    update: dict = {
        "title": truncate(message.title, TITLE_LIMIT),
        "fields": [_clamp_field(f) for f in message.fields[:FIELD_COUNT_LIMIT]],
    }
    if message.description is not None:
        update["description"] = truncate(message.description, DESCRIPTION_LIMIT)
    if message.footer is not None:
        update["footer"] = message.footer.model_copy(
            update={"text": truncate(message.footer.text, FOOTER_LIMIT)}
        )
    if message.author is not None:
        update["author"] = message.author.model_copy(
            update={"name": truncate(message.author.name, AUTHOR_NAME_LIMIT)}
        )
    clamped = message.model_copy(update=update)

    while clamped.description and serialized_size(clamped) >= MESSAGE_SIZE_LIMIT:
        overshoot = serialized_size(clamped) - MESSAGE_SIZE_LIMIT + 1
        budget = len(clamped.description.encode("utf-8")) - overshoot
        clamped = clamped.model_copy(
            update={"description": truncate_bytes(clamped.description, budget) or None}
        )

    while clamped.fields and serialized_size(clamped) >= MESSAGE_SIZE_LIMIT:
        clamped = clamped.model_copy(update={"fields": clamped.fields[:-1]})
    return clamped
