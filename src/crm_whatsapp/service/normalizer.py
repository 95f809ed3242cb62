"""
Message Normalizer

Turns a raw inbound WhatsApp message into display content, a message type
and optional attachment IDs. Every message yields a result; types without
dedicated handling get a generic description.
"""

from dataclasses import dataclass, field
from typing import Any

from crm_whatsapp.providers.base import MessageKind

_MEDIA_FALLBACKS = {
    MessageKind.IMAGE: "Sent an image",
    MessageKind.DOCUMENT: "Sent a document",
    MessageKind.VIDEO: "Sent a video",
}


@dataclass
class NormalizedMessage:
    content: str
    message_type: str
    attachments: list[str] | None = field(default=None)


class MessageNormalizer:
    """Normalizes inbound message payloads by type."""

    def normalize(self, raw_message: dict[str, Any]) -> NormalizedMessage:
        declared_type = raw_message.get("type") or "unknown"
        kind = MessageKind.from_type(declared_type)

        if kind == MessageKind.TEXT:
            text = raw_message.get("text") or {}
            return NormalizedMessage(content=text.get("body") or "", message_type=kind.value)

        elif kind in _MEDIA_FALLBACKS:
            media = raw_message.get(kind.value) or {}
            return NormalizedMessage(
                content=media.get("caption") or _MEDIA_FALLBACKS[kind],
                message_type=kind.value,
                attachments=_attachment_ids(media),
            )

        elif kind == MessageKind.AUDIO:
            media = raw_message.get("audio") or {}
            return NormalizedMessage(
                content="Sent an audio message",
                message_type=kind.value,
                attachments=_attachment_ids(media),
            )

        elif kind == MessageKind.LOCATION:
            location = raw_message.get("location") or {}
            lat = location.get("latitude")
            lng = location.get("longitude")
            return NormalizedMessage(
                content=f"Shared a location: {lat}, {lng}",
                message_type=kind.value,
            )

        elif kind == MessageKind.CONTACTS:
            return NormalizedMessage(
                content="Shared contact information",
                message_type=kind.value,
            )

        else:
            # Keep the declared type so unsupported kinds stay identifiable
            return NormalizedMessage(
                content=f"Sent a message of type: {declared_type}",
                message_type=declared_type,
            )


def _attachment_ids(media: dict[str, Any]) -> list[str] | None:
    media_id = media.get("id")
    return [media_id] if media_id else None
