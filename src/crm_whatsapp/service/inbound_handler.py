"""
Inbound Message Handler

Processes incoming WhatsApp messages:
1. Skips messages already processed (redelivery)
2. Resolves or creates the lead
3. Normalizes content
4. Records the activity (notification and status transition included)

Also applies delivery status updates to previously indexed messages.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from crm_whatsapp.contracts.payloads import StatusUpdate
from crm_whatsapp.contracts.types import ActivityDirection, DeliveryStatus
from crm_whatsapp.persistence.stores import MessageIndex, UnitOfWork
from crm_whatsapp.routing.lead_resolver import LeadResolver
from crm_whatsapp.service.activity_recorder import ActivityFields, ActivityRecorder
from crm_whatsapp.service.normalizer import MessageNormalizer

logger = logging.getLogger(__name__)

UNKNOWN_CONTACT_NAME = "Unknown"

# Delivery states only move forward along this order. FAILED is handled apart.
_DELIVERY_RANK = {
    DeliveryStatus.PENDING.value: 0,
    DeliveryStatus.SENT.value: 1,
    DeliveryStatus.DELIVERED.value: 2,
    DeliveryStatus.READ.value: 3,
}


class _NoopUnitOfWork:
    def commit(self) -> None:
        return None

    def rollback(self) -> None:
        return None


class InboundHandler:
    """
    Handles incoming WhatsApp messages.

    Each message is committed on its own; a failure rolls back that message
    only and is reported in the result.
    """

    def __init__(
        self,
        lead_resolver: LeadResolver,
        recorder: ActivityRecorder,
        normalizer: MessageNormalizer | None = None,
        message_index: MessageIndex | None = None,
        unit_of_work: UnitOfWork | None = None,
    ):
        self.lead_resolver = lead_resolver
        self.recorder = recorder
        self.normalizer = normalizer or MessageNormalizer()
        self.message_index = message_index
        self.uow = unit_of_work or _NoopUnitOfWork()

    def process_message(
        self,
        raw_message: dict[str, Any],
        contact_name: str | None,
        tenant_id: int,
    ) -> dict[str, Any]:
        """
        Process a single inbound message.

        Args:
            raw_message: One entry of value.messages from the webhook
            contact_name: Sender display name from value.contacts, if any
            tenant_id: Tenant the webhook belongs to

        Returns:
            Processing result dict
        """
        message_id = raw_message.get("id")
        if not isinstance(message_id, str):
            message_id = None
        from_phone = raw_message.get("from")

        result: dict[str, Any] = {
            "message_id": message_id,
            "from": from_phone,
            "status": "processed",
        }

        if not from_phone or not isinstance(from_phone, str):
            logger.warning(f"Inbound message {message_id} has no sender, skipping")
            result["status"] = "skipped"
            result["reason"] = "missing_sender"
            return result

        contact_name = contact_name or UNKNOWN_CONTACT_NAME

        try:
            # Check idempotency
            if message_id and self._already_processed(message_id):
                logger.debug(f"Message {message_id} already processed, skipping")
                result["status"] = "skipped"
                result["reason"] = "already_processed"
                return result

            resolved = self.lead_resolver.resolve(from_phone, contact_name, tenant_id)
            lead = resolved.lead

            normalized = self.normalizer.normalize(raw_message)
            logger.debug(f"Processing {normalized.message_type} message for lead {lead.id}")

            activity = self.recorder.record(
                lead,
                ActivityDirection.INCOMING.value,
                ActivityFields(
                    content=normalized.content,
                    metadata={
                        "messageId": message_id,
                        "timestamp": raw_message.get("timestamp"),
                        "contactName": contact_name,
                        "phone": from_phone,
                        "messageType": normalized.message_type,
                    },
                    attachments=normalized.attachments,
                ),
            )

            self.uow.commit()

            result["lead_id"] = lead.id
            result["lead_created"] = resolved.created
            result["activity_id"] = activity.id

        except Exception as e:
            self.uow.rollback()
            logger.error(f"Failed to process inbound message {message_id}: {e}", exc_info=True)
            result["status"] = "failed"
            result["error"] = str(e)

        return result

    def _already_processed(self, message_id: str) -> bool:
        if self.message_index is None:
            return False
        return self.message_index.get_indexed_message(message_id) is not None


class StatusHandler:
    """
    Applies delivery/read receipts to indexed messages.

    States advance sent -> delivered -> read and never move back. failed
    applies from any state, and a failed message takes no further updates.
    """

    def __init__(
        self,
        message_index: MessageIndex | None = None,
        unit_of_work: UnitOfWork | None = None,
    ):
        self.message_index = message_index
        self.uow = unit_of_work or _NoopUnitOfWork()

    def handle_status(self, update: StatusUpdate) -> dict[str, Any]:
        """
        Handle a delivery status update.

        Returns:
            Processing result
        """
        logger.info(
            f"Message {update.message_id} status: {update.status_type}",
            extra={"recipient_id": update.recipient_id},
        )

        if self.message_index is None:
            return {"status": "skipped", "reason": "no_index"}

        entry = self.message_index.get_indexed_message(update.message_id)
        if entry is None:
            logger.debug(f"No message found for provider ID: {update.message_id}")
            return {"status": "skipped", "reason": "message_not_found"}

        new_status = update.status_type
        if not should_advance(entry.delivery_status, new_status):
            return {
                "status": "skipped",
                "reason": "not_forward",
                "current_status": entry.delivery_status,
            }

        try:
            self.message_index.update_delivery_status(
                entry,
                new_status,
                at=parse_timestamp(update.timestamp),
            )
            self.uow.commit()
        except Exception as e:
            self.uow.rollback()
            logger.error(f"Failed to apply status for {update.message_id}: {e}", exc_info=True)
            return {"status": "failed", "error": str(e)}

        return {
            "status": "updated",
            "activity_id": entry.activity_id,
            "new_status": new_status,
        }


def should_advance(current: str | None, new: str) -> bool:
    """True if moving a message from current to new delivery status is allowed."""
    if new == DeliveryStatus.FAILED.value:
        return current != DeliveryStatus.FAILED.value
    if current == DeliveryStatus.FAILED.value or new not in _DELIVERY_RANK:
        return False
    return _DELIVERY_RANK[new] > _DELIVERY_RANK.get(current or DeliveryStatus.PENDING.value, 0)


def parse_timestamp(value: str | None) -> datetime | None:
    """Provider timestamps are unix seconds as strings."""
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None
