"""
Webhook Ingestor

Entry point for Meta webhook payloads. Walks every entry/change in order and
dispatches message changes to the inbound handler and receipts to the
status handler. Nothing here raises on bad input; problems are logged and
counted so the transport can always acknowledge the delivery.
"""

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from crm_whatsapp.contracts.payloads import StatusUpdate
from crm_whatsapp.providers.meta_cloud.webhook import (
    FIELD_MESSAGE_STATUS_UPDATES,
    FIELD_MESSAGES,
    extract_contact_name,
    iter_changes,
)
from crm_whatsapp.service.inbound_handler import InboundHandler, StatusHandler

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Counts for one webhook delivery."""

    messages_processed: int = 0
    messages_skipped: int = 0
    messages_failed: int = 0
    leads_created: int = 0
    statuses_updated: int = 0
    statuses_skipped: int = 0
    statuses_failed: int = 0
    changes_ignored: int = 0
    changes_failed: int = 0


class WebhookIngestor:
    """
    Ingests WhatsApp webhook payloads for one tenant at a time.

    Messages are handled strictly in delivery order, one after another.
    """

    def __init__(self, inbound_handler: InboundHandler, status_handler: StatusHandler):
        self.inbound = inbound_handler
        self.statuses = status_handler

    def ingest(self, payload: Any, tenant_id: int) -> IngestResult:
        """
        Process a webhook payload.

        Args:
            payload: Parsed webhook JSON
            tenant_id: Tenant the receiving phone number belongs to

        Returns:
            IngestResult with per-outcome counts
        """
        result = IngestResult()

        if not isinstance(payload, dict) or not isinstance(payload.get("entry"), list):
            logger.warning("Webhook payload has no entry list, dropping")
            return result

        for field, value in iter_changes(payload):
            try:
                self._dispatch_change(field, value, tenant_id, result)
            except Exception as e:
                logger.error(
                    f"Failed to process webhook change {field}: {e}",
                    exc_info=True,
                    extra={"tenant_id": tenant_id},
                )
                result.changes_failed += 1

        logger.info(
            f"Webhook ingested: {result.messages_processed} processed, "
            f"{result.messages_skipped} skipped, {result.messages_failed} failed, "
            f"{result.statuses_updated} statuses updated",
            extra={"tenant_id": tenant_id},
        )
        return result

    def _dispatch_change(
        self, field: str | None, value: dict[str, Any], tenant_id: int, result: IngestResult
    ) -> None:
        if field == FIELD_MESSAGES:
            self._handle_messages(value, tenant_id, result)
            # The live API delivers receipts under the messages field
            self._handle_statuses(value, result)

        elif field == FIELD_MESSAGE_STATUS_UPDATES:
            self._handle_statuses(value, result)

        else:
            logger.debug(f"Ignoring webhook change field: {field}")
            result.changes_ignored += 1

    def _handle_messages(self, value: dict[str, Any], tenant_id: int, result: IngestResult) -> None:
        messages = value.get("messages")
        if not isinstance(messages, list):
            return

        contact_name = extract_contact_name(value)
        logger.info(f"Processing {len(messages)} WhatsApp message(s)")

        for raw_message in messages:
            if not isinstance(raw_message, dict):
                result.messages_failed += 1
                continue

            outcome = self.inbound.process_message(raw_message, contact_name, tenant_id)
            status = outcome.get("status")
            if status == "processed":
                result.messages_processed += 1
                if outcome.get("lead_created"):
                    result.leads_created += 1
            elif status == "skipped":
                result.messages_skipped += 1
            else:
                result.messages_failed += 1

    def _handle_statuses(self, value: dict[str, Any], result: IngestResult) -> None:
        statuses = value.get("statuses")
        if not isinstance(statuses, list):
            return

        logger.info(f"Processing {len(statuses)} status update(s)")

        for raw_status in statuses:
            try:
                update = StatusUpdate.model_validate(raw_status)
            except ValidationError as e:
                logger.warning(f"Malformed status update dropped: {e}")
                result.statuses_failed += 1
                continue

            outcome = self.statuses.handle_status(update)
            status = outcome.get("status")
            if status == "updated":
                result.statuses_updated += 1
            elif status == "skipped":
                result.statuses_skipped += 1
            else:
                result.statuses_failed += 1
