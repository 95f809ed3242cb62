"""
Activity Recorder

Writes the canonical communication log for a lead and applies the side
effects of incoming messages:
1. Persists the activity (and indexes its provider message ID)
2. Notifies the lead's assigned user
3. Moves new/unread leads to contacted, logging the change
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from crm_whatsapp.contracts.types import (
    AUTO_CONTACT_STATUSES,
    NOTIFICATION_TYPE_MESSAGE,
    UNKNOWN_MESSAGE_ID,
    ActivityDirection,
    ActivityType,
    LeadStatus,
)
from crm_whatsapp.persistence.stores import ActivityStore, LeadStore, MessageIndex, NotificationSink

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "New WhatsApp Message"
NOTIFICATION_PREVIEW_CHARS = 50


@dataclass
class ActivityFields:
    """What to log for one message."""

    content: str
    type: str = ActivityType.WHATSAPP.value
    metadata: dict[str, Any] = field(default_factory=dict)
    attachments: list[str] | None = None


class ActivityRecorder:
    """
    Records lead activities.

    Activities are append-only: nothing here updates one after it is written.
    """

    def __init__(
        self,
        activity_store: ActivityStore,
        lead_store: LeadStore,
        notification_sink: NotificationSink,
        message_index: MessageIndex | None = None,
        system_user_id: int = 1,
    ):
        self.activities = activity_store
        self.leads = lead_store
        self.notifications = notification_sink
        self.message_index = message_index
        self.system_user_id = system_user_id

    def record(
        self,
        lead: Any,
        direction: str,
        fields: ActivityFields,
        user_id: int | None = None,
    ) -> Any:
        """
        Log an activity on a lead.

        Args:
            lead: Lead the activity belongs to
            direction: incoming, outgoing or internal
            fields: Content, type, metadata and attachments
            user_id: Acting user; defaults to the lead's assignee, then the system user

        Returns:
            The stored activity
        """
        direction = str(direction)
        assigned_user_id = getattr(lead, "assigned_user_id", None)

        activity = self.activities.create_activity(
            lead_id=lead.id,
            user_id=user_id or assigned_user_id or self.system_user_id,
            type=fields.type,
            direction=direction,
            content=fields.content,
            metadata=fields.metadata,
            attachments=fields.attachments,
        )
        self._index(activity, direction, fields.metadata)

        if direction == ActivityDirection.INCOMING.value:
            if assigned_user_id:
                self._notify(lead, assigned_user_id, fields.content)
            if lead.status in AUTO_CONTACT_STATUSES:
                self._mark_contacted(lead, assigned_user_id)

        return activity

    def _index(self, activity: Any, direction: str, metadata: dict[str, Any] | None) -> None:
        if self.message_index is None or not metadata:
            return

        message_id = metadata.get("messageId")
        if not message_id or message_id == UNKNOWN_MESSAGE_ID:
            return

        if self.message_index.get_indexed_message(message_id) is not None:
            logger.warning(f"Message {message_id} already indexed, not re-indexing")
            return

        self.message_index.index_message(message_id, activity, direction)

    def _notify(self, lead: Any, user_id: int, content: str) -> None:
        preview = content[:NOTIFICATION_PREVIEW_CHARS]
        if len(content) > NOTIFICATION_PREVIEW_CHARS:
            preview += "..."

        self.notifications.create_notification(
            user_id=user_id,
            type=NOTIFICATION_TYPE_MESSAGE,
            title=NOTIFICATION_TITLE,
            content=f"{lead.name}: {preview}",
            lead_id=lead.id,
        )

    def _mark_contacted(self, lead: Any, assigned_user_id: int | None) -> None:
        old_status = lead.status
        new_status = LeadStatus.CONTACTED.value

        self.leads.update_lead(lead, status=new_status)
        self.activities.create_activity(
            lead_id=lead.id,
            user_id=assigned_user_id or self.system_user_id,
            type=ActivityType.STATUS_CHANGE.value,
            direction=ActivityDirection.INTERNAL.value,
            content=f"Status changed from {old_status} to {new_status} (automated)",
            metadata={
                "oldStatus": old_status,
                "newStatus": new_status,
                "trigger": "incoming_message",
            },
        )
        logger.info(
            f"Lead {lead.id} moved from {old_status} to {new_status}",
            extra={"lead_id": lead.id},
        )
