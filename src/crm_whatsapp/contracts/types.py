"""
CRM value types shared by the WhatsApp services.
"""

from enum import Enum


class ActivityType(str, Enum):
    """Activity log entry types written by this integration."""

    WHATSAPP = "whatsapp"
    STATUS_CHANGE = "status_change"

    def __str__(self) -> str:
        return self.value


class ActivityDirection(str, Enum):
    """Direction of a logged communication."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"
    INTERNAL = "internal"

    def __str__(self) -> str:
        return self.value


class LeadStatus(str, Enum):
    """Lead statuses the integration reads or writes."""

    NEW = "new"
    UNREAD = "unread"
    CONTACTED = "contacted"

    def __str__(self) -> str:
        return self.value


class DeliveryStatus(str, Enum):
    """WhatsApp message delivery status."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


# Statuses from which an incoming message moves a lead to "contacted"
AUTO_CONTACT_STATUSES = frozenset({LeadStatus.NEW.value, LeadStatus.UNREAD.value})

LEAD_SOURCE_WHATSAPP_INBOUND = "whatsapp_inbound"
TEMPLATE_TYPE_WHATSAPP = "whatsapp"
NOTIFICATION_TYPE_MESSAGE = "message"

# Provider message ID placeholder when a send response carried none
UNKNOWN_MESSAGE_ID = "unknown"
