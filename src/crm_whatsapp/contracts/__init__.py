"""
WhatsApp Integration Contracts

Value types and payload models shared across the integration.
"""

from crm_whatsapp.contracts.payloads import (
    DEFAULT_LANGUAGE_CODE,
    ProviderTemplate,
    StatusUpdate,
    TemplateParameters,
)
from crm_whatsapp.contracts.types import (
    ActivityDirection,
    ActivityType,
    DeliveryStatus,
    LeadStatus,
)

__all__ = [
    "DEFAULT_LANGUAGE_CODE",
    "ProviderTemplate",
    "StatusUpdate",
    "TemplateParameters",
    "ActivityDirection",
    "ActivityType",
    "DeliveryStatus",
    "LeadStatus",
]
