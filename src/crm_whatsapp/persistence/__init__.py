"""
CRM Persistence

Store protocols consumed by the WhatsApp services, and the SQLAlchemy
models/repository that implement them.
"""

from crm_whatsapp.persistence.models import (
    CrmBase,
    Lead,
    LeadActivity,
    MessageTemplate,
    Notification,
    WhatsAppIntegration,
    WhatsAppMessageIndex,
)
from crm_whatsapp.persistence.repo import CrmRepository
from crm_whatsapp.persistence.stores import (
    ActivityStore,
    CredentialSource,
    LeadStore,
    MessageIndex,
    NotificationSink,
    TemplateStore,
    UnitOfWork,
)

__all__ = [
    "CrmBase",
    "Lead",
    "LeadActivity",
    "MessageTemplate",
    "Notification",
    "WhatsAppIntegration",
    "WhatsAppMessageIndex",
    "CrmRepository",
    "ActivityStore",
    "CredentialSource",
    "LeadStore",
    "MessageIndex",
    "NotificationSink",
    "TemplateStore",
    "UnitOfWork",
]
