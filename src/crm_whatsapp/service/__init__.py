"""
WhatsApp Service Layer

Outbound sends, webhook ingestion, activity recording and template sync.
"""

from crm_whatsapp.service.activity_recorder import ActivityFields, ActivityRecorder
from crm_whatsapp.service.connection_verifier import ConnectionVerifier, VerificationResult
from crm_whatsapp.service.credentials import resolve_credentials
from crm_whatsapp.service.inbound_handler import InboundHandler, StatusHandler
from crm_whatsapp.service.normalizer import MessageNormalizer, NormalizedMessage
from crm_whatsapp.service.outbound_dispatcher import OutboundDispatcher, SendResult
from crm_whatsapp.service.outbound_handler import OutboundHandler
from crm_whatsapp.service.template_sync import TemplateSynchronizer, TemplateSyncReport
from crm_whatsapp.service.webhook_ingestor import IngestResult, WebhookIngestor

__all__ = [
    "ActivityFields",
    "ActivityRecorder",
    "ConnectionVerifier",
    "VerificationResult",
    "resolve_credentials",
    "InboundHandler",
    "StatusHandler",
    "MessageNormalizer",
    "NormalizedMessage",
    "OutboundDispatcher",
    "SendResult",
    "OutboundHandler",
    "TemplateSynchronizer",
    "TemplateSyncReport",
    "IngestResult",
    "WebhookIngestor",
]
