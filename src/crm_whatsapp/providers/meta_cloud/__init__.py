"""Meta Cloud API WhatsApp provider."""

from crm_whatsapp.providers.meta_cloud.client import MetaCloudWhatsAppProvider
from crm_whatsapp.providers.meta_cloud.templates import build_template_components
from crm_whatsapp.providers.meta_cloud.webhook import (
    answer_subscription_challenge,
    check_request_signature,
    validate_signature,
    verify_webhook_challenge,
)

__all__ = [
    "MetaCloudWhatsAppProvider",
    "answer_subscription_challenge",
    "build_template_components",
    "check_request_signature",
    "validate_signature",
    "verify_webhook_challenge",
]
