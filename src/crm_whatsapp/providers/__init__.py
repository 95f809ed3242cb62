"""
WhatsApp Providers

Provider implementations for the WhatsApp Business API.
Supports Meta Cloud API (production) and Stub (development).
"""

from crm_whatsapp.providers.base import (
    Credentials,
    CredentialsNotFoundError,
    MessageKind,
    MessageValidationError,
    ProviderError,
    ProviderResponse,
    WhatsAppError,
    WhatsAppProvider,
)

__all__ = [
    "Credentials",
    "CredentialsNotFoundError",
    "MessageKind",
    "MessageValidationError",
    "ProviderError",
    "ProviderResponse",
    "WhatsAppError",
    "WhatsAppProvider",
    "get_provider",
]


def get_provider(provider_type: str | None = None) -> WhatsAppProvider:
    """
    Get the configured WhatsApp provider.

    Uses WHATSAPP_PROVIDER from settings if provider_type is not specified.
    """
    from crm_whatsapp.settings import get_settings

    settings = get_settings()
    provider_type = provider_type or settings.WHATSAPP_PROVIDER

    if provider_type == "stub":
        from crm_whatsapp.providers.stub import StubWhatsAppProvider

        return StubWhatsAppProvider()

    from crm_whatsapp.providers.meta_cloud import MetaCloudWhatsAppProvider

    return MetaCloudWhatsAppProvider.from_settings(settings)
