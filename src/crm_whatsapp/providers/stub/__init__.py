"""Stub WhatsApp provider for development and tests."""

from crm_whatsapp.providers.stub.client import StubWhatsAppProvider

__all__ = ["StubWhatsAppProvider"]
