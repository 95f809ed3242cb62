"""
Outbound Dispatcher

Validates and sends text and template messages through a WhatsApp provider.
"""

import logging
from dataclasses import dataclass
from typing import Any

from crm_whatsapp.contracts.payloads import DEFAULT_LANGUAGE_CODE, TemplateParameters
from crm_whatsapp.contracts.types import UNKNOWN_MESSAGE_ID
from crm_whatsapp.providers.base import (
    Credentials,
    MessageValidationError,
    ProviderError,
    ProviderResponse,
    WhatsAppProvider,
)
from crm_whatsapp.providers.meta_cloud.templates import build_template_components

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    message_id: str


class OutboundDispatcher:
    """
    Sends outbound messages.

    Each call makes at most one provider request and is never retried:
    re-sending can deliver the same message twice.
    """

    def __init__(self, provider: WhatsAppProvider):
        self.provider = provider

    async def send_text_message(
        self,
        to: str,
        message: str,
        credentials: Credentials | None,
    ) -> SendResult:
        """
        Send a free-form text message.

        Raises:
            MessageValidationError: If recipient, message or credentials are missing
            ProviderError: If the provider rejects the send
        """
        if not to or not message:
            raise MessageValidationError("Phone number and message are required")
        self._check_credentials(credentials)

        response = await self.provider.send_text(credentials, to, message)
        return self._to_result(response, to)

    async def send_template_message(
        self,
        to: str,
        template_name: str,
        parameters: TemplateParameters | dict[str, Any] | None,
        credentials: Credentials | None,
        language_code: str | None = None,
    ) -> SendResult:
        """
        Send an approved template with variable values.

        Args:
            to: Recipient phone number (digits only)
            template_name: Template name as registered with the provider
            parameters: Header, body and button values
            credentials: Provider credentials
            language_code: Template language, en_US if not given

        Raises:
            MessageValidationError: If recipient, template name or credentials are missing
            ProviderError: If the provider rejects the send
        """
        if not to or not template_name:
            raise MessageValidationError("Phone number and template name are required")
        self._check_credentials(credentials)

        components = build_template_components(parameters)
        response = await self.provider.send_template(
            credentials,
            to,
            template_name,
            language_code or DEFAULT_LANGUAGE_CODE,
            components,
        )
        return self._to_result(response, to)

    @staticmethod
    def _check_credentials(credentials: Credentials | None) -> None:
        if credentials is None or not credentials.is_complete:
            raise MessageValidationError("WhatsApp credentials are not configured")

    @staticmethod
    def _to_result(response: ProviderResponse, to: str) -> SendResult:
        if not response.success:
            logger.error(
                f"WhatsApp send failed: {response.error_message}",
                extra={"to": to, "error_code": response.error_code},
            )
            raise ProviderError(
                message=response.error_message or "Failed to send WhatsApp message",
                code=response.error_code,
                details=response.raw_response,
            )

        return SendResult(success=True, message_id=response.message_id or UNKNOWN_MESSAGE_ID)
