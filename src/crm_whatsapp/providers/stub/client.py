"""
Stub WhatsApp Provider

Development provider that logs all operations without making real API calls.
Useful for local development and testing.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from crm_whatsapp.providers.base import (
    Credentials,
    ProviderError,
    ProviderResponse,
    WhatsAppProvider,
)

logger = logging.getLogger(__name__)


class StubWhatsAppProvider(WhatsAppProvider):
    """
    Stub provider for development and testing.

    - Logs all outbound messages
    - Generates fake message IDs
    - Serves a configurable template list
    - Can be configured to simulate failures
    """

    def __init__(
        self,
        templates: list[dict[str, Any]] | None = None,
        simulate_failures: bool = False,
        failure_rate: float = 0.1,
    ):
        self.templates = list(templates or [])
        self.simulate_failures = simulate_failures
        self.failure_rate = failure_rate
        self.sent_messages: list[dict[str, Any]] = []

    async def send_text(
        self,
        credentials: Credentials,
        to: str,
        text: str,
    ) -> ProviderResponse:
        """Log and return success for text message."""
        message_id = f"stub_msg_{uuid4().hex[:16]}"

        self.sent_messages.append({
            "type": "text",
            "phone_number_id": credentials.phone_number_id,
            "to": to,
            "text": text,
            "message_id": message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        logger.info(
            "[STUB] Sending text message",
            extra={
                "to": to,
                "text": text[:100] + "..." if len(text) > 100 else text,
                "message_id": message_id,
            },
        )

        return self._response(message_id)

    async def send_template(
        self,
        credentials: Credentials,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """Log and return success for template message."""
        message_id = f"stub_tmpl_{uuid4().hex[:16]}"

        self.sent_messages.append({
            "type": "template",
            "phone_number_id": credentials.phone_number_id,
            "to": to,
            "template_name": template_name,
            "language_code": language_code,
            "components": components,
            "message_id": message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        logger.info(
            "[STUB] Sending template message",
            extra={
                "to": to,
                "template": template_name,
                "language": language_code,
                "message_id": message_id,
            },
        )

        return self._response(message_id)

    async def list_templates(self, credentials: Credentials) -> list[dict[str, Any]]:
        """Return the configured template list."""
        if self._should_fail():
            raise ProviderError("Simulated failure for testing", code="STUB_SIMULATED_FAILURE")
        logger.debug(f"[STUB] Listing {len(self.templates)} templates")
        return list(self.templates)

    async def get_business_profile(self, credentials: Credentials) -> dict[str, Any]:
        """Return a fixed profile."""
        if self._should_fail():
            raise ProviderError("Simulated failure for testing", code="STUB_SIMULATED_FAILURE")
        return {"data": [{"about": "Stub business", "messaging_product": "whatsapp"}]}

    def _response(self, message_id: str) -> ProviderResponse:
        if self._should_fail():
            return ProviderResponse(
                success=False,
                error_code="STUB_SIMULATED_FAILURE",
                error_message="Simulated failure for testing",
            )

        return ProviderResponse(
            success=True,
            message_id=message_id,
            raw_response={"stub": True, "message_id": message_id},
        )

    def _should_fail(self) -> bool:
        """Check if we should simulate a failure."""
        if not self.simulate_failures:
            return False
        return random.random() < self.failure_rate
