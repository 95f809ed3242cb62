"""
Connection Verifier

Checks that a set of credentials can reach the WhatsApp Business API.
"""

import logging
from dataclasses import dataclass

from crm_whatsapp.providers.base import Credentials, WhatsAppError, WhatsAppProvider

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "WhatsApp Business API connection verified successfully"


@dataclass
class VerificationResult:
    connected: bool
    message: str


class ConnectionVerifier:
    def __init__(self, provider: WhatsAppProvider):
        self.provider = provider

    async def verify(self, credentials: Credentials | None) -> VerificationResult:
        """Fetch the business profile. Failures are reported, never raised."""
        if credentials is None or not credentials.is_complete:
            return VerificationResult(
                connected=False,
                message="Access token and phone number ID are required",
            )

        try:
            await self.provider.get_business_profile(credentials)
        except WhatsAppError as e:
            logger.warning(f"WhatsApp connection check failed: {e}")
            return VerificationResult(connected=False, message=str(e))
        except Exception as e:
            logger.error(f"Unexpected error verifying WhatsApp connection: {e}", exc_info=True)
            return VerificationResult(connected=False, message=str(e) or type(e).__name__)

        return VerificationResult(connected=True, message=SUCCESS_MESSAGE)
