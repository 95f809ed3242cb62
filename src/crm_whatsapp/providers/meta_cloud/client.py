"""
Meta Cloud API WhatsApp Provider

Production provider for WhatsApp Business Cloud API.
Implements the Graph API calls used by the CRM: text and template sends,
template listing and the business profile lookup.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from crm_whatsapp.providers.base import (
    Credentials,
    ProviderError,
    ProviderResponse,
    WhatsAppProvider,
)

logger = logging.getLogger(__name__)

# Meta Graph API configuration
GRAPH_API_VERSION = "v17.0"
GRAPH_API_HOST = "https://graph.facebook.com"

# Upper bound on followed "paging.next" links when listing templates
MAX_TEMPLATE_PAGES = 20


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.retryable


class MetaCloudWhatsAppProvider(WhatsAppProvider):
    """
    Meta Cloud API provider for WhatsApp Business.

    Message sends are attempted once: the Graph API has no idempotency key, so
    a retried send can deliver twice. Read-only GETs retry transient failures
    (transport errors and 5xx) with exponential backoff.
    """

    def __init__(
        self,
        api_version: str = GRAPH_API_VERSION,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_wait: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = f"{GRAPH_API_HOST}/{api_version}"
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_wait = retry_wait
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings) -> "MetaCloudWhatsAppProvider":
        return cls(
            api_version=settings.WHATSAPP_GRAPH_API_VERSION,
            timeout=settings.WHATSAPP_HTTP_TIMEOUT,
            max_retries=settings.WHATSAPP_MAX_RETRIES,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _make_request(
        self,
        method: str,
        url: str,
        access_token: str,
        json_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated API request."""
        client = await self._get_client()

        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            if method.upper() == "GET":
                response = await client.get(url, headers=headers)
            else:
                response = await client.post(url, headers=headers, json=json_data)
        except httpx.RequestError as e:
            logger.error(f"HTTP request failed: {e}")
            raise ProviderError(
                message=f"HTTP request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            ) from e

        try:
            response_data = response.json()
        except ValueError:
            response_data = {}

        if response.status_code >= 400:
            error = response_data.get("error", {}) if isinstance(response_data, dict) else {}
            raise ProviderError(
                message=error.get("message") or response.reason_phrase or "Unknown error",
                code=str(error.get("code", response.status_code)),
                details=error,
                retryable=response.status_code >= 500,
            )

        return response_data

    async def _get_with_retry(self, url: str, access_token: str) -> dict[str, Any]:
        """GET with retries on transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait, max=10),
            retry=retry_if_exception(_is_transient),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._make_request("GET", url, access_token)
        raise ProviderError("Retry loop exited without a result", code="RETRY_EXHAUSTED")

    async def _send(
        self,
        credentials: Credentials,
        payload: dict[str, Any],
    ) -> ProviderResponse:
        url = f"{self.base_url}/{credentials.phone_number_id}/messages"

        try:
            response = await self._make_request("POST", url, credentials.access_token, payload)
        except ProviderError as e:
            logger.error(f"Failed to send {payload['type']} message: {e}")
            return ProviderResponse(
                success=False,
                error_code=e.code,
                error_message=str(e),
                raw_response=e.details,
            )

        messages = response.get("messages") or [{}]
        message_id = messages[0].get("id")

        return ProviderResponse(
            success=True,
            message_id=message_id,
            raw_response=response,
        )

    async def send_text(
        self,
        credentials: Credentials,
        to: str,
        text: str,
    ) -> ProviderResponse:
        """Send a text message via Graph API."""
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": text},
        }

        result = await self._send(credentials, payload)
        if result.success:
            logger.info(
                "Sent text message via Meta API",
                extra={"to": to, "message_id": result.message_id},
            )
        return result

    async def send_template(
        self,
        credentials: Credentials,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """Send a template message via Graph API."""
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "template",
            "template": {
                "name": template_name,
                "language": {"code": language_code},
            },
        }

        if components:
            payload["template"]["components"] = components

        result = await self._send(credentials, payload)
        if result.success:
            logger.info(
                "Sent template message via Meta API",
                extra={"to": to, "template": template_name, "message_id": result.message_id},
            )
        return result

    async def list_templates(self, credentials: Credentials) -> list[dict[str, Any]]:
        """List message templates, following pagination."""
        owner_id = credentials.business_account_id or credentials.phone_number_id
        url: str | None = f"{self.base_url}/{owner_id}/message_templates"

        templates: list[dict[str, Any]] = []
        pages = 0
        while url and pages < MAX_TEMPLATE_PAGES:
            data = await self._get_with_retry(url, credentials.access_token)
            templates.extend(data.get("data") or [])
            url = (data.get("paging") or {}).get("next")
            pages += 1

        logger.info(
            f"Fetched {len(templates)} templates from Meta API",
            extra={"owner_id": owner_id, "pages": pages},
        )
        return templates

    async def get_business_profile(self, credentials: Credentials) -> dict[str, Any]:
        """Fetch the business profile of the sending phone number."""
        url = f"{self.base_url}/{credentials.phone_number_id}/whatsapp_business_profile"
        return await self._get_with_retry(url, credentials.access_token)
