"""
WhatsApp Provider Base

Abstract interface for WhatsApp API providers and the error types shared by
every layer that talks to one.
Implementations: Meta Cloud API, Stub (for development).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class WhatsAppError(Exception):
    """Base class for WhatsApp integration errors."""


class MessageValidationError(WhatsAppError):
    """Required arguments for an outbound call are missing. Raised before any I/O."""


class CredentialsNotFoundError(WhatsAppError):
    """No credentials are configured for a tenant or the environment."""


class ProviderError(WhatsAppError):
    """Error from WhatsApp provider."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


class MessageKind(str, Enum):
    """Inbound message kinds with dedicated handling. Anything else is UNKNOWN."""

    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"
    AUDIO = "audio"
    VIDEO = "video"
    LOCATION = "location"
    CONTACTS = "contacts"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, type_str: str | None) -> "MessageKind":
        """Map a provider message type string to a kind."""
        try:
            kind = cls(type_str)
        except ValueError:
            return cls.UNKNOWN
        return kind


@dataclass(frozen=True)
class Credentials:
    """
    Provider credentials for one call.

    Supplied per call and never persisted by the services.
    """

    access_token: str
    phone_number_id: str
    business_account_id: str | None = None

    def __repr__(self) -> str:
        return (
            f"Credentials(phone_number_id={self.phone_number_id!r}, "
            f"business_account_id={self.business_account_id!r}, access_token=***)"
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.access_token and self.phone_number_id)


@dataclass
class ProviderResponse:
    """
    Response from provider after sending a message.
    """

    success: bool
    message_id: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


class WhatsAppProvider(ABC):
    """
    Abstract interface for WhatsApp API providers.

    Implementations must handle:
    - Sending text and template messages
    - Listing the account's message templates
    - Reading the business profile (connection check)
    """

    @abstractmethod
    async def send_text(
        self,
        credentials: Credentials,
        to: str,
        text: str,
    ) -> ProviderResponse:
        """
        Send a text message.

        Args:
            credentials: Token and phone number ID to send from
            to: Recipient phone number (digits only)
            text: Message text

        Returns:
            ProviderResponse with message ID if successful
        """
        ...

    @abstractmethod
    async def send_template(
        self,
        credentials: Credentials,
        to: str,
        template_name: str,
        language_code: str,
        components: list[dict[str, Any]] | None = None,
    ) -> ProviderResponse:
        """
        Send a template message.

        Args:
            credentials: Token and phone number ID to send from
            to: Recipient phone number (digits only)
            template_name: Approved template name
            language_code: Template language code (e.g., "en_US")
            components: Template components (header, body, buttons variables)

        Returns:
            ProviderResponse with message ID if successful
        """
        ...

    @abstractmethod
    async def list_templates(self, credentials: Credentials) -> list[dict[str, Any]]:
        """
        Fetch the message templates registered with the provider.

        Uses the business-account-scoped endpoint when a business account ID is
        known, otherwise the phone-number-scoped one.

        Raises:
            ProviderError: If the provider rejects the request
        """
        ...

    @abstractmethod
    async def get_business_profile(self, credentials: Credentials) -> dict[str, Any]:
        """
        Fetch the WhatsApp business profile for the phone number.

        Raises:
            ProviderError: If the credentials are rejected or the call fails
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        return None
