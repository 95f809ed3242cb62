"""
WhatsApp Payload Models

Pydantic models for the provider data the integration consumes and the
parameters callers pass in. Unknown provider fields are ignored.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LANGUAGE_CODE = "en_US"


class TemplateParameters(BaseModel):
    """
    Variable values for a template send.

    header fills the header text parameter, body fills the body parameters in
    order, and each entry of buttons becomes a quick-reply payload.
    """

    model_config = ConfigDict(extra="ignore")

    header: str | None = Field(None, description="Header text parameter")
    body: list[str] = Field(default_factory=list, description="Body text parameters, in order")
    buttons: list[str] = Field(default_factory=list, description="Quick-reply button payloads")


class ProviderTemplate(BaseModel):
    """
    A message template as returned by the provider's template listing.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    name: str
    status: str | None = None
    category: str | None = None
    language: str | None = None
    language_policy: dict[str, Any] | None = None
    components: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def language_code(self) -> str:
        """language_policy.options[0].code, else language, else en_US."""
        options = (self.language_policy or {}).get("options") or []
        if options and isinstance(options[0], dict) and options[0].get("code"):
            return options[0]["code"]
        return self.language or DEFAULT_LANGUAGE_CODE

    @property
    def content(self) -> str:
        """Text of the first component, else the serialized components."""
        if self.components and self.components[0].get("text"):
            return self.components[0]["text"]
        return json.dumps(self.components)

    @property
    def is_approved(self) -> bool:
        return self.status == "APPROVED"


class StatusUpdate(BaseModel):
    """
    Delivery/read receipt for a previously sent message.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: str = Field(..., alias="id", description="Provider message ID")
    recipient_id: str | None = Field(None, description="Recipient phone number")
    timestamp: str | None = Field(None, description="Unix timestamp string from provider")
    status_type: str = Field(..., alias="status", description="sent, delivered, read, failed")
