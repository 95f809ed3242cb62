"""
Outbound Message Handler

Sends a message to a lead and logs it:
1. Loads the lead and the tenant's credentials
2. Formats the lead phone for the API
3. Dispatches via the provider
4. Records the outgoing activity, indexing the message ID for receipts
"""

import logging
from datetime import datetime, timezone
from typing import Any

from crm_whatsapp.contracts.payloads import DEFAULT_LANGUAGE_CODE, TemplateParameters
from crm_whatsapp.contracts.types import TEMPLATE_TYPE_WHATSAPP, ActivityDirection
from crm_whatsapp.persistence.stores import CredentialSource, LeadStore, TemplateStore, UnitOfWork
from crm_whatsapp.providers.base import Credentials, MessageValidationError
from crm_whatsapp.routing.phone_matching import digits_only
from crm_whatsapp.service.activity_recorder import ActivityFields, ActivityRecorder
from crm_whatsapp.service.credentials import resolve_credentials
from crm_whatsapp.service.outbound_dispatcher import OutboundDispatcher, SendResult

logger = logging.getLogger(__name__)


class OutboundHandler:
    """
    Lead-facing send operations.

    The send is committed to the activity log only after the provider
    accepted it. Provider and validation errors propagate to the caller.
    """

    def __init__(
        self,
        dispatcher: OutboundDispatcher,
        recorder: ActivityRecorder,
        lead_store: LeadStore,
        template_store: TemplateStore | None = None,
        credential_source: CredentialSource | None = None,
        default_credentials: Credentials | None = None,
        unit_of_work: UnitOfWork | None = None,
    ):
        self.dispatcher = dispatcher
        self.recorder = recorder
        self.leads = lead_store
        self.templates = template_store
        self.credential_source = credential_source
        self.default_credentials = default_credentials
        self.uow = unit_of_work

    async def send_text_to_lead(
        self,
        tenant_id: int,
        lead_id: int,
        user_id: int,
        message: str,
    ) -> dict[str, Any]:
        """
        Send a text message to a lead and log it.

        Returns:
            Dict with message_id and activity_id
        """
        lead, credentials = self._prepare(tenant_id, lead_id)

        result = await self.dispatcher.send_text_message(
            digits_only(lead.phone), message, credentials
        )

        activity = self._record(lead, user_id, message, result, {})
        return {"success": True, "message_id": result.message_id, "activity_id": activity.id}

    async def send_template_to_lead(
        self,
        tenant_id: int,
        lead_id: int,
        user_id: int,
        template_name: str,
        parameters: TemplateParameters | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send a template message to a lead and log it.

        The language stored with the synced template is used, en_US if the
        template is not stored.

        Returns:
            Dict with message_id and activity_id
        """
        lead, credentials = self._prepare(tenant_id, lead_id)

        if parameters is not None and not isinstance(parameters, TemplateParameters):
            parameters = TemplateParameters.model_validate(parameters)

        result = await self.dispatcher.send_template_message(
            digits_only(lead.phone),
            template_name,
            parameters,
            credentials,
            language_code=self._template_language(tenant_id, template_name),
        )

        activity = self._record(
            lead,
            user_id,
            f"Template: {template_name}",
            result,
            {
                "templateName": template_name,
                "parameters": parameters.model_dump() if parameters else {},
            },
        )
        return {"success": True, "message_id": result.message_id, "activity_id": activity.id}

    def _prepare(self, tenant_id: int, lead_id: int) -> tuple[Any, Credentials]:
        lead = self.leads.get_lead(lead_id)
        if lead is None or lead.tenant_id != tenant_id:
            raise MessageValidationError(f"Lead {lead_id} not found")
        if not lead.phone:
            raise MessageValidationError(f"Lead {lead_id} has no phone number")

        credentials = resolve_credentials(
            self.credential_source, tenant_id, self.default_credentials
        )
        return lead, credentials

    def _template_language(self, tenant_id: int, template_name: str) -> str:
        if self.templates is None:
            return DEFAULT_LANGUAGE_CODE
        for template in self.templates.get_templates(tenant_id, type=TEMPLATE_TYPE_WHATSAPP):
            if template.name.lower() == template_name.lower():
                return template.language or DEFAULT_LANGUAGE_CODE
        return DEFAULT_LANGUAGE_CODE

    def _record(
        self,
        lead: Any,
        user_id: int,
        content: str,
        result: SendResult,
        extra_metadata: dict[str, Any],
    ) -> Any:
        metadata = {
            "messageId": result.message_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra_metadata,
        }

        try:
            activity = self.recorder.record(
                lead,
                ActivityDirection.OUTGOING.value,
                ActivityFields(content=content, metadata=metadata),
                user_id=user_id,
            )
            if self.uow is not None:
                self.uow.commit()
        except Exception:
            if self.uow is not None:
                self.uow.rollback()
            logger.error(
                f"Message {result.message_id} sent but activity logging failed",
                exc_info=True,
            )
            raise

        logger.info(
            f"Sent WhatsApp message {result.message_id} to lead {lead.id}",
            extra={"lead_id": lead.id, "message_id": result.message_id},
        )
        return activity
