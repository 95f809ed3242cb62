"""
Lead Resolution

Maps an inbound sender phone to a lead of the tenant, creating one if no
stored phone matches.
"""

import logging
from dataclasses import dataclass
from typing import Any

from crm_whatsapp.contracts.types import LEAD_SOURCE_WHATSAPP_INBOUND, LeadStatus
from crm_whatsapp.persistence.stores import LeadStore
from crm_whatsapp.routing.phone_matching import find_matching_lead

logger = logging.getLogger(__name__)

NEW_LEAD_TAGS = ["whatsapp"]
NEW_LEAD_NOTES = "Lead created automatically from incoming WhatsApp message"


@dataclass
class ResolvedLead:
    lead: Any
    created: bool


class LeadResolver:
    """
    Resolves leads for inbound WhatsApp traffic.

    Two first messages from the same unseen phone processed concurrently can
    both miss the lookup and create two leads. Ingestion is sequential, so
    this only happens across separate ingest calls.
    """

    def __init__(self, lead_store: LeadStore):
        self.leads = lead_store

    def resolve(self, phone: str, contact_name: str | None, tenant_id: int) -> ResolvedLead:
        """
        Find the tenant's lead for a phone, or create one.

        Args:
            phone: Raw sender phone from the webhook
            contact_name: Sender display name, if the provider sent one
            tenant_id: Tenant whose leads are searched

        Returns:
            ResolvedLead with created=True if a new lead was stored
        """
        leads = self.leads.get_leads_by_tenant(tenant_id)
        lead = find_matching_lead(phone, leads)
        if lead is not None:
            return ResolvedLead(lead=lead, created=False)

        lead = self.leads.create_lead(
            tenant_id=tenant_id,
            name=self.default_name(phone, contact_name),
            phone=phone,
            status=LeadStatus.NEW.value,
            source=LEAD_SOURCE_WHATSAPP_INBOUND,
            tags=list(NEW_LEAD_TAGS),
            notes=NEW_LEAD_NOTES,
        )
        logger.info(
            f"Created lead {lead.id} from WhatsApp message",
            extra={"tenant_id": tenant_id, "lead_id": lead.id},
        )
        return ResolvedLead(lead=lead, created=True)

    @staticmethod
    def default_name(phone: str, contact_name: str | None) -> str:
        """Contact name if known, else 'WhatsApp Contact' plus the phone's last four characters."""
        if contact_name and contact_name != "Unknown":
            return contact_name
        return f"WhatsApp Contact {phone[-4:]}"
