"""
WhatsApp Routing

Phone matching and lead resolution for inbound messages.
"""

from crm_whatsapp.routing.lead_resolver import LeadResolver, ResolvedLead
from crm_whatsapp.routing.phone_matching import digits_only, find_matching_lead, phones_match

__all__ = [
    "LeadResolver",
    "ResolvedLead",
    "digits_only",
    "find_matching_lead",
    "phones_match",
]
