"""
CRM WhatsApp Integration

WhatsApp Business messaging for the lead-management CRM:
- Outbound text and template sends
- Webhook ingestion with lead resolution and activity logging
- Delivery status tracking
- Template reconciliation with the provider
"""

__version__ = "0.1.0"
