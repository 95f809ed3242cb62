"""
CRM Database Models

Reference SQLAlchemy mapping of the collaborator data the WhatsApp services
read and write. The services only depend on the store protocols in
persistence.stores; these tables are one implementation of them.

Tables:
- leads: Prospective contacts, scoped by tenant
- lead_activities: Append-only communication log
- message_templates: Provider-approved templates, scoped by tenant
- notifications: User notifications
- whatsapp_integrations: Per-tenant provider credentials
- whatsapp_message_index: Provider message ID -> activity, with delivery state
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

from crm_whatsapp.contracts.types import DeliveryStatus

CrmBase = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Common timestamp fields."""

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Lead(CrmBase, TimestampMixin):
    """
    A prospective contact tracked by the CRM.

    status participates in the automatic new/unread -> contacted transition
    driven by incoming WhatsApp messages.
    """

    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(String(30), nullable=False, default="new")
    source = Column(String(50), nullable=True)
    assigned_user_id = Column(Integer, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_leads_tenant_phone", "tenant_id", "phone"),
    )


class LeadActivity(CrmBase):
    """
    Canonical communication log entry. Rows are never updated once written.
    """

    __tablename__ = "lead_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    type = Column(String(30), nullable=False)  # whatsapp, status_change, ...
    direction = Column(String(10), nullable=False, default="outgoing")  # incoming, outgoing, internal
    content = Column(Text, nullable=False)
    details = Column("metadata", JSON, nullable=True)
    attachments = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class MessageTemplate(CrmBase, TimestampMixin):
    """
    A message template reconciled from the provider.

    Names are unique per tenant, compared case-insensitively by the sync.
    """

    __tablename__ = "message_templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default="whatsapp")  # sms, whatsapp
    category = Column(String(50), nullable=False, default="custom")
    active = Column(Boolean, nullable=False, default=True)
    language = Column(String(20), nullable=True, default="en_US")
    created_by = Column(Integer, nullable=False)


class Notification(CrmBase):
    """In-app notification for a user."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    lead_id = Column(Integer, nullable=True)
    type = Column(String(30), nullable=False)  # message, lead_assigned, ...
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class WhatsAppIntegration(CrmBase, TimestampMixin):
    """
    Per-tenant WhatsApp Business credentials.

    access_token_encrypted holds a Fernet token when WHATSAPP_ENCRYPTION_KEY
    is configured, the raw token otherwise.
    """

    __tablename__ = "whatsapp_integrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False)
    access_token_encrypted = Column(Text, nullable=False)
    phone_number_id = Column(String(100), nullable=False)
    business_account_id = Column(String(100), nullable=True)
    verify_token = Column(String(100), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_whatsapp_integrations_tenant"),
    )


class WhatsAppMessageIndex(CrmBase, TimestampMixin):
    """
    Maps a provider message ID to the activity that logged it.

    Delivery state is kept here so lead_activities stays append-only.
    """

    __tablename__ = "whatsapp_message_index"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(String(255), nullable=False)
    activity_id = Column(Integer, ForeignKey("lead_activities.id"), nullable=False)
    lead_id = Column(Integer, nullable=False, index=True)
    direction = Column(String(10), nullable=False)
    delivery_status = Column(String(20), nullable=False, default=DeliveryStatus.PENDING.value)
    status_updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("message_id", name="uq_whatsapp_message_index_message_id"),
    )
