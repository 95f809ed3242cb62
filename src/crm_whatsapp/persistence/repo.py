"""
CRM Repository

Repository pattern for the CRM tables the WhatsApp services touch.
Implements every store protocol in persistence.stores on one SQLAlchemy session.
"""

import logging
from datetime import datetime
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.orm import Session

from crm_whatsapp.persistence.models import (
    Lead,
    LeadActivity,
    MessageTemplate,
    Notification,
    WhatsAppIntegration,
    WhatsAppMessageIndex,
    utcnow,
)
from crm_whatsapp.providers.base import Credentials

logger = logging.getLogger(__name__)


class CrmRepository:
    """Repository for CRM database operations used by the WhatsApp integration."""

    def __init__(self, db: Session, encryption_key: str | None = None):
        self.db = db
        self.encryption_key = encryption_key or None

    # =========================================================================
    # Unit of work
    # =========================================================================

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # =========================================================================
    # Leads
    # =========================================================================

    def get_leads_by_tenant(self, tenant_id: int) -> list[Lead]:
        """All leads of a tenant, in id order."""
        return (
            self.db.query(Lead)
            .filter(Lead.tenant_id == tenant_id)
            .order_by(Lead.id.asc())
            .all()
        )

    def get_lead(self, lead_id: int) -> Lead | None:
        """Get lead by ID."""
        return self.db.query(Lead).filter(Lead.id == lead_id).first()

    def create_lead(
        self,
        tenant_id: int,
        name: str,
        phone: str,
        status: str,
        source: str | None = None,
        tags: list[str] | None = None,
        notes: str | None = None,
        assigned_user_id: int | None = None,
    ) -> Lead:
        """Create a new lead."""
        lead = Lead(
            tenant_id=tenant_id,
            name=name,
            phone=phone,
            status=status,
            source=source,
            tags=list(tags or []),
            notes=notes,
            assigned_user_id=assigned_user_id,
        )
        self.db.add(lead)
        self.db.flush()
        return lead

    def update_lead(self, lead: Lead, **fields: Any) -> Lead:
        """Set fields on a lead."""
        for key, value in fields.items():
            setattr(lead, key, value)
        lead.updated_at = utcnow()
        self.db.flush()
        return lead

    # =========================================================================
    # Activities
    # =========================================================================

    def create_activity(
        self,
        lead_id: int,
        user_id: int,
        type: str,
        direction: str,
        content: str,
        metadata: dict[str, Any] | None = None,
        attachments: list[str] | None = None,
    ) -> LeadActivity:
        """Append an activity to a lead's log."""
        activity = LeadActivity(
            lead_id=lead_id,
            user_id=user_id,
            type=type,
            direction=direction,
            content=content,
            details=metadata,
            attachments=attachments,
        )
        self.db.add(activity)
        self.db.flush()
        return activity

    def get_activities(self, lead_id: int) -> list[LeadActivity]:
        """Activities of a lead, oldest first."""
        return (
            self.db.query(LeadActivity)
            .filter(LeadActivity.lead_id == lead_id)
            .order_by(LeadActivity.id.asc())
            .all()
        )

    # =========================================================================
    # Message index
    # =========================================================================

    def index_message(
        self,
        message_id: str,
        activity: LeadActivity,
        direction: str,
    ) -> WhatsAppMessageIndex:
        """Register a provider message ID against its activity."""
        entry = WhatsAppMessageIndex(
            message_id=message_id,
            activity_id=activity.id,
            lead_id=activity.lead_id,
            direction=direction,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_indexed_message(self, message_id: str) -> WhatsAppMessageIndex | None:
        """Get index entry by provider message ID."""
        return (
            self.db.query(WhatsAppMessageIndex)
            .filter(WhatsAppMessageIndex.message_id == message_id)
            .first()
        )

    def update_delivery_status(
        self,
        entry: WhatsAppMessageIndex,
        status: str,
        at: datetime | None = None,
    ) -> WhatsAppMessageIndex:
        """Record a delivery state change."""
        entry.delivery_status = status
        entry.status_updated_at = at or utcnow()
        self.db.flush()
        return entry

    # =========================================================================
    # Templates
    # =========================================================================

    def get_templates(self, tenant_id: int, type: str | None = None) -> list[MessageTemplate]:
        """Templates of a tenant, optionally filtered by type."""
        query = self.db.query(MessageTemplate).filter(MessageTemplate.tenant_id == tenant_id)
        if type:
            query = query.filter(MessageTemplate.type == type)
        return query.order_by(MessageTemplate.id.asc()).all()

    def create_template(
        self,
        tenant_id: int,
        name: str,
        content: str,
        type: str,
        active: bool,
        category: str,
        language: str,
        created_by: int,
    ) -> MessageTemplate:
        """Create a new template."""
        template = MessageTemplate(
            tenant_id=tenant_id,
            name=name,
            content=content,
            type=type,
            active=active,
            category=category,
            language=language,
            created_by=created_by,
        )
        self.db.add(template)
        self.db.flush()
        return template

    def update_template(self, template: MessageTemplate, **fields: Any) -> MessageTemplate:
        """Set fields on a template."""
        for key, value in fields.items():
            setattr(template, key, value)
        template.updated_at = utcnow()
        self.db.flush()
        return template

    # =========================================================================
    # Notifications
    # =========================================================================

    def create_notification(
        self,
        user_id: int,
        type: str,
        title: str,
        content: str,
        lead_id: int | None = None,
    ) -> Notification:
        """Create an unread notification."""
        notification = Notification(
            user_id=user_id,
            lead_id=lead_id,
            type=type,
            title=title,
            content=content,
            read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def get_notifications(self, user_id: int) -> list[Notification]:
        """Notifications of a user, oldest first."""
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.id.asc())
            .all()
        )

    # =========================================================================
    # Integrations
    # =========================================================================

    def get_integration(self, tenant_id: int) -> WhatsAppIntegration | None:
        """Get the WhatsApp integration of a tenant."""
        return (
            self.db.query(WhatsAppIntegration)
            .filter(WhatsAppIntegration.tenant_id == tenant_id)
            .first()
        )

    def save_integration(
        self,
        tenant_id: int,
        access_token: str,
        phone_number_id: str,
        created_by: int,
        business_account_id: str | None = None,
        verify_token: str | None = None,
    ) -> WhatsAppIntegration:
        """Create or replace a tenant's integration. The token is encrypted if a key is set."""
        token = self._encrypt(access_token)

        integration = self.get_integration(tenant_id)
        if integration is None:
            integration = WhatsAppIntegration(tenant_id=tenant_id, created_by=created_by)
            self.db.add(integration)

        integration.access_token_encrypted = token
        integration.phone_number_id = phone_number_id
        integration.business_account_id = business_account_id
        integration.verify_token = verify_token
        integration.active = True
        self.db.flush()
        return integration

    def get_credentials(self, tenant_id: int) -> Credentials | None:
        """Credentials from the tenant's active integration, if any."""
        integration = self.get_integration(tenant_id)
        if integration is None or not integration.active:
            return None

        access_token = self._decrypt(integration.access_token_encrypted)
        if not access_token:
            return None

        return Credentials(
            access_token=access_token,
            phone_number_id=integration.phone_number_id,
            business_account_id=integration.business_account_id or None,
        )

    def _encrypt(self, value: str) -> str:
        if not self.encryption_key:
            return value
        f = Fernet(self.encryption_key.encode())
        return f.encrypt(value.encode()).decode()

    def _decrypt(self, value: str | None) -> str | None:
        if not value:
            return None

        # If not actually encrypted (e.g., dev mode), return as-is
        if not self.encryption_key:
            return value

        try:
            f = Fernet(self.encryption_key.encode())
            return f.decrypt(value.encode()).decode()
        except InvalidToken:
            logger.error("Failed to decrypt WhatsApp access token")
            return None
