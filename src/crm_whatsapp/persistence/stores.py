"""
Collaborator interfaces consumed by the WhatsApp services.

Any object with these methods can back the services; CrmRepository in
persistence.repo is the SQLAlchemy implementation.
"""

from datetime import datetime
from typing import Any, Protocol

from crm_whatsapp.providers.base import Credentials


class LeadStore(Protocol):
    def get_leads_by_tenant(self, tenant_id: int) -> list[Any]: ...

    def get_lead(self, lead_id: int) -> Any | None: ...

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
    ) -> Any: ...

    def update_lead(self, lead: Any, **fields: Any) -> Any: ...


class ActivityStore(Protocol):
    def create_activity(
        self,
        lead_id: int,
        user_id: int,
        type: str,
        direction: str,
        content: str,
        metadata: dict[str, Any] | None = None,
        attachments: list[str] | None = None,
    ) -> Any: ...

    def get_activities(self, lead_id: int) -> list[Any]: ...


class TemplateStore(Protocol):
    def get_templates(self, tenant_id: int, type: str | None = None) -> list[Any]: ...

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
    ) -> Any: ...

    def update_template(self, template: Any, **fields: Any) -> Any: ...


class NotificationSink(Protocol):
    def create_notification(
        self,
        user_id: int,
        type: str,
        title: str,
        content: str,
        lead_id: int | None = None,
    ) -> Any: ...


class CredentialSource(Protocol):
    def get_credentials(self, tenant_id: int) -> Credentials | None: ...


class MessageIndex(Protocol):
    def index_message(self, message_id: str, activity: Any, direction: str) -> Any: ...

    def get_indexed_message(self, message_id: str) -> Any | None: ...

    def update_delivery_status(self, entry: Any, status: str, at: datetime | None = None) -> Any: ...


class UnitOfWork(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...
