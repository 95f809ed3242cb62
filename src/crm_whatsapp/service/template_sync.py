"""
Template Synchronizer

Reconciles a tenant's stored WhatsApp templates with the provider's list.
Templates are matched by case-insensitive name: existing ones are updated,
unknown ones created. Running it twice over the same provider data leaves
the template count unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from crm_whatsapp.contracts.payloads import ProviderTemplate
from crm_whatsapp.contracts.types import TEMPLATE_TYPE_WHATSAPP
from crm_whatsapp.persistence.stores import CredentialSource, TemplateStore, UnitOfWork
from crm_whatsapp.providers.base import Credentials, WhatsAppProvider
from crm_whatsapp.service.credentials import resolve_credentials

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_CATEGORY = "custom"


@dataclass
class TemplateSyncReport:
    created: list[Any] = field(default_factory=list)
    updated: list[Any] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def saved(self) -> list[Any]:
        return self.created + self.updated


class TemplateSynchronizer:
    """
    Pulls templates from the provider into the template store.

    Each template is committed on its own. A template that fails to save is
    rolled back and reported without stopping the rest; a failure to fetch
    the listing propagates.
    """

    def __init__(
        self,
        provider: WhatsAppProvider,
        template_store: TemplateStore,
        credential_source: CredentialSource | None = None,
        default_credentials: Credentials | None = None,
        unit_of_work: UnitOfWork | None = None,
    ):
        self.provider = provider
        self.templates = template_store
        self.credential_source = credential_source
        self.default_credentials = default_credentials
        self.uow = unit_of_work

    async def sync(self, tenant_id: int, actor_id: int) -> list[Any]:
        """Sync and return every created or updated template."""
        report = await self.sync_with_report(tenant_id, actor_id)
        return report.saved

    async def sync_with_report(self, tenant_id: int, actor_id: int) -> TemplateSyncReport:
        """
        Sync templates for a tenant.

        Args:
            tenant_id: Tenant whose templates are reconciled
            actor_id: User recorded as creator of new templates

        Raises:
            CredentialsNotFoundError: If no credentials are configured
            ProviderError: If the template listing cannot be fetched
        """
        credentials = resolve_credentials(
            self.credential_source, tenant_id, self.default_credentials
        )

        raw_templates = await self.provider.list_templates(credentials)
        logger.info(
            f"Provider returned {len(raw_templates)} templates",
            extra={"tenant_id": tenant_id},
        )

        existing = {
            template.name.lower(): template
            for template in self.templates.get_templates(tenant_id, type=TEMPLATE_TYPE_WHATSAPP)
        }

        report = TemplateSyncReport()
        for raw in raw_templates:
            try:
                template = ProviderTemplate.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed provider template: {e}")
                report.failed.append(_template_label(raw))
                continue

            try:
                key = template.name.lower()
                stored = existing.get(key)
                if stored is not None:
                    stored = self.templates.update_template(
                        stored,
                        language=template.language_code,
                        active=template.is_approved,
                        content=template.content,
                    )
                    self._commit()
                    report.updated.append(stored)
                else:
                    stored = self.templates.create_template(
                        tenant_id=tenant_id,
                        name=template.name,
                        content=template.content,
                        type=TEMPLATE_TYPE_WHATSAPP,
                        active=template.is_approved,
                        category=template.category or DEFAULT_TEMPLATE_CATEGORY,
                        language=template.language_code,
                        created_by=actor_id,
                    )
                    self._commit()
                    report.created.append(stored)
                existing[key] = stored

            except Exception as e:
                self._rollback()
                logger.error(f"Failed to save template {template.name}: {e}", exc_info=True)
                report.failed.append(template.name)

        logger.info(
            f"Template sync completed: {len(report.created)} created, "
            f"{len(report.updated)} updated, {len(report.failed)} failed",
            extra={"tenant_id": tenant_id},
        )
        return report

    def _commit(self) -> None:
        if self.uow is not None:
            self.uow.commit()

    def _rollback(self) -> None:
        if self.uow is not None:
            self.uow.rollback()


def _template_label(raw: Any) -> str:
    if isinstance(raw, dict):
        return str(raw.get("name") or raw.get("id") or "<unnamed>")
    return "<invalid>"
