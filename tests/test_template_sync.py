"""
Tests for template reconciliation.
"""

import json

import httpx
import pytest

from crm_whatsapp.providers.base import Credentials, CredentialsNotFoundError, ProviderError
from crm_whatsapp.providers.stub import StubWhatsAppProvider
from crm_whatsapp.service.template_sync import TemplateSynchronizer


@pytest.fixture
def provider_templates():
    """Template listing as returned by the Graph API."""
    return [
        {
            "id": "111",
            "name": "order_update",
            "status": "APPROVED",
            "category": "UTILITY",
            "language": "en_US",
            "components": [{"type": "BODY", "text": "Hi {{1}}, your order {{2}} is ready."}],
        },
        {
            "id": "222",
            "name": "Diwali_Offer",
            "status": "PENDING",
            "language_policy": {"options": [{"code": "hi"}]},
            "components": [{"type": "HEADER", "format": "IMAGE"}],
        },
    ]


@pytest.fixture
def synchronizer(repo, credentials, provider_templates):
    return TemplateSynchronizer(
        StubWhatsAppProvider(templates=provider_templates),
        repo,
        credential_source=repo,
        default_credentials=credentials,
        unit_of_work=repo,
    )


class TestTemplateSynchronizer:
    @pytest.mark.asyncio
    async def test_creates_templates(self, repo, synchronizer, tenant_id):
        saved = await synchronizer.sync(tenant_id, actor_id=9)

        templates = {t.name: t for t in repo.get_templates(tenant_id)}
        assert len(saved) == 2

        order = templates["order_update"]
        assert order.content == "Hi {{1}}, your order {{2}} is ready."
        assert order.type == "whatsapp"
        assert order.active is True
        assert order.category == "UTILITY"
        assert order.language == "en_US"
        assert order.created_by == 9

        offer = templates["Diwali_Offer"]
        assert offer.language == "hi"
        assert offer.active is False
        assert offer.category == "custom"
        assert json.loads(offer.content) == [{"type": "HEADER", "format": "IMAGE"}]

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, repo, synchronizer, tenant_id):
        """Test two syncs over unchanged data keep the count and create nothing."""
        await synchronizer.sync(tenant_id, actor_id=9)
        count = len(repo.get_templates(tenant_id))

        report = await synchronizer.sync_with_report(tenant_id, actor_id=9)

        assert report.created == []
        assert len(report.updated) == 2
        assert len(repo.get_templates(tenant_id)) == count

    @pytest.mark.asyncio
    async def test_matches_names_case_insensitively(self, repo, synchronizer, tenant_id):
        existing = repo.create_template(
            tenant_id, "ORDER_UPDATE", "old", "whatsapp", False, "custom", "en_GB", 1
        )

        report = await synchronizer.sync_with_report(tenant_id, actor_id=9)

        assert [t.id for t in report.updated] == [existing.id]
        assert existing.content == "Hi {{1}}, your order {{2}} is ready."
        assert existing.language == "en_US"
        assert existing.active is True
        assert existing.name == "ORDER_UPDATE"
        assert len(repo.get_templates(tenant_id)) == 2

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, repo, synchronizer):
        repo.create_template(2, "order_update", "other", "whatsapp", True, "custom", "en_US", 1)

        await synchronizer.sync(1, actor_id=9)

        assert len(repo.get_templates(1)) == 2
        assert repo.get_templates(2)[0].content == "other"

    @pytest.mark.asyncio
    async def test_failed_template_isolated(self, repo, credentials, provider_templates, tenant_id):
        class FlakyStore:
            def __init__(self, inner):
                self.inner = inner

            def get_templates(self, tenant_id, type=None):
                return self.inner.get_templates(tenant_id, type=type)

            def create_template(self, **fields):
                if fields["name"] == "order_update":
                    raise RuntimeError("disk full")
                return self.inner.create_template(**fields)

            def update_template(self, template, **fields):
                return self.inner.update_template(template, **fields)

        synchronizer = TemplateSynchronizer(
            StubWhatsAppProvider(templates=provider_templates),
            FlakyStore(repo),
            default_credentials=credentials,
            unit_of_work=repo,
        )

        report = await synchronizer.sync_with_report(tenant_id, actor_id=9)

        assert report.failed == ["order_update"]
        assert [t.name for t in report.created] == ["Diwali_Offer"]
        assert [t.name for t in repo.get_templates(tenant_id)] == ["Diwali_Offer"]

    @pytest.mark.asyncio
    async def test_malformed_template_reported(self, repo, credentials, tenant_id):
        synchronizer = TemplateSynchronizer(
            StubWhatsAppProvider(templates=[{"id": "333", "status": "APPROVED"}]),
            repo,
            default_credentials=credentials,
        )

        report = await synchronizer.sync_with_report(tenant_id, actor_id=9)

        assert report.failed == ["333"]
        assert repo.get_templates(tenant_id) == []

    @pytest.mark.asyncio
    async def test_listing_failure_propagates(self, repo, make_meta_provider, credentials, tenant_id):
        provider = make_meta_provider(
            lambda request: httpx.Response(400, json={"error": {"message": "Unsupported get request"}}),
        )
        synchronizer = TemplateSynchronizer(provider, repo, default_credentials=credentials)

        with pytest.raises(ProviderError):
            await synchronizer.sync(tenant_id, actor_id=9)
        await provider.close()

    @pytest.mark.asyncio
    async def test_no_credentials(self, repo, tenant_id):
        synchronizer = TemplateSynchronizer(StubWhatsAppProvider(), repo, credential_source=repo)

        with pytest.raises(CredentialsNotFoundError):
            await synchronizer.sync(tenant_id, actor_id=9)

    @pytest.mark.asyncio
    async def test_tenant_integration_preferred(self, repo, make_meta_provider, graph_requests, tenant_id):
        repo.save_integration(tenant_id, "tenant-token", "TENANT_PHONE", created_by=1)
        provider = make_meta_provider(lambda request: httpx.Response(200, json={"data": []}))
        synchronizer = TemplateSynchronizer(
            provider,
            repo,
            credential_source=repo,
            default_credentials=Credentials("env-token", "ENV_PHONE", "ENV_WABA"),
        )

        await synchronizer.sync(tenant_id, actor_id=9)
        await provider.close()

        assert graph_requests[0].url.path == "/v17.0/TENANT_PHONE/message_templates"
        assert graph_requests[0].headers["Authorization"] == "Bearer tenant-token"
