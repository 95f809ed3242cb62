"""
Pytest fixtures for WhatsApp tests.
"""

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm_whatsapp.persistence.models import CrmBase
from crm_whatsapp.persistence.repo import CrmRepository
from crm_whatsapp.providers.base import Credentials
from crm_whatsapp.providers.meta_cloud import MetaCloudWhatsAppProvider
from crm_whatsapp.routing.lead_resolver import LeadResolver
from crm_whatsapp.service.activity_recorder import ActivityRecorder
from crm_whatsapp.service.inbound_handler import InboundHandler, StatusHandler
from crm_whatsapp.service.webhook_ingestor import WebhookIngestor


@pytest.fixture
def db_session():
    """In-memory SQLite session with the CRM tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    CrmBase.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def repo(db_session):
    return CrmRepository(db_session)


@pytest.fixture
def tenant_id():
    return 1


@pytest.fixture
def credentials():
    """Complete provider credentials."""
    return Credentials(
        access_token="test-access-token",
        phone_number_id="PHONE_123",
        business_account_id="WABA_456",
    )


@pytest.fixture
def recorder(repo):
    return ActivityRecorder(repo, repo, repo, message_index=repo, system_user_id=1)


@pytest.fixture
def ingestor(repo, recorder):
    """Webhook ingestor wired to the SQLite repository."""
    return WebhookIngestor(
        InboundHandler(LeadResolver(repo), recorder, message_index=repo, unit_of_work=repo),
        StatusHandler(message_index=repo, unit_of_work=repo),
    )


@pytest.fixture
def graph_requests():
    """Requests seen by the fake Graph API."""
    return []


@pytest.fixture
def make_meta_provider(graph_requests):
    """
    Build a Meta provider whose HTTP calls go to a handler function.

    The handler receives the httpx.Request and returns an httpx.Response.
    """
    def _make(handler, max_retries=3):
        def _handle(request):
            graph_requests.append(request)
            return handler(request)

        return MetaCloudWhatsAppProvider(
            max_retries=max_retries,
            retry_wait=0,
            transport=httpx.MockTransport(_handle),
        )

    return _make


def text_message_webhook(
    from_phone="919999999999",
    message_id="wamid.TEXT1",
    body="Hi, is this available?",
    contact_name="Asha",
):
    """Meta webhook carrying one text message."""
    value = {
        "messaging_product": "whatsapp",
        "metadata": {
            "display_phone_number": "15550001111",
            "phone_number_id": "PHONE_123",
        },
        "messages": [
            {
                "from": from_phone,
                "id": message_id,
                "timestamp": "1704067200",
                "text": {"body": body},
                "type": "text",
            }
        ],
    }
    if contact_name:
        value["contacts"] = [{"profile": {"name": contact_name}, "wa_id": from_phone}]

    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "WABA_456", "changes": [{"field": "messages", "value": value}]}],
    }


def status_webhook(message_id, status, field="message_status_updates", timestamp="1704067260"):
    """Meta webhook carrying one delivery status."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_456",
                "changes": [
                    {
                        "field": field,
                        "value": {
                            "messaging_product": "whatsapp",
                            "statuses": [
                                {
                                    "id": message_id,
                                    "recipient_id": "919999999999",
                                    "status": status,
                                    "timestamp": timestamp,
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


@pytest.fixture
def text_webhook():
    """Factory for text message webhooks."""
    return text_message_webhook


@pytest.fixture
def make_status_webhook():
    """Factory for status webhooks."""
    return status_webhook
