"""
Tests for outbound text and template sends.
"""

import json

import httpx
import pytest

from crm_whatsapp.contracts.payloads import TemplateParameters
from crm_whatsapp.providers.base import Credentials, MessageValidationError, ProviderError
from crm_whatsapp.providers.meta_cloud.templates import build_template_components
from crm_whatsapp.providers.stub import StubWhatsAppProvider
from crm_whatsapp.service.outbound_dispatcher import OutboundDispatcher


def _accepted(message_id="wamid.SENT1"):
    def handler(request):
        return httpx.Response(
            200,
            json={
                "messaging_product": "whatsapp",
                "contacts": [{"input": "919999999999", "wa_id": "919999999999"}],
                "messages": [{"id": message_id}],
            },
        )
    return handler


def _rejected(status_code=400, message="(#131030) Recipient phone number not in allowed list"):
    def handler(request):
        return httpx.Response(
            status_code,
            json={"error": {"message": message, "type": "OAuthException", "code": 131030}},
        )
    return handler


class TestTemplateComponents:
    def test_header_body_and_button(self):
        """Test header + two body params + one button build three components."""
        components = build_template_components(
            TemplateParameters(header="Order 42", body=["Asha", "Friday"], buttons=["CONFIRM"])
        )

        assert components == [
            {"type": "header", "parameters": [{"type": "text", "text": "Order 42"}]},
            {
                "type": "body",
                "parameters": [
                    {"type": "text", "text": "Asha"},
                    {"type": "text", "text": "Friday"},
                ],
            },
            {
                "type": "button",
                "sub_type": "quick_reply",
                "index": "0",
                "parameters": [{"type": "payload", "payload": "CONFIRM"}],
            },
        ]

    def test_empty_parameters_build_nothing(self):
        assert build_template_components(TemplateParameters()) == []
        assert build_template_components(None) == []

    def test_accepts_plain_dict(self):
        components = build_template_components({"body": ["x"]})

        assert [c["type"] for c in components] == ["body"]


class TestSendTextMessage:
    @pytest.mark.asyncio
    async def test_posts_text_payload(self, make_meta_provider, graph_requests, credentials):
        provider = make_meta_provider(_accepted())

        result = await OutboundDispatcher(provider).send_text_message(
            "919999999999", "Hello Asha", credentials
        )
        await provider.close()

        assert result.success is True
        assert result.message_id == "wamid.SENT1"
        assert len(graph_requests) == 1

        request = graph_requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v17.0/PHONE_123/messages"
        assert request.headers["Authorization"] == "Bearer test-access-token"
        assert json.loads(request.content) == {
            "messaging_product": "whatsapp",
            "to": "919999999999",
            "type": "text",
            "text": {"body": "Hello Asha"},
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "to,message,creds",
        [
            ("919999999999", "", Credentials("token", "PHONE_123")),
            ("", "Hello", Credentials("token", "PHONE_123")),
            ("919999999999", "Hello", Credentials("", "PHONE_123")),
            ("919999999999", "Hello", Credentials("token", "")),
            ("919999999999", "Hello", None),
        ],
    )
    async def test_validation_before_network(self, make_meta_provider, graph_requests, to, message, creds):
        """Test missing arguments fail with zero network calls."""
        provider = make_meta_provider(_accepted())

        with pytest.raises(MessageValidationError):
            await OutboundDispatcher(provider).send_text_message(to, message, creds)

        assert graph_requests == []

    @pytest.mark.asyncio
    async def test_provider_rejection_raises(self, make_meta_provider, credentials):
        provider = make_meta_provider(_rejected())

        with pytest.raises(ProviderError) as exc_info:
            await OutboundDispatcher(provider).send_text_message("919999999999", "Hi", credentials)
        await provider.close()

        assert "Recipient phone number not in allowed list" in str(exc_info.value)
        assert exc_info.value.code == "131030"

    @pytest.mark.asyncio
    async def test_server_error_not_retried(self, make_meta_provider, graph_requests, credentials):
        """Test a 5xx on send is attempted exactly once."""
        provider = make_meta_provider(_rejected(status_code=503, message="Service unavailable"))

        with pytest.raises(ProviderError):
            await OutboundDispatcher(provider).send_text_message("919999999999", "Hi", credentials)
        await provider.close()

        assert len(graph_requests) == 1

    @pytest.mark.asyncio
    async def test_missing_message_id_is_unknown(self, make_meta_provider, credentials):
        provider = make_meta_provider(lambda request: httpx.Response(200, json={"messages": []}))

        result = await OutboundDispatcher(provider).send_text_message("919999999999", "Hi", credentials)
        await provider.close()

        assert result.message_id == "unknown"


class TestSendTemplateMessage:
    @pytest.mark.asyncio
    async def test_posts_template_payload(self, make_meta_provider, graph_requests, credentials):
        provider = make_meta_provider(_accepted("wamid.TMPL1"))

        result = await OutboundDispatcher(provider).send_template_message(
            "919999999999",
            "order_update",
            TemplateParameters(header="Order 42", body=["Asha", "Friday"], buttons=["CONFIRM"]),
            credentials,
        )
        await provider.close()

        assert result.message_id == "wamid.TMPL1"

        body = json.loads(graph_requests[0].content)
        assert body["type"] == "template"
        assert body["recipient_type"] == "individual"
        assert body["template"]["name"] == "order_update"
        assert body["template"]["language"] == {"code": "en_US"}

        components = body["template"]["components"]
        assert [c["type"] for c in components] == ["header", "body", "button"]
        assert len(components[1]["parameters"]) == 2
        assert components[2]["sub_type"] == "quick_reply"

    @pytest.mark.asyncio
    async def test_no_parameters_omits_components(self, make_meta_provider, graph_requests, credentials):
        provider = make_meta_provider(_accepted())

        await OutboundDispatcher(provider).send_template_message(
            "919999999999", "hello_world", None, credentials, language_code="hi"
        )
        await provider.close()

        body = json.loads(graph_requests[0].content)
        assert "components" not in body["template"]
        assert body["template"]["language"] == {"code": "hi"}

    @pytest.mark.asyncio
    async def test_missing_template_name(self, make_meta_provider, graph_requests, credentials):
        provider = make_meta_provider(_accepted())

        with pytest.raises(MessageValidationError):
            await OutboundDispatcher(provider).send_template_message(
                "919999999999", "", None, credentials
            )

        assert graph_requests == []

    @pytest.mark.asyncio
    async def test_stub_provider_records_send(self, credentials):
        provider = StubWhatsAppProvider()

        result = await OutboundDispatcher(provider).send_template_message(
            "919999999999", "hello_world", {"body": ["Asha"]}, credentials
        )

        assert result.message_id.startswith("stub_tmpl_")
        assert provider.sent_messages[0]["template_name"] == "hello_world"
        assert provider.sent_messages[0]["components"][0]["type"] == "body"
