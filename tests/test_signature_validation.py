"""
Tests for webhook signature validation and the subscription handshake.
"""

import hashlib
import hmac

from crm_whatsapp.providers.meta_cloud.webhook import (
    answer_subscription_challenge,
    check_request_signature,
    extract_contact_name,
    extract_phone_number_id,
    validate_signature,
    verify_webhook_challenge,
)
from crm_whatsapp.settings import Settings


def _sign(payload: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class TestSignatureValidation:
    """Tests for X-Hub-Signature-256 checks."""

    def test_valid_signature(self):
        app_secret = "test_secret_key"
        payload = b'{"object": "whatsapp_business_account"}'

        assert validate_signature(payload, f"sha256={_sign(payload, app_secret)}", app_secret) is True

    def test_invalid_signature(self):
        assert validate_signature(b'{"test": "data"}', "sha256=invalid_signature_here", "secret") is False

    def test_tampered_body(self):
        app_secret = "test_secret_key"
        signature = _sign(b'{"amount": 1}', app_secret)

        assert validate_signature(b'{"amount": 9}', f"sha256={signature}", app_secret) is False

    def test_missing_prefix(self):
        """Test a valid hash without the sha256= prefix is rejected."""
        payload = b'{"test": "data"}'

        assert validate_signature(payload, _sign(payload, "secret"), "secret") is False

    def test_empty_signature(self):
        assert validate_signature(b"payload", "", "secret") is False
        assert validate_signature(b"payload", None, "secret") is False


class TestWebhookChallenge:
    def test_subscribe_with_matching_token(self):
        assert verify_webhook_challenge("subscribe", "my-token", "1158201444", "my-token") == "1158201444"

    def test_wrong_token(self):
        assert verify_webhook_challenge("subscribe", "other", "1158201444", "my-token") is None

    def test_wrong_mode(self):
        assert verify_webhook_challenge("unsubscribe", "my-token", "1158201444", "my-token") is None

    def test_unconfigured_verify_token(self):
        """Test an empty configured token never verifies."""
        assert verify_webhook_challenge("subscribe", "", "1158201444", "") is None


class TestPayloadHelpers:
    def test_extract_phone_number_id(self, text_webhook):
        assert extract_phone_number_id(text_webhook()) == "PHONE_123"

    def test_extract_phone_number_id_missing(self):
        assert extract_phone_number_id({"entry": []}) is None

    def test_extract_contact_name(self, text_webhook):
        value = text_webhook()["entry"][0]["changes"][0]["value"]

        assert extract_contact_name(value) == "Asha"
        assert extract_contact_name({}) is None

    def test_extract_contact_name_bad_shapes(self):
        assert extract_contact_name({"contacts": 7}) is None
        assert extract_contact_name({"contacts": [{"profile": "bob"}]}) is None
        assert extract_contact_name({"contacts": [{"profile": {"name": 42}}]}) is None


class TestConfiguredSecrets:
    """Tests for the helpers that read webhook secrets from Settings."""

    def test_signature_checked_with_app_secret(self):
        settings = Settings(_env_file=None, WHATSAPP_APP_SECRET="app-secret")
        payload = b'{"object": "whatsapp_business_account"}'

        assert check_request_signature(payload, f"sha256={_sign(payload, 'app-secret')}", settings) is True
        assert check_request_signature(payload, f"sha256={_sign(payload, 'other')}", settings) is False

    def test_signature_rejected_without_app_secret(self):
        settings = Settings(_env_file=None, WHATSAPP_APP_SECRET="")
        payload = b"{}"

        assert check_request_signature(payload, f"sha256={_sign(payload, '')}", settings) is False

    def test_challenge_uses_verify_token(self):
        settings = Settings(_env_file=None, WHATSAPP_VERIFY_TOKEN="my-token")

        assert answer_subscription_challenge("subscribe", "my-token", "42", settings) == "42"
        assert answer_subscription_challenge("subscribe", "wrong", "42", settings) is None
