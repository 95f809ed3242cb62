"""
Meta Webhook Utilities

Helper functions for processing Meta Cloud API webhooks.
"""

import hashlib
import hmac
import logging
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)

FIELD_MESSAGES = "messages"
FIELD_MESSAGE_STATUS_UPDATES = "message_status_updates"


def validate_signature(
    payload: bytes,
    signature_header: str,
    app_secret: str,
) -> bool:
    """
    Validate Meta webhook signature.

    Args:
        payload: Raw request body bytes
        signature_header: X-Hub-Signature-256 header value
        app_secret: Facebook App Secret

    Returns:
        True if signature is valid
    """
    if not signature_header:
        logger.warning("Missing signature header")
        return False

    if not signature_header.startswith("sha256="):
        logger.warning("Invalid signature format")
        return False

    expected = signature_header[7:]

    computed = hmac.new(
        app_secret.encode("utf-8"),
        payload,
        hashlib.sha256,
    ).hexdigest()

    return hmac.compare_digest(computed, expected)


def verify_webhook_challenge(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    verify_token: str,
) -> str | None:
    """
    Handle the webhook subscription handshake.

    Returns:
        challenge string if mode is "subscribe" and the token matches, None otherwise
    """
    if mode == "subscribe" and verify_token and token == verify_token and challenge:
        logger.info("Webhook verification successful")
        return challenge

    logger.warning(f"Webhook verification failed: mode={mode}, token mismatch")
    return None


def check_request_signature(payload: bytes, signature_header: str | None, settings=None) -> bool:
    """
    Validate a webhook body against the configured WHATSAPP_APP_SECRET.

    Fails closed when no app secret is configured.
    """
    if settings is None:
        from crm_whatsapp.settings import get_settings

        settings = get_settings()

    if not settings.WHATSAPP_APP_SECRET:
        logger.warning("WHATSAPP_APP_SECRET not set, rejecting webhook signature")
        return False

    return validate_signature(payload, signature_header, settings.WHATSAPP_APP_SECRET)


def answer_subscription_challenge(
    mode: str | None,
    token: str | None,
    challenge: str | None,
    settings=None,
) -> str | None:
    """Run the subscription handshake against the configured WHATSAPP_VERIFY_TOKEN."""
    if settings is None:
        from crm_whatsapp.settings import get_settings

        settings = get_settings()

    return verify_webhook_challenge(mode, token, challenge, settings.WHATSAPP_VERIFY_TOKEN)


def iter_changes(payload: dict[str, Any]) -> Iterator[tuple[str | None, dict[str, Any]]]:
    """
    Yield (field, value) for every change of every entry, in delivery order.

    Entries, change lists or changes of the wrong shape are skipped.
    """
    entries = payload.get("entry")
    if not isinstance(entries, list):
        return

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        changes = entry.get("changes")
        if not isinstance(changes, list):
            continue
        for change in changes:
            if not isinstance(change, dict):
                continue
            value = change.get("value")
            yield change.get("field"), value if isinstance(value, dict) else {}


def extract_contact_name(value: dict[str, Any]) -> str | None:
    """Display name from value.contacts[0].profile.name, if present."""
    contacts = value.get("contacts")
    if not isinstance(contacts, list) or not contacts or not isinstance(contacts[0], dict):
        return None

    profile = contacts[0].get("profile")
    if not isinstance(profile, dict):
        return None

    name = profile.get("name")
    return name if isinstance(name, str) and name else None


def extract_phone_number_id(payload: dict[str, Any]) -> str | None:
    """
    Extract phone_number_id from webhook payload.

    This is used by host services for tenant resolution before processing.
    """
    for _field, value in iter_changes(payload):
        metadata = value.get("metadata")
        if not isinstance(metadata, dict):
            continue
        phone_number_id = metadata.get("phone_number_id")
        if phone_number_id:
            return phone_number_id
    return None
