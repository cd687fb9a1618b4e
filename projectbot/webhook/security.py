"""
Webhook Security Module

Verifies and decodes inbound GitHub webhook deliveries.

Design Decisions:
- Use constant-time comparison to prevent timing attacks
- Verify signature before any payload processing
- Support both SHA-256 and SHA-1 signatures (SHA-256 preferred)
- Accept JSON bodies and form-encoded bodies carrying a "payload" field
"""

import hashlib
import hmac
import json
from typing import Mapping, Optional
from urllib.parse import parse_qs

from pydantic import ValidationError

from projectbot.logging_config import get_logger
from projectbot.models import PullRequestEvent

logger = get_logger(__name__)

SIGNATURE_256_HEADER = "X-Hub-Signature-256"
SIGNATURE_HEADER = "X-Hub-Signature"
EVENT_TYPE_HEADER = "X-GitHub-Event"
DELIVERY_ID_HEADER = "X-GitHub-Delivery"

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class WebhookSecurityError(Exception):
    """Raised when a delivery can't be authenticated."""
    pass


class WebhookParseError(Exception):
    """Raised when a delivery can't be decoded into an event."""
    pass


def verify_webhook_signature(
    headers: Mapping[str, str],
    raw_body: bytes,
    secret: str
) -> None:
    """
    Verify the GitHub webhook signature.

    GitHub signs the raw body with HMAC using the webhook secret and sends
    the digest in X-Hub-Signature-256 (and X-Hub-Signature for SHA-1).
    An empty secret turns verification off.

    Args:
        headers: Request headers (case-insensitive mapping)
        raw_body: Raw request body bytes
        secret: Shared webhook secret

    Raises:
        WebhookSecurityError: If the signature is missing, malformed or wrong
    """
    if not secret:
        logger.warning("Webhook secret not configured, skipping signature check")
        return

    signature_header = headers.get(SIGNATURE_256_HEADER)
    algorithm = "sha256"

    if not signature_header:
        signature_header = headers.get(SIGNATURE_HEADER)
        algorithm = "sha1"

    if not signature_header:
        raise WebhookSecurityError("missing signature")

    prefix, _, signature = signature_header.partition("=")
    if prefix != algorithm or not signature:
        raise WebhookSecurityError(f"error parsing signature {signature_header[:50]!r}")

    hash_func = hashlib.sha256 if algorithm == "sha256" else hashlib.sha1
    expected_signature = hmac.new(secret.encode(), raw_body, hash_func).hexdigest()

    if not hmac.compare_digest(signature, expected_signature):
        raise WebhookSecurityError("payload signature check failed")

    logger.debug("Webhook signature verified", algorithm=algorithm)


def extract_payload(content_type: Optional[str], raw_body: bytes) -> bytes:
    """
    Pull the JSON document out of a webhook body.

    GitHub delivers either raw JSON or a form body whose "payload" field
    holds the JSON, depending on the webhook's content type setting.

    Raises:
        WebhookSecurityError: For unsupported content types or empty forms
    """
    media_type = (content_type or "").split(";", 1)[0].strip().lower()

    if media_type == JSON_CONTENT_TYPE:
        return raw_body

    if media_type == FORM_CONTENT_TYPE:
        form = parse_qs(raw_body.decode("utf-8", errors="replace"))
        values = form.get("payload")
        if not values:
            raise WebhookSecurityError("form body has no payload field")
        return values[0].encode()

    raise WebhookSecurityError(f"webhook request has unsupported Content-Type {content_type!r}")


def parse_webhook(event_type: Optional[str], payload: bytes) -> Optional[PullRequestEvent]:
    """
    Decode a verified payload into a typed event.

    Args:
        event_type: Value of the X-GitHub-Event header
        payload: JSON document

    Returns:
        PullRequestEvent for pull_request deliveries, None for any other
        event type

    Raises:
        WebhookParseError: If the event type is missing or the payload is
            not a valid pull_request document
    """
    if not event_type:
        raise WebhookParseError(f"missing {EVENT_TYPE_HEADER} header")

    if event_type != "pull_request":
        return None

    try:
        data = json.loads(payload)
    except ValueError as e:
        raise WebhookParseError(f"invalid JSON payload: {e}") from e

    try:
        return PullRequestEvent.model_validate(data)
    except ValidationError as e:
        raise WebhookParseError(f"invalid pull_request payload: {e}") from e


def extract_delivery_id(headers: Mapping[str, str]) -> Optional[str]:
    """
    Extract the webhook delivery ID from headers.

    Used to correlate log lines belonging to the same delivery.
    """
    return headers.get(DELIVERY_ID_HEADER)
