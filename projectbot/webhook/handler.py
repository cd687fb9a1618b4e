"""
Webhook Handler Module

FastAPI endpoint receiving GitHub webhook deliveries for the project board.

Design Decisions:
- Process the delivery inline: the response status reports the outcome
- Errors are returned as plain text bodies with the matching status code
- One board client per delivery, closed when the request ends
"""

from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse

from projectbot.config import Settings, get_settings
from projectbot.logging_config import get_logger
from projectbot.models import ReconcileOutcome
from projectbot.services.board_client import BoardClient
from projectbot.webhook.reconciler import CardReconciler, ReconcileError
from projectbot.webhook.security import (
    EVENT_TYPE_HEADER,
    WebhookParseError,
    WebhookSecurityError,
    extract_delivery_id,
    extract_payload,
    parse_webhook,
    verify_webhook_signature,
)

logger = get_logger(__name__)

router = APIRouter(tags=["webhook"])


async def get_board_client(
    settings: Settings = Depends(get_settings)
) -> AsyncGenerator[BoardClient, None]:
    """Provide a board client scoped to the current request."""
    async with BoardClient(settings) as client:
        yield client


def _error_response(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(f"{message}\n", status_code=status_code)


@router.post("/api/projectbot")
async def projectbot_webhook(
    request: Request,
    client: BoardClient = Depends(get_board_client),
    settings: Settings = Depends(get_settings)
) -> Response:
    """
    GitHub webhook endpoint.

    Returns:
        201 when the pull request's card was created or moved, 202 for
        pull request actions other than "opened", 200 for other event
        types, and an error status with a plain text body otherwise
    """
    delivery_id = extract_delivery_id(request.headers)
    event_type = request.headers.get(EVENT_TYPE_HEADER)
    log = logger.bind(delivery_id=delivery_id, event_type=event_type)

    raw_body = await request.body()

    try:
        verify_webhook_signature(request.headers, raw_body, settings.webhook_secret)
        payload = extract_payload(request.headers.get("Content-Type"), raw_body)
    except WebhookSecurityError as e:
        log.warning("Error validating request body", error=str(e))
        return _error_response(str(e), status.HTTP_401_UNAUTHORIZED)

    try:
        event = parse_webhook(event_type, payload)
    except WebhookParseError as e:
        log.warning("Could not parse webhook", error=str(e))
        return _error_response(str(e), status.HTTP_400_BAD_REQUEST)

    if event is None:
        log.info("Ignoring event type")
        return Response(status_code=status.HTTP_200_OK)

    log = log.bind(action=event.action, pr_number=event.pull_request.number)

    try:
        outcome = await CardReconciler(client, settings).reconcile(event)
    except ReconcileError as e:
        log.error("Card reconciliation failed", error=str(e), status_code=e.status_code)
        return _error_response(str(e), e.status_code)

    if outcome is ReconcileOutcome.IGNORED:
        return Response(status_code=status.HTTP_202_ACCEPTED)

    log.info("Pull request card in review", outcome=outcome.value)
    return Response(status_code=status.HTTP_201_CREATED)
