"""
Webhook API Routes
Facebook page webhook verification and delivery endpoints.
"""

import json
from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import PlainTextResponse

from fanpage_service.config.constants import WEBHOOK_SIGNATURE_HEADER
from fanpage_service.dependencies import get_webhook_service
from fanpage_service.exceptions.base_exceptions import ValidationError
from fanpage_service.services.webhook_service import WebhookService

logger = structlog.get_logger()
router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.get(
    "",
    response_class=PlainTextResponse,
    summary="Webhook verification",
    description="Echo the subscription challenge when the verify token matches"
)
async def verify_webhook(
        webhook_service: Annotated[WebhookService, Depends(get_webhook_service)],
        hub_mode: Optional[str] = Query(default=None, alias="hub.mode"),
        hub_verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
        hub_challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
) -> PlainTextResponse:
    """
    Handle the subscription handshake

    Returns:
        The challenge as text/plain

    Raises:
        403: Mode or token mismatch, or missing parameters
    """
    challenge = webhook_service.verify_subscription(hub_mode, hub_verify_token, hub_challenge)
    return PlainTextResponse(content=challenge, status_code=200)


@router.post(
    "",
    response_class=PlainTextResponse,
    summary="Receive webhook",
    description="Ingest page events and acknowledge with EVENT_RECEIVED"
)
async def receive_webhook(
        request: Request,
        webhook_service: Annotated[WebhookService, Depends(get_webhook_service)],
        signature: Optional[str] = Header(default=None, alias=WEBHOOK_SIGNATURE_HEADER),
) -> PlainTextResponse:
    """
    Handle a webhook delivery

    Per-entry failures are logged and still acknowledged.

    Raises:
        400: Body is not JSON or not a page envelope
        401: Signature checking is enabled and the signature is invalid
    """
    body = await request.body()
    webhook_service.verify_signature(body, signature)

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Webhook body is not valid JSON")

    ack = await webhook_service.ingest(payload)
    return PlainTextResponse(content=ack, status_code=200)
