"""Voice provider webhook endpoint."""

import json
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.db.database import get_db
from voice_gateway.dependencies import Services, get_services
from voice_gateway.webhooks.processor import WebhookProcessor

logger = logging.getLogger("voice-gateway-webhook")

router = APIRouter(tags=["Webhooks"])


class WebhookAck(BaseModel):
    success: bool = True
    received: bool = True
    error: str | None = None


@router.post(
    "/webhook/vapi",
    response_model=WebhookAck,
    response_model_exclude_none=True,
)
async def vapi_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Receive call lifecycle events from the voice provider.

    Always acknowledges with 200 so the provider does not retry; processing
    errors are reported in the body and stored on the event.
    """
    body = await request.body()
    try:
        payload = json.loads(body) if body else None
    except ValueError:
        payload = body.decode("utf-8", errors="replace")

    processor = WebhookProcessor(
        db,
        notifier=services.notifier,
        dispatcher=services.dispatcher,
        lead_effects=services.lead_effects,
    )
    result = await processor.process(payload)
    return WebhookAck(error=result.error)
