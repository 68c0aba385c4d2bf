"""Stripe webhook handling for lead payment links."""

import logging

from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.billing.stripe_client import StripePayments
from voice_gateway.db.database import get_db
from voice_gateway.db.models import PaymentStatus
from voice_gateway.dependencies import get_payments
from voice_gateway.errors import InvalidRequestError
from voice_gateway.leads.store import LeadStore

logger = logging.getLogger("voice-gateway-payments")

router = APIRouter(tags=["Payments"])

# Checkout session events and the payment status they imply
SESSION_EVENT_STATUS = {
    "checkout.session.completed": PaymentStatus.COMPLETED,
    "checkout.session.async_payment_succeeded": PaymentStatus.COMPLETED,
    "checkout.session.expired": PaymentStatus.FAILED,
    "checkout.session.async_payment_failed": PaymentStatus.FAILED,
}


class StripeWebhookAck(BaseModel):
    success: bool = True
    received: bool = True


@router.post("/webhook/stripe", response_model=StripeWebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    payments: StripePayments = Depends(get_payments),
):
    """Handle Stripe webhooks.

    Processes checkout session events for lead payment links:
    - checkout.session.completed
    - checkout.session.async_payment_succeeded
    - checkout.session.expired
    - checkout.session.async_payment_failed
    """
    payload = await request.body()

    try:
        event = payments.verify_webhook(payload, stripe_signature)
    except ValueError as e:
        raise InvalidRequestError(str(e)) from e

    event_type = event.get("type")
    data = event.get("data", {}).get("object", {})

    payment_status = SESSION_EVENT_STATUS.get(event_type)
    if payment_status is None:
        logger.info(f"[Stripe] Ignoring event type: {event_type}")
        return StripeWebhookAck()

    # Paid sessions may still be awaiting an async payment method
    if event_type == "checkout.session.completed" and data.get("payment_status") == "unpaid":
        logger.info(f"[Stripe] Session {data.get('id')} completed but unpaid")
        return StripeWebhookAck()

    lead_id = (data.get("metadata") or {}).get("lead_id")
    if not lead_id:
        logger.warning(f"[Stripe] {event_type} for session {data.get('id')} has no lead_id")
        return StripeWebhookAck()

    lead = await LeadStore(db).update_payment(lead_id, payment_status.value)
    await db.commit()
    if lead is None:
        logger.warning(f"[Stripe] {event_type} references unknown lead {lead_id}")
    else:
        logger.info(f"[Stripe] Lead {lead_id} payment {payment_status.value}")

    return StripeWebhookAck()
