"""Voice provider webhook processing.

Drives the call-record state machine from call lifecycle events and
extracts leads from finished calls:

    call.started -> in_progress
    call.ended   -> answered (transcript, duration, recording; lead extraction)
    call.failed  -> missed (operator alert)
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.calls.store import CallStore
from voice_gateway.db.models import CallStatus
from voice_gateway.leads.pipeline import LeadEffects
from voice_gateway.leads.store import LeadStore
from voice_gateway.providers.telegram import TelegramNotifier
from voice_gateway.qualification.transcript import extract_lead
from voice_gateway.side_effects import SideEffectDispatcher
from voice_gateway.webhooks.store import WebhookEventStore

logger = logging.getLogger("voice-gateway-webhook")

# Provider cost per minute used to estimate call duration
COST_PER_MINUTE = 0.01
INVALID_EVENT_TYPE = "invalid"


# =============================================================================
# Event Models
# =============================================================================


class WebhookCustomer(BaseModel):
    model_config = ConfigDict(extra="allow")

    number: str | None = None
    name: str | None = None


class WebhookCall(BaseModel):
    """The call object embedded in lifecycle events."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    status: str | None = None
    customer: WebhookCustomer | None = None
    metadata: dict[str, Any] | None = None
    transcript: str | None = None
    recording_url: str | None = Field(default=None, alias="recordingUrl")
    cost: float | None = None

    @property
    def user_id(self) -> str | None:
        user_id = (self.metadata or {}).get("userId")
        return str(user_id) if user_id else None


class WebhookMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    transcript: str | None = None
    role: str | None = None


class VapiWebhookEvent(BaseModel):
    """A webhook delivered by the voice provider."""

    model_config = ConfigDict(extra="allow")

    type: str
    call: WebhookCall | None = None
    message: WebhookMessage | None = None
    timestamp: str | None = None


@dataclass
class WebhookResult:
    """Outcome of processing one webhook."""

    event_type: str
    error: str | None = None


def estimate_duration(cost: float | None) -> int | None:
    """Duration in seconds estimated from the provider's call cost."""
    if not cost:
        return None
    return round(cost / COST_PER_MINUTE * 60)


def event_type_of(payload: Any) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        return payload["type"]
    return INVALID_EVENT_TYPE


# =============================================================================
# Processor
# =============================================================================


class WebhookProcessor:
    """Persists, dispatches and acknowledges provider webhooks."""

    def __init__(
        self,
        db: AsyncSession,
        notifier: TelegramNotifier,
        dispatcher: SideEffectDispatcher,
        lead_effects: LeadEffects,
    ):
        self.db = db
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.lead_effects = lead_effects
        self.events = WebhookEventStore(db)
        self.calls = CallStore(db)

    async def process(self, payload: Any) -> WebhookResult:
        """Record ``payload``, apply it, and mark it processed.

        Never raises for bad payloads, handler failures or a failed event
        write; the error is stored on the event when possible and returned.
        """
        event_type = event_type_of(payload)
        logger.info(f"[Webhook] Received event: {event_type}")

        event_id: UUID | None = None
        try:
            saved = await self.events.create(event_type, payload)
            event_id = saved.id
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"[Webhook] Failed to record {event_type} event: {e!s}")
            await self.db.rollback()

        error: str | None = None
        try:
            event = VapiWebhookEvent.model_validate(payload)
            await self._dispatch(event)
            await self.db.commit()
        except ValidationError as e:
            error = f"Invalid webhook payload: {e.error_count()} validation error(s)"
            logger.warning(f"[Webhook] {error}")
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.exception(f"[Webhook] Error processing event: {error}")
            await self.db.rollback()

        if event_id is not None:
            try:
                await self.events.mark_processed(event_id, error)
                await self.db.commit()
            except SQLAlchemyError as e:
                logger.error(f"[Webhook] Failed to mark event {event_id} processed: {e!s}")
                await self.db.rollback()
        return WebhookResult(event_type=event_type, error=error)

    async def _dispatch(self, event: VapiWebhookEvent) -> None:
        if event.type == "call.started":
            await self.handle_call_started(event)
        elif event.type == "call.ended":
            await self.handle_call_ended(event)
        elif event.type == "call.failed":
            await self.handle_call_failed(event)
        elif event.type == "transcript":
            if event.message and event.message.transcript:
                logger.info(f"[Webhook] Transcript: {event.message.transcript}")
        else:
            logger.info(f"[Webhook] Unhandled event type: {event.type}")

    def _owned_call(self, event: VapiWebhookEvent) -> WebhookCall | None:
        """The event's call, or None when it has no call or no owning user."""
        if event.call is None:
            return None
        if event.call.user_id is None:
            logger.warning(f"[Webhook] {event.type} event missing userId in metadata")
            return None
        return event.call

    async def handle_call_started(self, event: VapiWebhookEvent) -> None:
        call = self._owned_call(event)
        if call is None:
            return

        await self.calls.update(call.id, status=CallStatus.IN_PROGRESS.value)
        logger.info(f"[Webhook] Call {call.id} started for user {call.user_id}")

    async def handle_call_ended(self, event: VapiWebhookEvent) -> None:
        call = self._owned_call(event)
        if call is None:
            return

        updates: dict[str, Any] = {"status": CallStatus.ANSWERED.value}
        if call.transcript is not None:
            updates["transcript"] = call.transcript
        duration = estimate_duration(call.cost)
        if duration is not None:
            updates["duration"] = duration
        if call.recording_url is not None:
            updates["audio_url"] = call.recording_url

        await self.calls.update(call.id, **updates)
        await self.db.commit()
        logger.info(f"[Webhook] Call {call.id} ended - Duration: {duration}s")

        if call.transcript:
            await self.extract_and_save_lead(call)

    async def handle_call_failed(self, event: VapiWebhookEvent) -> None:
        call = self._owned_call(event)
        if call is None:
            return

        await self.calls.update(call.id, status=CallStatus.MISSED.value)
        logger.info(f"[Webhook] Call {call.id} failed for user {call.user_id}")

        number = call.customer.number if call.customer else None
        self.dispatcher.spawn(
            f"call-failed-alert:{call.id}",
            self.notifier.notify_error(
                f"Call {call.id} failed", RuntimeError(f"Call to {number} failed")
            ),
        )

    async def extract_and_save_lead(self, call: WebhookCall) -> None:
        """Save a lead from the call transcript and schedule its side effects.

        Failures are logged and never fail the webhook.
        """
        extracted = extract_lead(call.transcript or "")
        try:
            lead = await LeadStore(self.db).create(
                user_id=call.user_id,
                call_id=call.id,
                name=extracted.name,
                email=extracted.email,
                phone=call.customer.number if call.customer else None,
                intent=extracted.intent,
                source="voice_call",
                is_qualified=extracted.is_qualified,
                qualification_score=extracted.confidence,
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"[Webhook] Failed to extract and save lead: {e!s}")
            await self.db.rollback()
            return

        logger.info(f"[Webhook] Lead saved: {lead.id} - Intent: {extracted.intent}")
        self.lead_effects.after_call_lead(lead, call.transcript or "")
