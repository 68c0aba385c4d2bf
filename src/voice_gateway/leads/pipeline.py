"""Background notification and payment-link effects for new leads.

Each effect runs as its own dispatcher task with its own database session,
so a failed notification never blocks the payment link and neither can
fail the request or webhook that produced the lead.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from voice_gateway.billing.stripe_client import (
    WIDGET_LEAD_AMOUNT_CENTS,
    PlanType,
    StripePayments,
)
from voice_gateway.db.database import Database
from voice_gateway.db.models import Lead, PaymentStatus
from voice_gateway.errors import PaymentError
from voice_gateway.leads.store import LeadStore
from voice_gateway.providers.telegram import TelegramNotifier
from voice_gateway.side_effects import SideEffectDispatcher

logger = logging.getLogger("voice-gateway-leads")

# Sources whose leads get a payment link straight away
PAYMENT_LINK_SOURCES = frozenset({"ai_widget", "pricing_page"})


def format_form_lead_message(lead: Lead) -> str:
    """Telegram message for a lead captured by a website form or widget."""
    lines = [f"🎯 *New Lead from {lead.source}*", "", f"👤 Name: {lead.name}"]
    lines.append(f"📧 Email: {lead.email}")
    if lead.phone:
        lines.append(f"📞 Phone: {lead.phone}")
    lines += ["", f"🔍 Source: {lead.source}"]
    conversation_length = (lead.lead_metadata or {}).get("conversationLength")
    if conversation_length:
        lines.append(f"💬 Messages: {conversation_length}")
    lines += [
        "",
        f"Lead ID: {lead.id}",
        f"Time: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
    ]
    return "\n".join(lines)


class LeadEffects:
    """Schedules the side effects that follow a saved lead."""

    def __init__(
        self,
        database: Database,
        notifier: TelegramNotifier,
        payments: StripePayments,
        dispatcher: SideEffectDispatcher,
    ):
        self.database = database
        self.notifier = notifier
        self.payments = payments
        self.dispatcher = dispatcher

    def after_call_lead(self, lead: Lead, transcript: str) -> None:
        """Notify operators and, for qualified leads with contact details, send a payment link."""
        self.dispatcher.spawn(
            f"lead-notify:{lead.id}", self._notify_call_lead(lead.id, transcript)
        )
        if lead.is_qualified and lead.name and lead.email:
            self.dispatcher.spawn(
                f"lead-payment-link:{lead.id}", self._send_call_payment_link(lead.id)
            )

    def after_form_lead(self, lead: Lead) -> None:
        self.dispatcher.spawn(f"lead-notify:{lead.id}", self._notify_form_lead(lead.id))

    async def _load(self, store: LeadStore, lead_id: UUID) -> Lead:
        lead = await store.get(lead_id)
        if lead is None:
            raise LookupError(f"Lead {lead_id} disappeared before its side effects ran")
        return lead

    async def _notify_call_lead(self, lead_id: UUID, transcript: str) -> None:
        async with self.database.session() as session:
            store = LeadStore(session)
            lead = await self._load(store, lead_id)
            if await self.notifier.notify_new_lead(lead, transcript):
                await store.mark_notified(lead_id)

    async def _notify_form_lead(self, lead_id: UUID) -> None:
        async with self.database.session() as session:
            store = LeadStore(session)
            lead = await self._load(store, lead_id)
            if await self.notifier.send_message(format_form_lead_message(lead)):
                await store.mark_notified(lead_id)

    async def _send_call_payment_link(self, lead_id: UUID) -> None:
        async with self.database.session() as session:
            lead = await self._load(LeadStore(session), lead_id)

        payment_link = await self.payments.generate_lead_payment_link(
            lead_name=lead.name,
            lead_email=lead.email,
            lead_phone=lead.phone,
            plan=PlanType.STARTER,
            metadata={"lead_id": str(lead.id)},
        )
        if not payment_link:
            return

        async with self.database.session() as session:
            await LeadStore(session).update_payment(
                lead_id, PaymentStatus.PENDING.value, payment_link
            )
        logger.info(f"[Leads] Payment link generated for lead {lead_id}")

        await self.notifier.notify_payment_link(lead, payment_link)

    async def widget_payment_link(self, store: LeadStore, lead: Lead) -> str | None:
        """Create the payment link returned to widget and pricing-page leads.

        Best-effort: failures are logged and answered with None.
        """
        if lead.source not in PAYMENT_LINK_SOURCES:
            return None

        try:
            payment_link = await self.payments.generate_payment_link(
                amount_cents=WIDGET_LEAD_AMOUNT_CENTS,
                currency="usd",
                customer_name=lead.name,
                customer_email=lead.email,
                customer_phone=lead.phone,
                description="Get started with AI-powered voice reception",
                reference=f"lead-{lead.id}",
                metadata={"lead_id": str(lead.id)},
            )
        except PaymentError as e:
            logger.error(f"[Leads] Payment link generation failed for {lead.id}: {e!s}")
            return None

        if payment_link:
            await store.update_payment(lead.id, PaymentStatus.PENDING.value, payment_link)
        return payment_link
