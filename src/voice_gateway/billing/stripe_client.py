"""Stripe integration for lead payment links.

Payment links are Stripe Checkout Sessions created with inline pricing,
so no products or prices need to exist in the Stripe account beforehand.
"""

import asyncio
import json
import logging
import os
import secrets
import time
from dataclasses import dataclass
from enum import Enum

import stripe

from voice_gateway.errors import PaymentError

logger = logging.getLogger("voice-gateway-payments")

DEFAULT_SUCCESS_URL = "https://callwaitingai.dev/payment/success"
DEFAULT_CANCEL_URL = "https://callwaitingai.dev/pricing"


class PlanType(str, Enum):
    """Subscription plans offered to leads."""

    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


PLAN_CONFIG = {
    PlanType.TRIAL: {
        "amount_cents": 0,
        "currency": "usd",
        "description": "7-day free trial - 50 calls",
    },
    PlanType.STARTER: {
        "amount_cents": 2900,  # $29
        "currency": "usd",
        "description": "Starter Plan - 100 calls/month",
    },
    PlanType.PROFESSIONAL: {
        "amount_cents": 7900,  # $79
        "currency": "usd",
        "description": "Professional Plan - 500 calls/month",
    },
    PlanType.ENTERPRISE: {
        "amount_cents": 19900,  # $199
        "currency": "usd",
        "description": "Enterprise Plan - Unlimited calls",
    },
}

# Price quoted to leads captured by the website widget and pricing page
WIDGET_LEAD_AMOUNT_CENTS = 9900


@dataclass
class StripeConfig:
    """Stripe configuration from environment."""

    api_key: str = ""
    webhook_secret: str = ""
    success_url: str = DEFAULT_SUCCESS_URL
    cancel_url: str = DEFAULT_CANCEL_URL

    @classmethod
    def from_env(cls) -> "StripeConfig":
        """Load Stripe config from environment variables."""
        api_key = os.getenv("STRIPE_SECRET_KEY", "")
        if not api_key:
            logger.warning("STRIPE_SECRET_KEY not set - payment links disabled")
        return cls(
            api_key=api_key,
            webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
            success_url=os.getenv("PAYMENT_SUCCESS_URL", DEFAULT_SUCCESS_URL),
            cancel_url=os.getenv("PAYMENT_CANCEL_URL", DEFAULT_CANCEL_URL),
        )

    def is_configured(self) -> bool:
        """Check if Stripe is properly configured."""
        return bool(self.api_key)


def make_reference() -> str:
    """Generate a unique payment reference."""
    return f"CW-{int(time.time() * 1000)}-{secrets.token_hex(5)}"


class StripePayments:
    """Generates and verifies payment links through Stripe Checkout."""

    def __init__(self, config: StripeConfig | None = None):
        """Initialize the payments client.

        Args:
            config: Stripe configuration. Loads from env if not provided.
        """
        self.config = config or StripeConfig.from_env()

    @property
    def enabled(self) -> bool:
        return self.config.is_configured()

    async def generate_payment_link(
        self,
        amount_cents: int,
        customer_name: str,
        customer_email: str,
        customer_phone: str | None = None,
        currency: str = "usd",
        description: str | None = None,
        reference: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str | None:
        """Create a hosted payment page for a customer.

        Args:
            amount_cents: Amount to charge, in the currency's minor unit.
            customer_name: Name shown on the checkout page.
            customer_email: Prefilled customer email.
            customer_phone: Optional phone, kept in session metadata.
            currency: ISO currency code.
            description: Line-item description.
            reference: Our reference for the payment (generated if omitted).
            metadata: Extra metadata attached to the session.

        Returns:
            The checkout URL, or None when Stripe is not configured.

        Raises:
            PaymentError: If Stripe rejects the request.
        """
        if not self.enabled:
            logger.warning("[Stripe] Service disabled - skipping payment link generation")
            return None

        reference = reference or make_reference()
        session_metadata = {
            "reference": reference,
            "customer_name": customer_name,
            "customer_phone": customer_phone or "",
            "source": "voice-call-lead",
            **(metadata or {}),
        }

        params: dict = {
            "mode": "payment",
            "customer_email": customer_email,
            "client_reference_id": reference,
            "success_url": self.config.success_url,
            "cancel_url": self.config.cancel_url,
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": currency,
                        "unit_amount": amount_cents,
                        "product_data": {
                            "name": "CallWaitingAI Subscription",
                            "description": description
                            or "Voice AI Receptionist Service",
                        },
                    },
                }
            ],
            "metadata": session_metadata,
            "api_key": self.config.api_key,
        }

        try:
            session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            raise PaymentError(f"Stripe checkout session failed: {e!s}") from e

        logger.info(f"[Stripe] Payment link generated: {session.url}")
        return session.url

    async def generate_lead_payment_link(
        self,
        lead_name: str,
        lead_email: str,
        lead_phone: str | None = None,
        plan: PlanType = PlanType.STARTER,
        metadata: dict[str, str] | None = None,
    ) -> str | None:
        """Generate a payment link priced from the plan catalogue."""
        plan_config = PLAN_CONFIG[plan]
        return await self.generate_payment_link(
            amount_cents=plan_config["amount_cents"],
            currency=plan_config["currency"],
            customer_name=lead_name,
            customer_email=lead_email,
            customer_phone=lead_phone,
            description=plan_config["description"],
            metadata={"plan": plan.value, **(metadata or {})},
        )

    async def verify_payment(self, session_id: str) -> bool:
        """Check whether a checkout session has been paid."""
        if not self.enabled:
            return False

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.retrieve, session_id, api_key=self.config.api_key
            )
        except stripe.StripeError as e:
            logger.error(f"[Stripe] Payment verification failed: {e!s}")
            return False

        return session.payment_status == "paid"

    def verify_webhook(self, payload: bytes, signature: str) -> dict:
        """Verify and parse a Stripe webhook.

        Args:
            payload: Raw request body.
            signature: Stripe-Signature header.

        Returns:
            Parsed webhook event.

        Raises:
            ValueError: If signature verification fails.
        """
        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self.config.webhook_secret,
            )
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid webhook signature: {e}") from e

        # Plain dicts rather than StripeObjects
        return json.loads(payload)
