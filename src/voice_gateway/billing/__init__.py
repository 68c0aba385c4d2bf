"""Payments module.

Stripe Checkout sessions serve as payment links for qualified leads.
"""

from voice_gateway.billing.stripe_client import (
    PLAN_CONFIG,
    PlanType,
    StripeConfig,
    StripePayments,
)

__all__ = [
    "PLAN_CONFIG",
    "PlanType",
    "StripeConfig",
    "StripePayments",
]
