"""CallWaitingAI voice gateway.

This FastAPI application fronts the Vapi voice API and adds:
- Authenticated, quota-metered outbound calls
- Webhook-driven call records and lead extraction
- Chat and form lead capture with qualification scoring
- Telegram notifications and Stripe payment links
"""

from voice_gateway.main import create_app

__all__ = ["create_app"]
