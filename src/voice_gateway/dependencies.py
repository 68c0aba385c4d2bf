"""Service container and FastAPI dependency getters.

Clients are built once per application by ``Services.from_settings`` and
stored on ``app.state.services``; routes receive them through the getters
below. Tests construct Services directly with fakes.
"""

import logging
from dataclasses import dataclass, field

from fastapi import Request

from voice_gateway.billing.stripe_client import StripePayments
from voice_gateway.chat.assistant import ChatAssistant
from voice_gateway.config import Settings
from voice_gateway.db.database import Database
from voice_gateway.leads.pipeline import LeadEffects
from voice_gateway.middleware.rate_limit import FixedWindowRateLimiter
from voice_gateway.providers.llm import build_llm_provider
from voice_gateway.providers.telegram import TelegramNotifier
from voice_gateway.providers.vapi import VapiClient
from voice_gateway.qualification.sentiment import SentimentClassifier, build_classifier
from voice_gateway.side_effects import SideEffectDispatcher

logger = logging.getLogger("voice-gateway-api")


@dataclass
class Services:
    """Everything a request handler may need, built once per app."""

    settings: Settings
    database: Database
    voice: VapiClient
    notifier: TelegramNotifier
    payments: StripePayments
    assistant: ChatAssistant
    classifier: SentimentClassifier
    dispatcher: SideEffectDispatcher = field(default_factory=SideEffectDispatcher)
    demo_rate_limiter: FixedWindowRateLimiter | None = None
    lead_effects: LeadEffects = field(init=False)

    def __post_init__(self):
        if self.demo_rate_limiter is None:
            self.demo_rate_limiter = FixedWindowRateLimiter(
                window_seconds=self.settings.demo_rate_limit_window_seconds,
                max_requests=self.settings.demo_rate_limit_max_requests,
            )
        self.lead_effects = LeadEffects(
            database=self.database,
            notifier=self.notifier,
            payments=self.payments,
            dispatcher=self.dispatcher,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        """Create the production clients for ``settings``."""
        provider = build_llm_provider(settings.llm)
        return cls(
            settings=settings,
            database=Database(settings.database_url),
            voice=VapiClient(settings.vapi),
            notifier=TelegramNotifier(settings.telegram),
            payments=StripePayments(settings.stripe),
            assistant=ChatAssistant(provider),
            classifier=build_classifier(provider),
        )

    async def aclose(self) -> None:
        """Close network clients and the database engine."""
        await self.voice.aclose()
        await self.notifier.aclose()
        await self.assistant.aclose()
        await self.database.dispose()


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return request.app.state.services.settings


def get_voice_client(request: Request) -> VapiClient:
    return request.app.state.services.voice


def get_payments(request: Request) -> StripePayments:
    return request.app.state.services.payments


def get_assistant(request: Request) -> ChatAssistant:
    return request.app.state.services.assistant


def get_classifier(request: Request) -> SentimentClassifier:
    return request.app.state.services.classifier


def get_lead_effects(request: Request) -> LeadEffects:
    return request.app.state.services.lead_effects
