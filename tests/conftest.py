"""Shared fixtures: an app wired to a temporary SQLite database and fake providers."""

import httpx
import pytest
import stripe
from fastapi.testclient import TestClient

from helpers import JWT_SECRET, TEST_USER_ID, FakeStripe, FakeTelegram, FakeVapi
from voice_gateway.auth.jwt import AuthConfig, create_access_token
from voice_gateway.billing.stripe_client import StripeConfig, StripePayments
from voice_gateway.chat.assistant import ChatAssistant
from voice_gateway.config import Settings
from voice_gateway.db.database import Database
from voice_gateway.dependencies import Services
from voice_gateway.main import create_app
from voice_gateway.providers.llm import LLMConfig
from voice_gateway.providers.telegram import TelegramConfig, TelegramNotifier
from voice_gateway.providers.vapi import VapiClient, VapiConfig
from voice_gateway.qualification.sentiment import KeywordSentimentClassifier


@pytest.fixture
def fake_vapi():
    return FakeVapi()


@pytest.fixture
def fake_telegram():
    return FakeTelegram()


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeStripe()
    monkeypatch.setattr(stripe.checkout.Session, "create", fake.create)
    return fake


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}",
        demo_assistant_id="demo-assistant",
        vapi=VapiConfig(private_key="test-vapi-key"),
        auth=AuthConfig(jwt_secret=JWT_SECRET),
        telegram=TelegramConfig(bot_token="test-bot-token", chat_id="42"),
        stripe=StripeConfig(api_key="sk_test_123", webhook_secret="whsec_test"),
        llm=LLMConfig(provider="none"),
    )


@pytest.fixture
def services(settings, fake_vapi, fake_telegram, fake_stripe):
    return Services(
        settings=settings,
        database=Database(settings.database_url),
        voice=VapiClient(settings.vapi, transport=httpx.MockTransport(fake_vapi.handler)),
        notifier=TelegramNotifier(
            settings.telegram, transport=httpx.MockTransport(fake_telegram.handler)
        ),
        payments=StripePayments(settings.stripe),
        assistant=ChatAssistant(None),
        classifier=KeywordSentimentClassifier(),
    )


@pytest.fixture
def client(services):
    """Test client with the app lifespan running."""
    app = create_app(services=services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(settings):
    token = create_access_token(TEST_USER_ID, settings.auth, email="owner@example.com")
    return {"Authorization": f"Bearer {token}"}
