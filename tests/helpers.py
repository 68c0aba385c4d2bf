"""Fake providers and database helpers shared by the API tests."""

import itertools
import json
from types import SimpleNamespace

import httpx
from fastapi.testclient import TestClient
from sqlalchemy import select

from voice_gateway.db.database import Database
from voice_gateway.db.models import Profile
from voice_gateway.dependencies import Services

JWT_SECRET = "test-jwt-secret"
TEST_USER_ID = "user-123"


# =============================================================================
# Fake Providers
# =============================================================================


class FakeVapi:
    """In-memory stand-in for the Vapi REST API, served through httpx.MockTransport."""

    def __init__(self):
        self.calls: dict[str, dict] = {}
        self.assistants: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.error: tuple[int, dict] | None = None
        self._ids = itertools.count(1)

    def fail_with(self, status_code: int, body: dict) -> None:
        self.error = (status_code, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            status_code, body = self.error
            return httpx.Response(status_code, json=body)

        parts = [p for p in request.url.path.split("/") if p]
        resource = parts[0]
        item_id = parts[1] if len(parts) > 1 else None
        store = self.calls if resource == "call" else self.assistants

        if request.method == "POST":
            body = json.loads(request.content)
            new_id = f"{resource}_{next(self._ids)}"
            store[new_id] = {"id": new_id, "status": "queued", **body}
            return httpx.Response(201, json=store[new_id])

        if item_id is None:
            return httpx.Response(200, json=list(store.values()))

        if item_id not in store:
            return httpx.Response(404, json={"message": f"{resource} not found"})

        if request.method == "PATCH":
            store[item_id].update(json.loads(request.content))
            return httpx.Response(200, json=store[item_id])

        if request.method == "DELETE":
            deleted = store.pop(item_id)
            return httpx.Response(200, json=deleted)

        return httpx.Response(200, json=store[item_id])

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class FakeTelegram:
    """Records every message sent to the Bot API."""

    def __init__(self):
        self.messages: list[dict] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(400, json={"ok": False, "description": "chat not found"})
        self.messages.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.messages)}})

    @property
    def texts(self) -> list[str]:
        return [m["text"] for m in self.messages]


class FakeStripe:
    """Replaces stripe.checkout.Session.create."""

    def __init__(self):
        self.sessions: list[dict] = []
        self.error: Exception | None = None

    def create(self, **params):
        if self.error is not None:
            raise self.error
        self.sessions.append(params)
        return SimpleNamespace(
            id=f"cs_test_{len(self.sessions)}",
            url=f"https://checkout.stripe.com/c/pay/cs_test_{len(self.sessions)}",
        )


# =============================================================================
# Database Helpers
# =============================================================================


def drain(client: TestClient, services: Services) -> None:
    """Wait for background side effects started by previous requests."""
    client.portal.call(services.dispatcher.drain)


async def _fetch_all(database: Database, model):
    async with database.session() as session:
        result = await session.execute(select(model))
        return list(result.scalars().all())


def fetch_all(client: TestClient, services: Services, model) -> list:
    """All rows of ``model``, read on the app's event loop."""
    drain(client, services)
    return client.portal.call(_fetch_all, services.database, model)


async def _add_profile(database: Database, user_id: str, calls_remaining: int):
    async with database.session() as session:
        session.add(
            Profile(id=user_id, email=f"{user_id}@example.com", calls_remaining=calls_remaining)
        )


def add_profile(client: TestClient, services: Services, user_id: str, calls_remaining: int):
    client.portal.call(_add_profile, services.database, user_id, calls_remaining)
