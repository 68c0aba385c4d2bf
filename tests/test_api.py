"""API integration tests for the voice gateway."""

import hashlib
import hmac
import json
import time
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from helpers import TEST_USER_ID, add_profile, drain, fetch_all
from voice_gateway.db.models import CallRecord, ChatConversation, Lead, RequestLog

API = "/api/voice/v1"


def make_call_request(**overrides):
    """Create a valid outbound call payload."""
    payload = {
        "assistantId": "assistant-1",
        "customer": {"number": "+14155551234", "name": "Bob"},
    }
    payload.update(overrides)
    return payload


def make_lead_request(**overrides):
    payload = {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "+447700900123",
        "source": "contact_form",
    }
    payload.update(overrides)
    return payload


def sign_stripe_payload(payload: bytes, secret: str = "whsec_test") -> str:
    """Stripe-Signature header for ``payload``, signed the way Stripe does."""
    timestamp = int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


# =============================================================================
# Health & Errors
# =============================================================================


class TestHealth:
    """Tests for the unauthenticated service endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["uptime"] >= 0
        assert "timestamp" in data

    def test_root_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["endpoints"]["call"] == f"POST {API}/call"
        assert data["endpoints"]["demoCall"] == f"POST {API}/demo-call"

    def test_security_headers(self, client):
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
        assert "Strict-Transport-Security" in response.headers


class TestErrorShapes:
    """Tests for the JSON error envelope."""

    def test_unknown_route(self, client):
        response = client.get(f"{API}/nothing-here")

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "Not Found"
        assert data["message"] == f"Route GET {API}/nothing-here not found"

    def test_missing_token(self, client):
        response = client.get(f"{API}/calls")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_invalid_token(self, client):
        response = client.get(f"{API}/calls", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_validation_error_is_bad_request(self, client, auth_headers):
        response = client.get(f"{API}/calls?limit=0", headers=auth_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Bad Request"
        assert "limit" in data["message"]


# =============================================================================
# Calls
# =============================================================================


class TestCalls:
    """Tests for outbound calls and the call quota."""

    def test_create_call_uses_quota(self, client, services, auth_headers, fake_vapi):
        add_profile(client, services, TEST_USER_ID, calls_remaining=2)

        response = client.post(f"{API}/call", json=make_call_request(), headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["call"]["id"] == "call_1"
        assert data["callsRemaining"] == 1

        sent = fake_vapi.last_json()
        assert sent["metadata"]["userId"] == TEST_USER_ID
        assert sent["metadata"]["source"] == "callwaitingai"
        assert "phoneNumberId" not in sent

        records = fetch_all(client, services, CallRecord)
        assert len(records) == 1
        assert records[0].status == "in_progress"
        assert records[0].caller_phone == "+14155551234"

    def test_quota_exhausted(self, client, services, auth_headers, fake_vapi):
        add_profile(client, services, TEST_USER_ID, calls_remaining=1)
        assert client.post(f"{API}/call", json=make_call_request(), headers=auth_headers).status_code == 200

        response = client.post(f"{API}/call", json=make_call_request(), headers=auth_headers)

        assert response.status_code == 403
        data = response.json()
        assert data["callsRemaining"] == 0
        assert "No calls remaining" in data["message"]
        assert len(fake_vapi.calls) == 1

    def test_missing_profile(self, client, auth_headers, fake_vapi):
        response = client.post(f"{API}/call", json=make_call_request(), headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to check user call quota"
        assert fake_vapi.requests == []

    def test_missing_customer_number(self, client, auth_headers):
        response = client.post(
            f"{API}/call", json={"assistantId": "assistant-1"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "assistantId and customer.number are required"

    def test_list_calls_only_returns_own(self, client, auth_headers, fake_vapi):
        fake_vapi.calls["c1"] = {"id": "c1", "metadata": {"userId": TEST_USER_ID}}
        fake_vapi.calls["c2"] = {"id": "c2", "metadata": {"userId": "someone-else"}}
        fake_vapi.calls["c3"] = {"id": "c3"}

        response = client.get(f"{API}/calls?limit=10", headers=auth_headers)

        data = response.json()
        assert data["count"] == 1
        assert data["calls"][0]["id"] == "c1"
        assert data["limit"] == 10
        assert fake_vapi.requests[-1].url.params["limit"] == "10"

    def test_provider_error_passes_through(self, client, auth_headers, fake_vapi):
        response = client.get(f"{API}/call/unknown", headers=auth_headers)

        assert response.status_code == 404
        data = response.json()
        assert data["error"] == "Upstream Provider Error"
        assert data["message"] == "call not found"


# =============================================================================
# Assistants
# =============================================================================


class TestAssistants:
    """Tests for the assistant proxy."""

    def test_crud(self, client, auth_headers):
        created = client.post(
            f"{API}/assistant",
            json={"name": "Receptionist", "model": {"provider": "openai"}, "voice": {"voiceId": "v"}},
            headers=auth_headers,
        )
        assert created.status_code == 201
        assistant_id = created.json()["assistant"]["id"]

        updated = client.patch(
            f"{API}/assistant/{assistant_id}", json={"name": "Front desk"}, headers=auth_headers
        )
        assert updated.json()["assistant"]["name"] == "Front desk"

        fetched = client.get(f"{API}/assistant/{assistant_id}", headers=auth_headers)
        assert fetched.json()["assistant"]["name"] == "Front desk"

        deleted = client.delete(f"{API}/assistant/{assistant_id}", headers=auth_headers)
        assert deleted.json()["message"] == "Assistant deleted successfully"

    def test_create_requires_fields(self, client, auth_headers, fake_vapi):
        response = client.post(
            f"{API}/assistant", json={"name": "Receptionist"}, headers=auth_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "name, model, and voice are required fields"
        assert fake_vapi.requests == []


# =============================================================================
# Leads
# =============================================================================


class TestLeadCapture:
    """Tests for the public lead capture endpoint."""

    def test_form_lead_notifies_operators(self, client, services, fake_telegram, fake_stripe):
        response = client.post(f"{API}/leads", json=make_lead_request())

        assert response.status_code == 201
        data = response.json()
        assert data["lead"]["name"] == "Jane Doe"
        assert data["paymentLink"] is None
        assert data["message"] == "Lead captured successfully! Our team will reach out soon."
        assert fake_stripe.sessions == []

        leads = fetch_all(client, services, Lead)
        assert len(leads) == 1
        assert leads[0].user_id == "public"
        assert leads[0].qualification_score == 0.5
        assert leads[0].notified_at is not None
        assert "New Lead from contact_form" in fake_telegram.texts[0]

    def test_widget_lead_gets_payment_link(self, client, services, fake_stripe):
        response = client.post(f"{API}/leads", json=make_lead_request(source="ai_widget"))

        assert response.status_code == 201
        assert response.json()["paymentLink"] == "https://checkout.stripe.com/c/pay/cs_test_1"

        params = fake_stripe.sessions[0]
        lead_id = response.json()["lead"]["id"]
        assert params["client_reference_id"] == f"lead-{lead_id}"
        assert params["line_items"][0]["price_data"]["unit_amount"] == 9900

        lead = fetch_all(client, services, Lead)[0]
        assert lead.payment_status == "pending"
        assert lead.payment_link == "https://checkout.stripe.com/c/pay/cs_test_1"

    def test_payment_failure_still_captures_lead(self, client, services, fake_stripe):
        import stripe

        fake_stripe.error = stripe.StripeError("api down")
        response = client.post(f"{API}/leads", json=make_lead_request(source="pricing_page"))

        assert response.status_code == 201
        assert response.json()["paymentLink"] is None
        assert len(fetch_all(client, services, Lead)) == 1

    def test_notification_failure_does_not_fail_request(self, client, services, fake_telegram):
        fake_telegram.fail = True
        response = client.post(f"{API}/leads", json=make_lead_request())

        assert response.status_code == 201
        lead = fetch_all(client, services, Lead)[0]
        assert lead.notified_at is None

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"name": ""}, "Name and email are required"),
            ({"email": None}, "Name and email are required"),
            ({"email": "not-an-email"}, "Invalid email format"),
        ],
    )
    def test_rejects_bad_input(self, client, services, overrides, message):
        response = client.post(f"{API}/leads", json=make_lead_request(**overrides))

        assert response.status_code == 400
        assert response.json()["message"] == message
        assert fetch_all(client, services, Lead) == []


class TestLeadManagement:
    """Tests for the authenticated lead endpoints."""

    def create_lead(self, client, **overrides) -> str:
        return client.post(f"{API}/leads", json=make_lead_request(**overrides)).json()["lead"]["id"]

    def test_list_and_filter(self, client, auth_headers):
        self.create_lead(client, source="ai_widget")
        self.create_lead(client, email="other@example.com")

        everything = client.get(f"{API}/leads", headers=auth_headers).json()
        assert everything["count"] == 2

        pending = client.get(f"{API}/leads?status=pending", headers=auth_headers).json()
        assert pending["count"] == 1
        assert pending["leads"][0]["source"] == "ai_widget"

    def test_list_requires_auth(self, client):
        assert client.get(f"{API}/leads").status_code == 401

    def test_get_lead(self, client, auth_headers):
        lead_id = self.create_lead(client)

        response = client.get(f"{API}/leads/{lead_id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["lead"]["email"] == "jane@example.com"

    @pytest.mark.parametrize("lead_id", [str(uuid.uuid4()), "not-a-uuid"])
    def test_get_missing_lead(self, client, auth_headers, lead_id):
        response = client.get(f"{API}/leads/{lead_id}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Lead not found"

    def test_update_lead_keeps_id(self, client, auth_headers):
        lead_id = self.create_lead(client)

        response = client.patch(
            f"{API}/leads/{lead_id}",
            json={"name": "Janet Doe", "is_qualified": True, "id": "forged"},
            headers=auth_headers,
        )

        lead = response.json()["lead"]
        assert lead["id"] == lead_id
        assert lead["name"] == "Janet Doe"
        assert lead["is_qualified"] is True
        assert lead["email"] == "jane@example.com"

    def test_update_payment_status(self, client, auth_headers):
        lead_id = self.create_lead(client)

        response = client.patch(
            f"{API}/leads/{lead_id}",
            json={"payment_status": "completed", "qualification_score": 0.9},
            headers=auth_headers,
        )

        lead = response.json()["lead"]
        assert lead["payment_status"] == "completed"
        assert lead["qualification_score"] == pytest.approx(0.9)

    @pytest.mark.parametrize(
        "changes",
        [
            {"payment_status": "bogus"},
            {"qualification_score": 7.5},
            {"qualification_score": -0.1},
        ],
    )
    def test_update_rejects_out_of_range_values(self, client, services, auth_headers, changes):
        lead_id = self.create_lead(client)

        response = client.patch(f"{API}/leads/{lead_id}", json=changes, headers=auth_headers)

        assert response.status_code == 400
        lead = fetch_all(client, services, Lead)[0]
        assert lead.payment_status is None
        assert lead.qualification_score == 0.5

    def test_update_missing_lead(self, client, auth_headers):
        response = client.patch(
            f"{API}/leads/{uuid.uuid4()}", json={"name": "x"}, headers=auth_headers
        )
        assert response.status_code == 404


# =============================================================================
# Chat
# =============================================================================


class TestChat:
    """Tests for the website chat widget."""

    def test_new_conversation(self, client, services):
        response = client.post(f"{API}/chat", json={"message": "Hello there"})

        assert response.status_code == 200
        data = response.json()
        assert data["conversationId"].startswith("conv_")
        assert data["sessionId"].startswith("sess_")
        assert data["messageCount"] == 2
        assert data["response"].startswith("Hello!")
        assert data["shouldCaptureLeadNow"] is False

        conversations = fetch_all(client, services, ChatConversation)
        assert len(conversations) == 1
        assert conversations[0].messages[0]["role"] == "user"
        assert conversations[0].messages[1]["role"] == "assistant"

    def test_conversation_history_grows(self, client):
        first = client.post(f"{API}/chat", json={"message": "Hello"}).json()

        second = client.post(
            f"{API}/chat",
            json={
                "message": "How much does it cost?",
                "conversationId": first["conversationId"],
                "sessionId": first["sessionId"],
            },
        ).json()

        assert second["conversationId"] == first["conversationId"]
        assert second["messageCount"] == 4
        assert second["sentiment"]["intent"] == "pricing"

        conversation = client.get(f"{API}/chat/{first['conversationId']}").json()["conversation"]
        assert conversation["message_count"] == 4
        assert conversation["intent"] == "pricing"

    def test_asks_for_contact_details_when_qualified(self, client):
        payload = {"message": "I want to buy this today"}
        results = []
        for _ in range(3):
            data = client.post(f"{API}/chat", json=payload).json()
            payload["conversationId"] = data["conversationId"]
            results.append(data)

        assert results[-1]["qualificationScore"] == pytest.approx(0.85)
        assert [r["shouldCaptureLeadNow"] for r in results] == [False, False, True]

    def test_no_capture_once_email_known(self, client):
        payload = {
            "message": "I want to buy this today",
            "userMetadata": {"email": "jane@example.com"},
        }
        for _ in range(3):
            data = client.post(f"{API}/chat", json=payload).json()
            payload["conversationId"] = data["conversationId"]
        assert data["shouldCaptureLeadNow"] is False

    @pytest.mark.parametrize("message", ["", "   "])
    def test_message_required(self, client, message):
        response = client.post(f"{API}/chat", json={"message": message})
        assert response.status_code == 400
        assert response.json()["message"] == "Message is required"

    def test_unknown_conversation(self, client):
        response = client.get(f"{API}/chat/conv_missing")
        assert response.status_code == 404
        assert response.json()["message"] == "Conversation not found"

    def test_metadata_marks_lead_captured(self, client):
        conversation_id = client.post(f"{API}/chat", json={"message": "Hello"}).json()[
            "conversationId"
        ]

        response = client.post(
            f"{API}/chat/{conversation_id}/metadata",
            json={"name": "Jane", "email": "jane@example.com"},
        )

        assert response.json()["message"] == "Metadata updated successfully"
        conversation = client.get(f"{API}/chat/{conversation_id}").json()["conversation"]
        assert conversation["user_metadata"]["email"] == "jane@example.com"
        assert conversation["lead_captured"] is True
        assert conversation["lead_captured_at"] is not None

    def test_metadata_for_unknown_conversation(self, client):
        response = client.post(f"{API}/chat/conv_missing/metadata", json={"name": "Jane"})
        assert response.status_code == 404

    def test_failed_save_still_replies(self, client, services, monkeypatch):
        """A database failure while saving the conversation does not fail the turn."""

        async def failing_flush(self, *args, **kwargs):
            raise OperationalError("INSERT INTO chat_conversations", {}, Exception("database is locked"))

        with monkeypatch.context() as patch:
            patch.setattr(AsyncSession, "flush", failing_flush)
            response = client.post(f"{API}/chat", json={"message": "Hello"})

        assert response.status_code == 200
        assert response.json()["messageCount"] == 2
        assert fetch_all(client, services, ChatConversation) == []


# =============================================================================
# Demo Calls
# =============================================================================


class TestDemoCall:
    """Tests for the landing page demo."""

    def test_demo_call(self, client, services, fake_vapi, fake_telegram):
        response = client.post(
            f"{API}/demo-call", json={"phoneNumber": "+1 (415) 555-1234", "name": "Sam"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["callId"] == "call_1"
        assert data["phoneNumber"] == "+14155551234"
        assert data["estimatedWaitTime"] == "3-5 seconds"
        assert response.headers["X-RateLimit-Limit"] == "3"
        assert response.headers["X-RateLimit-Remaining"] == "2"
        assert "X-RateLimit-Reset" in response.headers

        sent = fake_vapi.last_json()
        assert sent["assistantId"] == "demo-assistant"
        assert sent["customer"] == {"number": "+14155551234", "name": "Sam"}
        assert sent["metadata"]["isDemo"] is True
        assert sent["metadata"]["source"] == "landing_page_demo"

        record = fetch_all(client, services, CallRecord)[0]
        assert record.is_demo is True
        assert record.status == "queued"
        assert record.user_id == "demo"
        assert "NEW DEMO CALL REQUEST" in fake_telegram.texts[0]

    def test_number_without_plus(self, client):
        response = client.post(f"{API}/demo-call", json={"phoneNumber": "14155551234"})
        assert response.json()["phoneNumber"] == "+14155551234"

    def test_honeypot(self, client, fake_vapi):
        response = client.post(
            f"{API}/demo-call", json={"phoneNumber": "+14155551234", "honeypot": "spam"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        assert fake_vapi.requests == []

    @pytest.mark.parametrize("phone", [None, "", "12345", "+0123456789", "phone"])
    def test_invalid_phone(self, client, phone):
        response = client.post(f"{API}/demo-call", json={"phoneNumber": phone})
        assert response.status_code == 400

    def test_rate_limited_after_three(self, client, fake_vapi):
        for _ in range(3):
            assert client.post(f"{API}/demo-call", json={"phoneNumber": "+14155551234"}).status_code == 200

        response = client.post(f"{API}/demo-call", json={"phoneNumber": "+14155551234"})

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["retryAfter"] > 0
        assert "3 demo calls per hour" in response.json()["message"]
        assert len(fake_vapi.calls) == 3

    def test_international_number_rejected_upstream(self, client, fake_vapi):
        fake_vapi.fail_with(400, {"message": "Twilio does not allow international calls"})

        response = client.post(f"{API}/demo-call", json={"phoneNumber": "+447700900123"})

        assert response.status_code == 400
        assert response.json()["error"] == "International calls not supported"

    def test_upstream_rate_limit(self, client, fake_vapi):
        fake_vapi.fail_with(429, {"message": "Too many requests"})

        response = client.post(f"{API}/demo-call", json={"phoneNumber": "+14155551234"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"

    def test_upstream_failure(self, client, fake_vapi):
        fake_vapi.fail_with(502, {"message": "Bad gateway"})

        response = client.post(f"{API}/demo-call", json={"phoneNumber": "+14155551234"})

        assert response.status_code == 500
        assert response.json()["error"] == "Demo call failed"

    def test_stats(self, client, auth_headers):
        client.post(f"{API}/demo-call", json={"phoneNumber": "+14155551234"})
        client.post(f"{API}/demo-call", json={"phoneNumber": "+14155555678"})

        response = client.get(f"{API}/demo-call/stats", headers=auth_headers)

        stats = response.json()["stats"]
        assert stats["totalDemoCalls"] == 2
        assert stats["today"] == 2
        assert stats["last7Days"] == 2
        assert len(stats["recentCalls"]) == 2

    def test_stats_require_auth(self, client):
        assert client.get(f"{API}/demo-call/stats").status_code == 401


# =============================================================================
# Request Logs
# =============================================================================


class TestRequestLogs:
    """Tests for the request audit log."""

    def test_authenticated_requests_are_logged(self, client, services, auth_headers):
        client.get(f"{API}/leads", headers=auth_headers)
        drain(client, services)

        response = client.get(f"{API}/logs", headers=auth_headers)

        logs = response.json()["logs"]
        assert logs[0]["endpoint"] == f"{API}/leads"
        assert logs[0]["method"] == "GET"
        assert logs[0]["status_code"] == 200
        assert all(log["user_id"] == TEST_USER_ID for log in logs)

    def test_request_bodies_are_sanitized(self, client, services):
        client.post(f"{API}/chat", json={"message": "Hello", "userMetadata": {"password": "x"}})

        logs = fetch_all(client, services, RequestLog)
        chat_log = next(log for log in logs if log.endpoint == f"{API}/chat")
        assert chat_log.request_body["userMetadata"]["password"] == "[REDACTED]"
        assert chat_log.user_id is None

    def test_form_bodies_are_sanitized(self, client, services):
        """Form posts are parsed before redaction, never stored as raw text."""
        client.post(
            f"{API}/leads",
            data={"name": "Jane", "email": "jane@example.com", "password": "hunter2"},
        )

        logs = fetch_all(client, services, RequestLog)
        lead_log = next(log for log in logs if log.endpoint == f"{API}/leads")
        assert lead_log.request_body == {
            "name": "Jane",
            "email": "jane@example.com",
            "password": "[REDACTED]",
        }
        assert "hunter2" not in json.dumps(lead_log.request_body)

    def test_unparseable_bodies_are_replaced(self, client, services):
        client.post(
            f"{API}/chat",
            content=b'{"message": "hi", "password": "hunter2"',
            headers={"Content-Type": "application/json"},
        )

        logs = fetch_all(client, services, RequestLog)
        chat_log = next(log for log in logs if log.endpoint == f"{API}/chat")
        assert chat_log.request_body == "[UNPARSEABLE BODY]"


# =============================================================================
# Stripe Webhook
# =============================================================================


class TestStripeWebhook:
    """Tests for payment status updates from Stripe."""

    def post_event(self, client: TestClient, event: dict, signature: str | None = None):
        payload = json.dumps(event).encode()
        return client.post(
            f"{API}/webhook/stripe",
            content=payload,
            headers={
                "Content-Type": "application/json",
                "Stripe-Signature": signature or sign_stripe_payload(payload),
            },
        )

    def session_event(self, event_type: str, lead_id: str, **session):
        return {
            "id": "evt_1",
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": "cs_test_1",
                    "object": "checkout.session",
                    "metadata": {"lead_id": lead_id},
                    **session,
                }
            },
        }

    def create_widget_lead(self, client) -> str:
        response = client.post(f"{API}/leads", json=make_lead_request(source="ai_widget"))
        return response.json()["lead"]["id"]

    @pytest.mark.parametrize(
        "event_type,expected",
        [
            ("checkout.session.completed", "completed"),
            ("checkout.session.async_payment_succeeded", "completed"),
            ("checkout.session.expired", "failed"),
            ("checkout.session.async_payment_failed", "failed"),
        ],
    )
    def test_session_events_update_lead(self, client, services, event_type, expected):
        lead_id = self.create_widget_lead(client)

        response = self.post_event(
            client, self.session_event(event_type, lead_id, payment_status="paid")
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "received": True}
        assert fetch_all(client, services, Lead)[0].payment_status == expected

    def test_unpaid_completion_is_ignored(self, client, services):
        lead_id = self.create_widget_lead(client)

        self.post_event(
            client,
            self.session_event("checkout.session.completed", lead_id, payment_status="unpaid"),
        )

        assert fetch_all(client, services, Lead)[0].payment_status == "pending"

    def test_unknown_lead_is_acknowledged(self, client):
        response = self.post_event(
            client, self.session_event("checkout.session.completed", str(uuid.uuid4()))
        )
        assert response.status_code == 200

    def test_other_events_are_ignored(self, client):
        response = self.post_event(
            client, {"id": "evt_2", "object": "event", "type": "invoice.paid", "data": {"object": {}}}
        )
        assert response.status_code == 200

    def test_bad_signature(self, client, services):
        lead_id = self.create_widget_lead(client)

        response = self.post_event(
            client,
            self.session_event("checkout.session.completed", lead_id),
            signature="t=1,v1=bad",
        )

        assert response.status_code == 400
        assert "Invalid webhook signature" in response.json()["message"]
        assert fetch_all(client, services, Lead)[0].payment_status == "pending"
