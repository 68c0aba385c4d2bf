"""Tests for rate limiting, request log sanitizing and the side-effect dispatcher."""

import asyncio

import pytest

from voice_gateway.middleware.rate_limit import FixedWindowRateLimiter
from voice_gateway.middleware.request_logging import (
    MAX_CAPTURED_BYTES,
    REDACTED,
    UNPARSEABLE_BODY,
    error_message_from,
    parse_body,
    sanitize,
    scope_client_ip,
)
from voice_gateway.side_effects import SideEffectDispatcher


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Rate Limiter
# =============================================================================


class TestFixedWindowRateLimiter:
    """Tests for the per-key fixed window counter."""

    async def test_window_admits_then_rejects_then_resets(self):
        """3 admitted, 4th rejected with retry_after 1, admitted after the window."""
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(window_seconds=1, max_requests=3, clock=clock)

        results = [await limiter.hit("ip") for _ in range(3)]
        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

        rejected = await limiter.hit("ip")
        assert rejected.allowed is False
        assert rejected.count == 4
        assert rejected.retry_after == 1

        clock.advance(1)
        fifth = await limiter.hit("ip")
        assert fifth.allowed is True
        assert fifth.count == 1

    async def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(window_seconds=60, max_requests=1, clock=FakeClock())

        assert (await limiter.hit("a")).allowed is True
        assert (await limiter.hit("b")).allowed is True
        assert (await limiter.hit("a")).allowed is False

    async def test_retry_after_rounds_up(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(window_seconds=3600, max_requests=1, clock=clock)

        await limiter.hit("ip")
        clock.advance(0.5)
        rejected = await limiter.hit("ip")
        assert rejected.retry_after == 3600

    async def test_sweep_removes_expired_windows(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(window_seconds=10, max_requests=3, clock=clock)
        await limiter.hit("old")
        clock.advance(5)
        await limiter.hit("new")

        clock.advance(6)
        assert await limiter.sweep() == 1
        assert await limiter.count_keys() == 1

    async def test_concurrent_hits_are_counted_exactly(self):
        """Simultaneous requests never admit more than the limit."""
        limiter = FixedWindowRateLimiter(window_seconds=60, max_requests=5, clock=FakeClock())

        results = await asyncio.gather(*(limiter.hit("ip") for _ in range(20)))
        assert sum(r.allowed for r in results) == 5
        assert sorted(r.count for r in results) == list(range(1, 21))

    async def test_sweep_task_lifecycle(self):
        limiter = FixedWindowRateLimiter(window_seconds=1, max_requests=1)
        await limiter.start_sweep_task(interval_seconds=60)
        assert limiter._sweep_task is not None
        await limiter.stop_sweep_task()
        assert limiter._sweep_task is None


# =============================================================================
# Request Log Sanitizing
# =============================================================================


class TestSanitize:
    """Tests for redacting sensitive request and response fields."""

    def test_redacts_top_level_and_nested(self):
        data = {"password": "hunter2", "nested": {"apiKey": "k-123", "name": "ok"}}
        assert sanitize(data) == {
            "password": REDACTED,
            "nested": {"apiKey": REDACTED, "name": "ok"},
        }

    def test_redacts_inside_lists(self):
        data = {"items": [{"access_token": "t"}, {"value": 1}]}
        assert sanitize(data) == {"items": [{"access_token": REDACTED}, {"value": 1}]}

    def test_key_matching_is_substring_and_case_insensitive(self):
        data = {"Authorization": "Bearer x", "X-Client-Secret": "s", "creditCardNumber": "4242"}
        assert set(sanitize(data).values()) == {REDACTED}

    def test_leaves_non_containers_alone(self):
        assert sanitize("password") == "password"
        assert sanitize(None) is None

    def test_does_not_mutate_input(self):
        data = {"password": "hunter2"}
        sanitize(data)
        assert data == {"password": "hunter2"}


class TestRequestLogHelpers:
    def test_client_ip_prefers_forwarded_for(self):
        scope = {
            "headers": [(b"x-forwarded-for", b"203.0.113.5, 10.0.0.1"), (b"x-real-ip", b"10.0.0.2")],
            "client": ("127.0.0.1", 5000),
        }
        assert scope_client_ip(scope) == "203.0.113.5"

    def test_client_ip_falls_back_to_socket(self):
        assert scope_client_ip({"headers": [], "client": ("127.0.0.1", 5000)}) == "127.0.0.1"
        assert scope_client_ip({"headers": []}) == "unknown"

    def test_error_message_only_for_failures(self):
        assert error_message_from(200, {"message": "fine"}) is None
        assert error_message_from(404, {"message": "Lead not found"}) == "Lead not found"
        assert error_message_from(500, "plain text") is None

    def test_parse_json_body(self):
        assert parse_body(b'{"password": "hunter2"}') == {"password": "hunter2"}
        assert parse_body(b"") is None

    def test_parse_form_body(self):
        raw = b"name=Jane&password=hunter2&tag=a&tag=b"
        data = parse_body(raw, "application/x-www-form-urlencoded; charset=utf-8")
        assert data == {"name": "Jane", "password": "hunter2", "tag": ["a", "b"]}
        assert sanitize(data)["password"] == REDACTED

    def test_unparseable_body_is_replaced(self):
        assert parse_body(b"password=hunter2") == UNPARSEABLE_BODY
        assert parse_body(b"\xff\xfe", "application/x-www-form-urlencoded") == UNPARSEABLE_BODY

    def test_truncated_body_is_replaced(self):
        raw = b'{"password": "' + b"x" * MAX_CAPTURED_BYTES + b'"}'
        assert parse_body(raw) == UNPARSEABLE_BODY


# =============================================================================
# Side-Effect Dispatcher
# =============================================================================


class TestSideEffectDispatcher:
    """Tests for fire-and-forget background work."""

    async def test_runs_and_forgets_tasks(self):
        dispatcher = SideEffectDispatcher()
        done = []

        async def effect():
            done.append(True)

        dispatcher.spawn("effect", effect())
        await dispatcher.drain()

        assert done == [True]
        assert dispatcher.pending == 0

    async def test_failures_are_counted_not_raised(self, caplog):
        dispatcher = SideEffectDispatcher()

        async def broken():
            raise RuntimeError("telegram down")

        dispatcher.spawn("notify", broken())
        await dispatcher.drain()

        assert dispatcher.failures == 1
        assert "telegram down" in caplog.text

    async def test_drain_cancels_stragglers(self):
        dispatcher = SideEffectDispatcher()
        task = dispatcher.spawn("slow", asyncio.sleep(30))

        await dispatcher.drain(timeout=0.01)

        assert task.cancelled()
        assert dispatcher.pending == 0

    async def test_one_failure_does_not_affect_others(self):
        dispatcher = SideEffectDispatcher()
        results = []

        async def broken():
            raise ValueError("boom")

        async def fine():
            results.append("ok")

        dispatcher.spawn("broken", broken())
        dispatcher.spawn("fine", fine())
        await dispatcher.drain()

        assert results == ["ok"]
        assert dispatcher.failures == 1


@pytest.mark.parametrize(
    "key",
    ["password", "token", "apikey", "api_key", "secret", "authorization", "ssn", "private_key"],
)
def test_every_sensitive_key_is_redacted(key):
    assert sanitize({key: "value"}) == {key: REDACTED}
