"""Request/response audit logging.

Logs every API request to the console and persists a sanitized RequestLog
row in the background. Written as pure ASGI middleware so streaming and
background tasks are unaffected.
"""

import json
import logging
import time
from typing import Any
from urllib.parse import parse_qs

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from voice_gateway.db.database import Database
from voice_gateway.db.models import RequestLog
from voice_gateway.logs.store import RequestLogStore

logger = logging.getLogger("voice-gateway-api")

SENSITIVE_KEYS = (
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "credit_card",
    "creditcard",
    "ssn",
    "privatekey",
    "private_key",
)
REDACTED = "[REDACTED]"
UNPARSEABLE_BODY = "[UNPARSEABLE BODY]"
# Bodies longer than this are cut off and never stored
MAX_CAPTURED_BYTES = 64 * 1024
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(sensitive in lowered for sensitive in SENSITIVE_KEYS)


def sanitize(data: Any) -> Any:
    """Redact sensitive values, recursing through dicts and lists."""
    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_key(str(key)) else sanitize(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize(item) for item in data]
    return data


def parse_body(raw: bytes, content_type: str | None = None) -> Any:
    """Decode a captured JSON or form body so it can be sanitized.

    Truncated or unparseable bodies are replaced by a placeholder; raw text
    is never stored.
    """
    if not raw:
        return None
    if len(raw) > MAX_CAPTURED_BYTES:
        return UNPARSEABLE_BODY

    try:
        if content_type and content_type.lower().startswith(FORM_CONTENT_TYPE):
            fields = parse_qs(raw.decode("utf-8"), keep_blank_values=True)
            return {key: values[0] if len(values) == 1 else values for key, values in fields.items()}
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return UNPARSEABLE_BODY


def _header(scope: Scope, name: bytes) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def scope_client_ip(scope: Scope) -> str:
    forwarded = _header(scope, b"x-forwarded-for")
    if forwarded and forwarded.split(",")[0].strip():
        return forwarded.split(",")[0].strip()
    real_ip = _header(scope, b"x-real-ip")
    if real_ip:
        return real_ip
    client = scope.get("client")
    if client and client[0]:
        return client[0]
    return "unknown"


def error_message_from(status_code: int, body: Any) -> str | None:
    if status_code < 400:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        return str(message) if message else None
    return None


class RequestLoggingMiddleware:
    """Times each HTTP request and records a sanitized audit row."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        request_chunks: list[bytes] = []
        response_chunks: list[bytes] = []
        status_code = 500

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                if sum(len(c) for c in request_chunks) <= MAX_CAPTURED_BYTES:
                    request_chunks.append(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body":
                if sum(len(c) for c in response_chunks) <= MAX_CAPTURED_BYTES:
                    response_chunks.append(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            method = scope["method"]
            path = scope["path"]
            logger.info(f"[API] {method} {path} - {status_code} ({duration_ms}ms)")
            self._persist(
                scope,
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=duration_ms,
                request_body=b"".join(request_chunks),
                response_body=b"".join(response_chunks),
            )

    def _persist(
        self,
        scope: Scope,
        *,
        method: str,
        path: str,
        status_code: int,
        duration_ms: int,
        request_body: bytes,
        response_body: bytes,
    ) -> None:
        app = scope.get("app")
        services = getattr(getattr(app, "state", None), "services", None)
        if services is None:
            return

        request_data = sanitize(parse_body(request_body, _header(scope, b"content-type")))
        response_data = sanitize(parse_body(response_body))
        user = scope.get("state", {}).get("user")

        entry = RequestLog(
            user_id=getattr(user, "id", None),
            endpoint=path,
            method=method,
            status_code=status_code,
            request_body=request_data,
            response_body=response_data,
            error_message=error_message_from(status_code, response_data),
            ip_address=scope_client_ip(scope),
            duration_ms=duration_ms,
        )
        services.dispatcher.spawn("request-log", save_request_log(services.database, entry))


async def save_request_log(database: Database, entry: RequestLog) -> None:
    async with database.session() as session:
        await RequestLogStore(session).add(entry)
