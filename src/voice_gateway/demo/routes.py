"""Landing page "call me now" demo.

Public and unauthenticated; each client IP may request a few demo calls per
hour.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.auth.jwt import AuthenticatedUser, get_current_user
from voice_gateway.calls.store import CallStore
from voice_gateway.db.database import get_db
from voice_gateway.db.models import CallRecord, CallStatus
from voice_gateway.dependencies import Services, get_services
from voice_gateway.errors import (
    ConfigurationError,
    InternalError,
    InvalidRequestError,
    RateLimitedError,
    UpstreamProviderError,
)
from voice_gateway.middleware.rate_limit import (
    DEMO_CALL_LIMIT_MESSAGE,
    RateLimit,
    client_ip,
)

logger = logging.getLogger("voice-gateway-demo")

router = APIRouter(tags=["Demo"])

PHONE_STRIP = re.compile(r"[\s\-\(\)]")
PHONE_REGEX = re.compile(r"^\+?[1-9]\d{6,14}$")

DEMO_USER = "demo"
DEMO_SOURCE = "landing_page_demo"
DEMO_CALLER_NAME = "Demo User"
CONTACT_LINE = "contact us directly at +1 (276) 582-5329"


# =============================================================================
# Request/Response Models
# =============================================================================


class DemoCallRequest(BaseModel):
    phoneNumber: str | None = None
    name: str | None = None
    source: str | None = None
    # Hidden form field; bots fill it in
    honeypot: str | None = None


class DemoCallResponse(BaseModel):
    success: bool = True
    message: str
    callId: str
    phoneNumber: str
    estimatedWaitTime: str


class DemoStats(BaseModel):
    totalDemoCalls: int
    today: int
    last7Days: int
    recentCalls: list[dict[str, Any]]


class DemoStatsResponse(BaseModel):
    success: bool = True
    stats: DemoStats


def clean_phone_number(phone_number: str) -> str | None:
    """Strip formatting and return the number in ``+<digits>`` form, or None if invalid."""
    cleaned = PHONE_STRIP.sub("", phone_number)
    if not PHONE_REGEX.match(cleaned):
        return None
    return cleaned if cleaned.startswith("+") else f"+{cleaned}"


def format_demo_message(
    phone: str, name: str | None, ip: str, source: str, call_id: str
) -> str:
    return "\n".join(
        [
            "🎯 *NEW DEMO CALL REQUEST*",
            "",
            f"📞 *Phone:* {phone}",
            f"👤 *Name:* {name or 'Not provided'}",
            f"🌍 *IP:* {ip}",
            f"📍 *Source:* {source}",
            "",
            f"*Call ID:* {call_id}",
            f"*Time:* {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}",
            "",
            "---",
            "🔥 Hot lead! They're trying the demo now!",
        ]
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/demo-call",
    response_model=DemoCallResponse,
    dependencies=[Depends(RateLimit("demo_rate_limiter", DEMO_CALL_LIMIT_MESSAGE))],
)
async def request_demo_call(
    request: DemoCallRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    """Call the visitor with the demo assistant.

    The call record and the operator notification are best-effort; only the
    provider call itself can fail the request.
    """
    if request.honeypot:
        logger.info("[Demo Call] Honeypot triggered - likely spam bot")
        raise InvalidRequestError("Invalid request", error="Invalid request")

    if not request.phoneNumber:
        raise InvalidRequestError("Phone number is required")

    phone = clean_phone_number(request.phoneNumber)
    if phone is None:
        raise InvalidRequestError(
            "Invalid phone number format. Please include country code (e.g., +44 for UK)"
        )

    ip = client_ip(http_request)
    source = request.source or DEMO_SOURCE
    caller_name = request.name or DEMO_CALLER_NAME
    logger.info(f"[Demo Call] Request from IP {ip} for phone {phone}")

    call_request: dict[str, Any] = {
        "assistantId": services.settings.demo_assistant_id,
        "customer": {"number": phone, "name": caller_name},
        "metadata": {
            "source": source,
            "isDemo": True,
            "clientIp": ip,
            "requestedAt": datetime.now(timezone.utc).isoformat(),
        },
    }
    if services.settings.default_phone_number_id:
        call_request["phoneNumberId"] = services.settings.default_phone_number_id

    try:
        call = await services.voice.initiate_call(call_request)
    except UpstreamProviderError as e:
        logger.error(f"[Demo Call] Failed to initiate call: {e.message}")
        raise demo_call_error(e) from e
    except ConfigurationError as e:
        logger.error(f"[Demo Call] Voice provider not configured: {e!s}")
        raise InternalError(
            f"We encountered an error initiating your demo call. Please try again or {CONTACT_LINE}.",
            error="Demo call failed",
        ) from e

    call_id = call["id"]

    try:
        await CallStore(db).save(
            CallRecord(
                id=call_id,
                user_id=DEMO_USER,
                caller_phone=phone,
                caller_name=caller_name,
                status=CallStatus.QUEUED.value,
                source=source,
                is_demo=True,
                client_ip=ip,
            )
        )
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"[Demo Call] Database error (non-fatal): {e!s}")
        await db.rollback()

    services.dispatcher.spawn(
        f"demo-call-notify:{call_id}",
        services.notifier.send_message(
            format_demo_message(phone, request.name, ip, source, call_id)
        ),
    )

    logger.info(f"[Demo Call] Successfully initiated call {call_id} to {phone}")
    return DemoCallResponse(
        message="Demo call initiated successfully! You should receive a call in 3-5 seconds.",
        callId=call_id,
        phoneNumber=phone,
        estimatedWaitTime="3-5 seconds",
    )


def demo_call_error(error: UpstreamProviderError) -> Exception:
    """Map a provider failure onto the error shown to the visitor."""
    if error.upstream_status == 400:
        if "international calls" in error.message:
            return InvalidRequestError(
                "Sorry, our demo currently only supports US/Canada phone numbers (+1). "
                f"Please {CONTACT_LINE} for international inquiries.",
                error="International calls not supported",
            )
        return InvalidRequestError(
            "The phone number you provided is invalid. Please check and try again.",
            error="Invalid phone number",
        )

    if error.upstream_status == 429:
        return RateLimitedError(
            "Too many demo calls. Please try again in a few minutes.",
            retry_after=60,
            error="Rate limit exceeded",
        )

    return InternalError(
        f"We encountered an error initiating your demo call. Please try again or {CONTACT_LINE}.",
        error="Demo call failed",
    )


@router.get("/demo-call/stats", response_model=DemoStatsResponse)
async def demo_call_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Counts over the most recent 100 demo calls."""
    calls = await CallStore(db).recent_demo_calls(limit=100)

    now = datetime.now(timezone.utc)
    week_ago = now - timedelta(days=7)
    created = [_as_utc(call.created_at) for call in calls]

    return DemoStatsResponse(
        stats=DemoStats(
            totalDemoCalls=len(calls),
            today=sum(1 for ts in created if ts.date() == now.date()),
            last7Days=sum(1 for ts in created if ts > week_ago),
            recentCalls=[call.to_dict() for call in calls[:10]],
        )
    )
