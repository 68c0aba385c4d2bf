"""Lead capture and lead management routes."""

import logging
import re
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from voice_gateway.auth.jwt import AuthenticatedUser, get_current_user
from voice_gateway.db.database import get_db
from voice_gateway.db.models import PaymentStatus
from voice_gateway.dependencies import get_lead_effects
from voice_gateway.errors import InvalidRequestError, NotFoundError
from voice_gateway.leads.pipeline import LeadEffects
from voice_gateway.leads.store import LeadStore

logger = logging.getLogger("voice-gateway-leads")

router = APIRouter(tags=["Leads"])

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PUBLIC_LEAD_USER = "public"
DEFAULT_LEAD_SCORE = 0.5


# =============================================================================
# Request/Response Models
# =============================================================================


class LeadCaptureRequest(BaseModel):
    """A lead submitted by the website widget or a form."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    source: str = "unknown"
    metadata: dict[str, Any] | None = None


class LeadSummary(BaseModel):
    id: str
    name: str
    email: str


class LeadCaptureResponse(BaseModel):
    success: bool = True
    lead: LeadSummary
    paymentLink: str | None = None
    message: str


class LeadUpdate(BaseModel):
    """Fields a lead update may change."""

    user_id: str | None = None
    call_id: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    intent: str | None = None
    source: str | None = None
    is_qualified: bool | None = None
    qualification_score: float | None = Field(default=None, ge=0, le=1)
    payment_link: str | None = None
    payment_status: PaymentStatus | None = None
    metadata: dict[str, Any] | None = None


class LeadResponse(BaseModel):
    success: bool = True
    lead: dict[str, Any]


class LeadListResponse(BaseModel):
    success: bool = True
    leads: list[dict[str, Any]]
    count: int


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/leads", response_model=LeadListResponse)
async def list_leads(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    status: str | None = Query(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All leads, newest first. ``status`` filters on payment status."""
    leads = await LeadStore(db).list_leads(limit=limit, offset=offset, status=status)
    return LeadListResponse(leads=[lead.to_dict() for lead in leads], count=len(leads))


@router.post(
    "/leads",
    response_model=LeadCaptureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def capture_lead(
    request: LeadCaptureRequest,
    db: AsyncSession = Depends(get_db),
    lead_effects: LeadEffects = Depends(get_lead_effects),
):
    """Capture a lead from the public website.

    Operators are notified in the background. Widget and pricing-page leads
    also get a payment link, returned in the response when it could be made.
    """
    if not request.name or not request.email:
        raise InvalidRequestError("Name and email are required")

    if not EMAIL_REGEX.match(request.email):
        raise InvalidRequestError("Invalid email format")

    store = LeadStore(db)
    lead = await store.create(
        user_id=PUBLIC_LEAD_USER,
        name=request.name,
        email=request.email,
        phone=request.phone,
        source=request.source,
        qualification_score=DEFAULT_LEAD_SCORE,
        metadata=request.metadata or {},
    )
    await db.commit()
    logger.info(f"[Leads] New lead captured: {lead.id} from {lead.source}")

    lead_effects.after_form_lead(lead)
    payment_link = await lead_effects.widget_payment_link(store, lead)
    await db.commit()

    return LeadCaptureResponse(
        lead=LeadSummary(id=str(lead.id), name=lead.name, email=lead.email),
        paymentLink=payment_link,
        message="Lead captured successfully! Our team will reach out soon.",
    )


@router.get("/leads/{lead_id}", response_model=LeadResponse)
async def get_lead(
    lead_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    lead = await LeadStore(db).get(lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")
    return LeadResponse(lead=lead.to_dict())


@router.patch("/leads/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: str,
    updates: LeadUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a lead. ``id`` and ``created_at`` cannot be changed."""
    changes = updates.model_dump(mode="json", exclude_unset=True)
    lead = await LeadStore(db).update(lead_id, changes)
    if lead is None:
        raise NotFoundError("Lead not found")
    await db.commit()

    logger.info(f"[Leads] Lead {lead_id} updated by {user.id}")
    return LeadResponse(lead=lead.to_dict())
