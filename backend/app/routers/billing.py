"""
Billing API endpoints.

1. POST /billing/checkout — Start Stripe Checkout for a plan
2. POST /billing/portal — Open the Stripe Billing Portal
3. POST /webhooks/stripe — Stripe tells us a checkout finished

Design notes:
- Stripe owns subscription state. We only record the resulting plan and
  customer id on the user's profile when checkout completes.
- The webhook reads the RAW request body; signature verification fails
  if the JSON is parsed and re-serialized first.
"""

import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthUser, get_current_user
from app.config import Settings, get_settings
from app.database import get_db
from app.models import User
from app.schemas.billing import CheckoutRequest, RedirectUrlResponse, WebhookAck
from app.services.billing import (
    BillingError,
    BillingService,
    InvalidPlanError,
    WebhookSignatureError,
    checkout_completion,
)
from app.services.profiles import get_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/billing", tags=["billing"])
webhook_router = APIRouter(prefix="/api/v1/webhooks", tags=["billing"])


def get_billing_service(settings: Settings = Depends(get_settings)) -> BillingService:
    return BillingService(settings)


@router.post("/checkout", response_model=RedirectUrlResponse)
async def create_checkout(
    request: CheckoutRequest,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """Create a Checkout session for pro, pro_year or lifetime."""
    if not user.email:
        raise HTTPException(status_code=401, detail="Not authenticated")

    profile = await get_profile(db, user)
    customer_id = profile.stripe_customer_id if profile else None

    try:
        url = await asyncio.to_thread(
            billing.create_checkout_session,
            str(user.id), user.email, request.plan, customer_id,
        )
    except InvalidPlanError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Checkout failed for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to create checkout session. Please try again.")

    return RedirectUrlResponse(url=url)


@router.post("/portal", response_model=RedirectUrlResponse)
async def create_portal(
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """Open the Billing Portal for a user who has paid before."""
    profile = await get_profile(db, user)
    if not profile or not profile.stripe_customer_id:
        raise HTTPException(
            status_code=400,
            detail="No billing account found. Upgrade first to manage billing.",
        )

    try:
        url = await asyncio.to_thread(billing.create_portal_session, profile.stripe_customer_id)
    except Exception:
        logger.exception("Portal failed for user %s", user.id)
        raise HTTPException(status_code=500, detail="Failed to open the billing portal. Please try again.")

    return RedirectUrlResponse(url=url)


@webhook_router.post("/stripe", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    billing: BillingService = Depends(get_billing_service),
):
    """Apply the plan bought in a completed checkout."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = billing.construct_event(payload, signature)
    except WebhookSignatureError as e:
        logger.warning("Stripe webhook signature verification failed: %s", e.__cause__ or e)
        raise HTTPException(status_code=400, detail="Invalid signature")
    except BillingError:
        logger.error("Stripe webhook: missing signature or STRIPE_WEBHOOK_SECRET")
        raise HTTPException(status_code=500, detail="Webhook misconfigured")

    completion = checkout_completion(event)
    if completion is None:
        return WebhookAck()

    if not completion["user_id"]:
        logger.error("Stripe webhook: no user_id in session %s", completion["session_id"])
        raise HTTPException(status_code=400, detail="No user_id")

    try:
        user_id = UUID(str(completion["user_id"]))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid user_id")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        logger.warning("Stripe webhook: user %s has no profile, plan not applied", user_id)
        return WebhookAck()

    user.plan = completion["plan"]
    if completion["customer_id"]:
        user.stripe_customer_id = completion["customer_id"]
    await db.commit()

    logger.info("Stripe webhook: updated user %s to plan %s", user_id, user.plan)
    return WebhookAck()
