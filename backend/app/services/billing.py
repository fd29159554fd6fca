"""
Stripe billing glue.

Three operations, all thin wrappers over Stripe's hosted pages:
1. create_checkout_session — send the user to Checkout for a plan
2. create_portal_session — send a paying user to the Billing Portal
3. construct_event — verify and decode a webhook delivery

The client is built from injected Settings for each BillingService, so
there is no process-wide Stripe key. Calls are blocking; routers run
them with asyncio.to_thread().
"""

import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from app.config import Settings

logger = logging.getLogger(__name__)

# Pro monthly is a subscription; pro_year and lifetime are one-time payments.
SUBSCRIPTION_PLANS = ("pro",)


class BillingError(Exception):
    """Stripe is misconfigured or returned something unusable."""


class InvalidPlanError(BillingError):
    pass


class WebhookSignatureError(BillingError):
    pass


@dataclass(frozen=True)
class CheckoutPlan:
    key: str            # what the client asked for
    price_id: str
    mode: str           # subscription | payment
    granted_plan: str   # what the user becomes: pro | lifetime


def resolve_plan(plan_key: str, settings: Settings) -> CheckoutPlan:
    """Map a requested plan to its Stripe price and the plan it grants."""
    price_id = settings.price_ids.get(plan_key or "")
    if not price_id:
        raise InvalidPlanError("Invalid plan. Use pro, pro_year, or lifetime.")
    return CheckoutPlan(
        key=plan_key,
        price_id=price_id,
        mode="subscription" if plan_key in SUBSCRIPTION_PLANS else "payment",
        granted_plan="lifetime" if plan_key == "lifetime" else "pro",
    )


class BillingService:
    """Creates Stripe sessions and verifies webhooks.

    Usage:
        billing = BillingService(settings)
        url = billing.create_checkout_session(user_id, email, "pro", customer_id=None)
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[stripe.StripeClient] = None

    @property
    def client(self) -> stripe.StripeClient:
        if self._client is None:
            if not self.settings.STRIPE_SECRET_KEY:
                raise BillingError("STRIPE_SECRET_KEY is not set")
            self._client = stripe.StripeClient(self.settings.STRIPE_SECRET_KEY)
        return self._client

    def create_checkout_session(
        self,
        user_id: str,
        email: str,
        plan_key: str,
        customer_id: Optional[str] = None,
    ) -> str:
        """Create a Checkout session and return its hosted URL."""
        plan = resolve_plan(plan_key, self.settings)
        app_url = self.settings.APP_URL

        params = {
            "mode": plan.mode,
            "payment_method_types": ["card"],
            "line_items": [{"price": plan.price_id, "quantity": 1}],
            "success_url": f"{app_url}/dashboard?upgraded=1",
            "cancel_url": f"{app_url}/pricing",
            "client_reference_id": user_id,
            "metadata": {"user_id": user_id, "plan": plan.granted_plan},
        }
        if customer_id:
            params["customer"] = customer_id
        else:
            params["customer_email"] = email

        session = self.client.checkout.sessions.create(params=params)
        if not session.url:
            raise BillingError("Failed to create checkout session")

        logger.info("Checkout session %s created for user %s (%s)", session.id, user_id, plan.key)
        return session.url

    def create_portal_session(self, customer_id: str) -> str:
        """Create a Billing Portal session and return its URL."""
        portal = self.client.billing_portal.sessions.create(params={
            "customer": customer_id,
            "return_url": f"{self.settings.APP_URL}/dashboard",
        })
        if not portal.url:
            raise BillingError("Failed to create portal session")
        return portal.url

    def construct_event(self, payload: bytes, signature: Optional[str]):
        """Verify a webhook signature and return the decoded event."""
        secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not signature or not secret:
            raise BillingError("Webhook misconfigured")
        try:
            return stripe.Webhook.construct_event(payload, signature, secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookSignatureError("Invalid signature") from e


def _as_dict(value) -> dict:
    """Plain dict view of a webhook payload node.

    Newer stripe releases hand back StripeObjects that are not dicts;
    those only expose their contents through to_dict().
    """
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    return value.to_dict()


def checkout_completion(event) -> Optional[dict]:
    """Pull the plan change out of a checkout.session.completed event.

    Returns None for any other event type. The dict has user_id (may be
    None), plan and customer_id.
    """
    event = _as_dict(event)
    if event.get("type") != "checkout.session.completed":
        return None

    session = _as_dict(_as_dict(event.get("data")).get("object"))
    metadata = _as_dict(session.get("metadata"))
    user_id = session.get("client_reference_id") or metadata.get("user_id")
    customer = session.get("customer")
    if customer is not None and not isinstance(customer, str):
        customer = _as_dict(customer).get("id")
    plan = metadata.get("plan")
    if plan not in ("pro", "lifetime"):
        plan = "pro"

    return {
        "session_id": session.get("id"),
        "user_id": user_id,
        "plan": plan,
        "customer_id": customer,
    }
