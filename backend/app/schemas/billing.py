"""
Pydantic schemas for billing endpoints.
"""

from pydantic import BaseModel


class CheckoutRequest(BaseModel):
    """Which plan the user wants to buy: pro, pro_year or lifetime."""
    plan: str = "pro"


class RedirectUrlResponse(BaseModel):
    """Hosted Stripe page the browser should be sent to."""
    url: str


class WebhookAck(BaseModel):
    received: bool = True
