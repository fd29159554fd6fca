"""
Freemium allowance policy.

One function decides whether a user may start another roast. Routers
gather the inputs (email, plan, completed-roast count) and act on the
answer; they never re-implement any part of the rule.
"""

from dataclasses import dataclass
from typing import Optional

from app.config import Settings

PAID_PLANS = ("pro", "lifetime")


@dataclass(frozen=True)
class PlanState:
    plan: str = "free"
    completed_roasts: int = 0


@dataclass(frozen=True)
class Allowance:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def has_unlimited_access(email: Optional[str], settings: Settings) -> bool:
    """Allow-listed emails (ADMIN_EMAILS) never hit the free limit."""
    if not email:
        return False
    return email.strip().lower() in settings.admin_emails_list


def allowance(email: Optional[str], state: PlanState, settings: Settings) -> Allowance:
    """Decide whether a new roast is allowed."""
    if has_unlimited_access(email, settings):
        return Allowance(True, "unlimited")
    if state.plan in PAID_PLANS:
        return Allowance(True, state.plan)
    if state.completed_roasts < settings.FREE_ROAST_LIMIT:
        return Allowance(True, "free")
    return Allowance(False, "Free plan limit reached")
