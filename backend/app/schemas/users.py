"""
Pydantic schemas for the current-user endpoints.
"""

from typing import Optional

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """What the nav bar needs to greet the user."""
    email: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    plan: str = "free"


class MeResponse(BaseModel):
    user: Optional[CurrentUser] = None


class SyncProfileResponse(BaseModel):
    ok: bool = True
