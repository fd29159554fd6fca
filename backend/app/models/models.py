"""
SQLAlchemy models.

Two tables back the whole product:
- users: one profile row per authenticated account (id = auth subject)
- roasts: one row per uploaded resume, holding the AI feedback as JSON

Generic column types (Uuid, JSON) keep the schema portable between
PostgreSQL in production and SQLite in tests.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Profile for an account managed by the external auth provider."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), default="")
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(
        String(80), unique=True, nullable=True,
    )
    # free | pro | lifetime
    plan: Mapped[str] = mapped_column(String(20), default="free")
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow,
    )

    roasts: Mapped[list["Roast"]] = relationship(
        back_populates="user", cascade="all, delete-orphan",
    )


class Roast(Base):
    """One resume submission and its feedback."""

    __tablename__ = "roasts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True,
    )
    resume_text: Mapped[str] = mapped_column(Text, default="")
    result_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # processing | completed | failed
    status: Mapped[str] = mapped_column(String(20), default="processing")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, index=True,
    )

    user: Mapped[User] = relationship(back_populates="roasts")
