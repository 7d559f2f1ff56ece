"""SQLAlchemy ORM models for database persistence."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, TIMESTAMP, String, func
from sqlalchemy.orm import Mapped, mapped_column

from saas_lifecycle.db.base import Base


class CachedSubscriptionModel(Base):
    """ORM model for cached test-mode subscriptions."""

    __tablename__ = "cached_subscriptions"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
