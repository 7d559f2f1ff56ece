"""Canonical subscription lifecycle events."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from saas_lifecycle.marketplace.models import Subscription

EVENT_SCHEMA_VERSION = "2021-10-01"


class SubscriptionEventType(str, Enum):
    """Event type tags."""

    PURCHASED = "saas.subscription.purchased"
    CANCELLED = "saas.subscription.cancelled"
    PLAN_CHANGED = "saas.subscription.plan_changed"
    SEAT_QUANTITY_CHANGED = "saas.subscription.seat_quantity_changed"
    SUSPENDED = "saas.subscription.suspended"
    REINSTATED = "saas.subscription.reinstated"


class SubscriptionEvent(BaseModel):
    """Base class for all subscription lifecycle events."""

    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique event identifier",
    )
    event_type: SubscriptionEventType
    event_version: str = Field(default=EVENT_SCHEMA_VERSION, description="Event schema version")
    event_time: datetime | None = Field(
        None,
        description="UTC publish time (set by the publisher)",
    )
    subscription: Subscription = Field(..., description="Subject subscription")

    @property
    def subscription_id(self) -> str:
        """ID of the subject subscription."""
        return self.subscription.subscription_id


class SubscriptionPurchased(SubscriptionEvent):
    """A subscription purchase was confirmed on the landing page."""

    event_type: Literal[SubscriptionEventType.PURCHASED] = SubscriptionEventType.PURCHASED


class SubscriptionOperationEvent(SubscriptionEvent):
    """An event raised by a marketplace webhook operation."""

    operation_id: str = Field(..., description="Originating marketplace operation ID")


class SubscriptionCancelled(SubscriptionOperationEvent):
    event_type: Literal[SubscriptionEventType.CANCELLED] = SubscriptionEventType.CANCELLED


class SubscriptionPlanChanged(SubscriptionOperationEvent):
    event_type: Literal[SubscriptionEventType.PLAN_CHANGED] = SubscriptionEventType.PLAN_CHANGED
    new_plan_id: str | None = Field(None, description="Plan the subscription moved to")


class SubscriptionSeatQuantityChanged(SubscriptionOperationEvent):
    event_type: Literal[SubscriptionEventType.SEAT_QUANTITY_CHANGED] = (
        SubscriptionEventType.SEAT_QUANTITY_CHANGED
    )
    new_seat_quantity: int | None = Field(None, description="New seat quantity")


class SubscriptionSuspended(SubscriptionOperationEvent):
    event_type: Literal[SubscriptionEventType.SUSPENDED] = SubscriptionEventType.SUSPENDED


class SubscriptionReinstated(SubscriptionOperationEvent):
    event_type: Literal[SubscriptionEventType.REINSTATED] = SubscriptionEventType.REINSTATED


class EventEnvelope(BaseModel):
    """Transport envelope for a published subscription event."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Event ID")
    subject: str = Field(..., description="Subject path, e.g. subscriptions/{id}")
    event_type: str = Field(..., alias="eventType")
    event_time: datetime = Field(..., alias="eventTime")
    data_version: str = Field(..., alias="dataVersion")
    data: dict[str, Any] = Field(default_factory=dict)
