"""Data models for marketplace SaaS subscriptions and operations."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    """Subscription states in the marketplace lifecycle."""

    PENDING_ACTIVATION = "PendingActivation"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    CANCELLED = "Cancelled"


class OperationType(str, Enum):
    """Canonical subscription operation kinds."""

    CANCEL = "Cancel"
    CHANGE_PLAN = "ChangePlan"
    CHANGE_SEAT_QUANTITY = "ChangeSeatQuantity"
    REINSTATE = "Reinstate"
    SUSPEND = "Suspend"


class MarketplaceActionType(str, Enum):
    """Raw action vocabulary used by the marketplace."""

    CHANGE_PLAN = "ChangePlan"
    CHANGE_QUANTITY = "ChangeQuantity"
    REINSTATE = "Reinstate"
    SUSPEND = "Suspend"
    UNSUBSCRIBE = "Unsubscribe"


class MarketplaceUser(BaseModel):
    """A marketplace user (beneficiary or purchaser)."""

    aad_object_id: str | None = Field(None, description="Azure AD object ID")
    aad_tenant_id: str | None = Field(None, description="Azure AD tenant ID")
    user_email: str | None = Field(None, description="User email address")
    user_id: str | None = Field(None, description="Marketplace user ID")


class MarketplaceTerm(BaseModel):
    """Subscription billing term."""

    start_date: datetime | None = Field(None, description="Term start")
    end_date: datetime | None = Field(None, description="Term end")
    term_unit: str | None = Field(None, description="ISO 8601 duration code, e.g. P1M")


class Subscription(BaseModel):
    """Canonical record of a marketplace purchase."""

    subscription_id: str = Field(..., description="Stable subscription identifier")
    subscription_name: str | None = Field(None, description="Subscription name")
    offer_id: str | None = Field(None, description="Offer ID")
    plan_id: str | None = Field(None, description="Plan ID")
    seat_quantity: int | None = Field(None, ge=0, description="Purchased seats")
    term: MarketplaceTerm = Field(default_factory=MarketplaceTerm)
    beneficiary: MarketplaceUser = Field(default_factory=MarketplaceUser)
    purchaser: MarketplaceUser = Field(default_factory=MarketplaceUser)
    is_test: bool = Field(default=False, description="Synthesized test-mode subscription")
    is_free_trial: bool = Field(default=False, description="Free trial subscription")
    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.PENDING_ACTIVATION,
        description="Subscription status",
    )


class WebhookNotification(BaseModel):
    """Inbound marketplace webhook notification."""

    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(..., alias="id", description="Operation ID")
    subscription_id: str = Field(..., alias="subscriptionId", description="Subscription ID")
    action_type: str = Field(..., alias="action", description="Raw marketplace action")
    plan_id: str | None = Field(None, alias="planId", description="Plan (plan changes)")
    seat_quantity: int | None = Field(
        None,
        alias="quantity",
        ge=0,
        description="Seat quantity (quantity changes)",
    )
    activity_id: str | None = Field(None, alias="activityId")
    publisher_id: str | None = Field(None, alias="publisherId")
    offer_id: str | None = Field(None, alias="offerId")
    time_stamp: str | None = Field(None, alias="timeStamp")
    status: str | None = Field(None, description="Platform operation status")


class MarketplaceOperation(BaseModel):
    """The marketplace's own record of a subscription operation."""

    operation_id: str = Field(..., description="Operation ID")
    subscription_id: str = Field(..., description="Subscription ID")
    operation_type: OperationType | None = Field(
        None,
        description="Canonical operation type (unset when the action is unknown)",
    )
    action_type: str | None = Field(None, description="Raw marketplace action")
    plan_id: str | None = None
    seat_quantity: int | None = Field(None, ge=0)
    status: str | None = Field(None, description="Platform operation status")
    time_stamp: str | None = None
