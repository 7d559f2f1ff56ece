"""Subscription lifecycle events and their publishers."""

from saas_lifecycle.events.dispatcher import LifecycleEventDispatcher, build_operation_event
from saas_lifecycle.events.models import (
    EventEnvelope,
    SubscriptionCancelled,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionPlanChanged,
    SubscriptionPurchased,
    SubscriptionReinstated,
    SubscriptionSeatQuantityChanged,
    SubscriptionSuspended,
)
from saas_lifecycle.events.publisher import (
    EventGridSubscriptionEventPublisher,
    InMemorySubscriptionEventPublisher,
    PubSubSubscriptionEventPublisher,
    SubscriptionEventPublisher,
    get_event_publisher,
)

__all__ = [
    # Models
    "EventEnvelope",
    "SubscriptionEvent",
    "SubscriptionEventType",
    "SubscriptionPurchased",
    "SubscriptionCancelled",
    "SubscriptionPlanChanged",
    "SubscriptionSeatQuantityChanged",
    "SubscriptionSuspended",
    "SubscriptionReinstated",
    # Publishers
    "SubscriptionEventPublisher",
    "EventGridSubscriptionEventPublisher",
    "PubSubSubscriptionEventPublisher",
    "InMemorySubscriptionEventPublisher",
    "get_event_publisher",
    # Dispatcher
    "LifecycleEventDispatcher",
    "build_operation_event",
]
