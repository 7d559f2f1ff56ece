"""Maps verified operations onto lifecycle events and publishes them."""

import logging
from typing import assert_never

from saas_lifecycle.events.models import (
    SubscriptionCancelled,
    SubscriptionEvent,
    SubscriptionPlanChanged,
    SubscriptionPurchased,
    SubscriptionReinstated,
    SubscriptionSeatQuantityChanged,
    SubscriptionSuspended,
)
from saas_lifecycle.events.publisher import SubscriptionEventPublisher
from saas_lifecycle.marketplace.models import OperationType, Subscription, WebhookNotification

logger = logging.getLogger(__name__)


def build_operation_event(
    operation_type: OperationType,
    subscription: Subscription,
    notification: WebhookNotification,
) -> SubscriptionEvent:
    """Build the single event that corresponds to an operation.

    Args:
        operation_type: Canonical operation type.
        subscription: The subject subscription.
        notification: The webhook notification that carried the operation.

    Returns:
        A new SubscriptionEvent with a fresh event ID.
    """
    operation_id = notification.operation_id

    match operation_type:
        case OperationType.CANCEL:
            return SubscriptionCancelled(subscription=subscription, operation_id=operation_id)
        case OperationType.CHANGE_PLAN:
            return SubscriptionPlanChanged(
                subscription=subscription,
                operation_id=operation_id,
                new_plan_id=notification.plan_id,
            )
        case OperationType.CHANGE_SEAT_QUANTITY:
            return SubscriptionSeatQuantityChanged(
                subscription=subscription,
                operation_id=operation_id,
                new_seat_quantity=notification.seat_quantity,
            )
        case OperationType.REINSTATE:
            return SubscriptionReinstated(subscription=subscription, operation_id=operation_id)
        case OperationType.SUSPEND:
            return SubscriptionSuspended(subscription=subscription, operation_id=operation_id)
        case _:
            assert_never(operation_type)


class LifecycleEventDispatcher:
    """Publishes exactly one lifecycle event per processed operation.

    Publish failures propagate; there is no local retry or buffering.
    """

    def __init__(self, publisher: SubscriptionEventPublisher) -> None:
        """Initialize the dispatcher.

        Args:
            publisher: Transport used to publish events.
        """
        self._publisher = publisher

    async def dispatch(
        self,
        operation_type: OperationType,
        subscription: Subscription,
        notification: WebhookNotification,
    ) -> SubscriptionEvent:
        """Publish the event for a verified webhook operation.

        Returns:
            The published event.
        """
        event = build_operation_event(operation_type, subscription, notification)
        await self._publisher.publish(event)
        logger.debug(
            "Dispatched %s for subscription [%s] operation [%s]",
            event.event_type.value,
            subscription.subscription_id,
            notification.operation_id,
        )
        return event

    async def dispatch_purchased(self, subscription: Subscription) -> SubscriptionEvent:
        """Publish a SubscriptionPurchased event for a confirmed purchase.

        Returns:
            The published event.
        """
        event = SubscriptionPurchased(subscription=subscription)
        await self._publisher.publish(event)
        logger.debug(
            "Dispatched %s for subscription [%s]",
            event.event_type.value,
            subscription.subscription_id,
        )
        return event
