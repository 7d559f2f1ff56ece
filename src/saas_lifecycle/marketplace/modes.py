"""Live and test operating modes.

A mode bundles the resolver and verifier for one side of the live/test
split together with what that side does with subscription state after a
request is processed. The orchestrator receives a mode per request and
never branches on a test flag itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import assert_never

from saas_lifecycle.marketplace.client import (
    MarketplaceOperationService,
    MarketplaceSubscriptionService,
)
from saas_lifecycle.marketplace.models import (
    OperationType,
    Subscription,
    SubscriptionStatus,
    WebhookNotification,
)
from saas_lifecycle.marketplace.repository import SubscriptionRepository
from saas_lifecycle.marketplace.resolver import (
    LiveSubscriptionResolver,
    SubscriptionResolver,
    TestSubscriptionResolver,
)
from saas_lifecycle.marketplace.verifier import (
    LiveWebhookVerifier,
    TestWebhookVerifier,
    WebhookVerifier,
)

logger = logging.getLogger(__name__)


def apply_operation(
    subscription: Subscription,
    operation_type: OperationType,
    notification: WebhookNotification,
) -> Subscription:
    """Return a copy of the subscription with an operation applied.

    Raises:
        pydantic.ValidationError: If the result is not a valid subscription.
    """
    match operation_type:
        case OperationType.CANCEL:
            update = {"status": SubscriptionStatus.CANCELLED}
        case OperationType.SUSPEND:
            update = {"status": SubscriptionStatus.SUSPENDED}
        case OperationType.REINSTATE:
            update = {"status": SubscriptionStatus.ACTIVE}
        case OperationType.CHANGE_PLAN:
            update = {"plan_id": notification.plan_id}
        case OperationType.CHANGE_SEAT_QUANTITY:
            update = {"seat_quantity": notification.seat_quantity}
        case _:
            assert_never(operation_type)
    return Subscription.model_validate({**subscription.model_dump(), **update})


class LifecycleMode(ABC):
    """Capabilities for one operating mode."""

    is_test: bool = False

    def __init__(self, resolver: SubscriptionResolver, verifier: WebhookVerifier) -> None:
        self.resolver = resolver
        self.verifier = verifier

    @abstractmethod
    async def record_pending(self, subscription: Subscription) -> None:
        """Called when a pending subscription is presented for confirmation."""

    @abstractmethod
    async def record_purchase(self, subscription: Subscription) -> None:
        """Called after a purchase confirmation has been published."""

    @abstractmethod
    async def record_operation(
        self,
        operation_type: OperationType,
        subscription: Subscription,
        notification: WebhookNotification,
    ) -> None:
        """Called after a webhook operation has been published."""


class LiveMode(LifecycleMode):
    """Production mode backed by the marketplace API.

    The marketplace is the record of truth, so nothing is persisted locally.
    """

    def __init__(
        self,
        subscription_service: MarketplaceSubscriptionService,
        operation_service: MarketplaceOperationService,
    ) -> None:
        super().__init__(
            LiveSubscriptionResolver(subscription_service),
            LiveWebhookVerifier(operation_service),
        )

    async def record_pending(self, subscription: Subscription) -> None:
        pass

    async def record_purchase(self, subscription: Subscription) -> None:
        pass

    async def record_operation(
        self,
        operation_type: OperationType,
        subscription: Subscription,
        notification: WebhookNotification,
    ) -> None:
        pass


class TestMode(LifecycleMode):
    """Pre-production mode backed by the local subscription cache."""

    __test__ = False
    is_test = True

    def __init__(self, repository: SubscriptionRepository) -> None:
        super().__init__(TestSubscriptionResolver(repository), TestWebhookVerifier())
        self._repository = repository

    async def record_pending(self, subscription: Subscription) -> None:
        await self._repository.put_subscription(subscription)

    async def record_purchase(self, subscription: Subscription) -> None:
        if subscription.status == SubscriptionStatus.PENDING_ACTIVATION:
            await self._repository.put_subscription(
                subscription.model_copy(update={"status": SubscriptionStatus.ACTIVE})
            )

    async def record_operation(
        self,
        operation_type: OperationType,
        subscription: Subscription,
        notification: WebhookNotification,
    ) -> None:
        updated = apply_operation(subscription, operation_type, notification)
        logger.warning(
            "[TEST MODE]: Applying %s operation [%s] to test subscription [%s]",
            operation_type.value,
            notification.operation_id,
            subscription.subscription_id,
        )
        await self._repository.put_subscription(updated)
