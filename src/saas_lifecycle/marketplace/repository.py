"""Repositories for caching test-mode subscriptions."""

import logging
from typing import Protocol

from sqlalchemy import select

from saas_lifecycle.config import get_settings
from saas_lifecycle.db import CachedSubscriptionModel, get_session
from saas_lifecycle.marketplace.models import Subscription

logger = logging.getLogger(__name__)


class SubscriptionRepository(Protocol):
    """Cache of test-mode subscriptions."""

    async def get_subscription(self, subscription_id: str) -> Subscription | None: ...

    async def put_subscription(self, subscription: Subscription) -> Subscription: ...


def _ensure_test_subscription(subscription: Subscription) -> None:
    if not subscription.is_test:
        raise ValueError(
            f"Subscription [{subscription.subscription_id}] is not a test subscription "
            "and can't be cached."
        )


class InMemorySubscriptionRepository:
    """Subscription cache backed by a dictionary.

    Suitable for development and single-process deployments.
    """

    def __init__(self) -> None:
        """Initialize the subscription repository."""
        self._subscriptions: dict[str, Subscription] = {}

    async def get_subscription(self, subscription_id: str) -> Subscription | None:
        """Get a cached subscription by ID.

        Args:
            subscription_id: The subscription ID.

        Returns:
            A copy of the cached subscription if found, None otherwise.
        """
        subscription = self._subscriptions.get(subscription_id)
        return subscription.model_copy(deep=True) if subscription else None

    async def put_subscription(self, subscription: Subscription) -> Subscription:
        """Insert or replace a cached subscription.

        Args:
            subscription: The test subscription to store.

        Returns:
            The stored subscription.

        Raises:
            ValueError: If the subscription is not a test subscription.
        """
        _ensure_test_subscription(subscription)
        self._subscriptions[subscription.subscription_id] = subscription.model_copy(deep=True)
        logger.info(
            "Cached test subscription: %s (status=%s)",
            subscription.subscription_id,
            subscription.status.value,
        )
        return subscription


class DatabaseSubscriptionRepository:
    """Subscription cache backed by SQLAlchemy.

    Each subscription is stored as a JSON document keyed by its ID.
    """

    async def get_subscription(self, subscription_id: str) -> Subscription | None:
        """Get a cached subscription by ID.

        Args:
            subscription_id: The subscription ID.

        Returns:
            Subscription if found, None otherwise.
        """
        async with get_session() as session:
            result = await session.execute(
                select(CachedSubscriptionModel).where(
                    CachedSubscriptionModel.id == subscription_id
                )
            )
            model = result.scalar_one_or_none()
            if model:
                return Subscription.model_validate(model.document)
            return None

    async def put_subscription(self, subscription: Subscription) -> Subscription:
        """Insert or replace a cached subscription.

        Args:
            subscription: The test subscription to store.

        Returns:
            The stored subscription.

        Raises:
            ValueError: If the subscription is not a test subscription.
        """
        _ensure_test_subscription(subscription)

        async with get_session() as session:
            model = await session.get(CachedSubscriptionModel, subscription.subscription_id)
            document = subscription.model_dump(mode="json")
            if model:
                model.status = subscription.status.value
                model.document = document
            else:
                session.add(
                    CachedSubscriptionModel(
                        id=subscription.subscription_id,
                        status=subscription.status.value,
                        document=document,
                    )
                )

        logger.info(
            "Cached test subscription: %s (status=%s)",
            subscription.subscription_id,
            subscription.status.value,
        )
        return subscription


# Global repository instance
_subscription_repository: SubscriptionRepository | None = None


def get_subscription_repository() -> SubscriptionRepository:
    """Get the global subscription repository instance.

    Returns:
        The configured SubscriptionRepository.
    """
    global _subscription_repository
    if _subscription_repository is None:
        if get_settings().subscription_cache == "database":
            _subscription_repository = DatabaseSubscriptionRepository()
        else:
            _subscription_repository = InMemorySubscriptionRepository()
    return _subscription_repository
