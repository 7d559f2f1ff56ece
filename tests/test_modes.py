"""Tests for live and test operating modes."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from saas_lifecycle.marketplace.models import OperationType, SubscriptionStatus
from saas_lifecycle.marketplace.modes import LiveMode, TestMode, apply_operation
from saas_lifecycle.marketplace.repository import InMemorySubscriptionRepository
from saas_lifecycle.marketplace.resolver import LiveSubscriptionResolver, TestSubscriptionResolver
from saas_lifecycle.marketplace.verifier import LiveWebhookVerifier, TestWebhookVerifier


class TestApplyOperation:
    """Tests for apply_operation."""

    @pytest.mark.parametrize(
        ("operation_type", "action", "status"),
        [
            (OperationType.CANCEL, "Unsubscribe", SubscriptionStatus.CANCELLED),
            (OperationType.SUSPEND, "Suspend", SubscriptionStatus.SUSPENDED),
            (OperationType.REINSTATE, "Reinstate", SubscriptionStatus.ACTIVE),
        ],
    )
    def test_status_changes(self, test_subscription, make_notification, operation_type, action, status):
        """Test status-changing operations."""
        updated = apply_operation(test_subscription, operation_type, make_notification(action=action))

        assert updated.status == status

    def test_change_plan(self, test_subscription, make_notification):
        """Test plan changes take the plan from the notification."""
        notification = make_notification(action="ChangePlan", planId="gold")

        updated = apply_operation(test_subscription, OperationType.CHANGE_PLAN, notification)

        assert updated.plan_id == "gold"
        assert updated.status == test_subscription.status

    def test_change_quantity(self, test_subscription, make_notification):
        """Test quantity changes take the quantity from the notification."""
        notification = make_notification(action="ChangeQuantity", quantity=42)

        updated = apply_operation(test_subscription, OperationType.CHANGE_SEAT_QUANTITY, notification)

        assert updated.seat_quantity == 42

    def test_change_quantity_rejects_negative(self, test_subscription, make_notification):
        """Test an update that would leave a negative seat quantity is rejected."""
        notification = make_notification(action="ChangeQuantity").model_copy(
            update={"seat_quantity": -5}
        )

        with pytest.raises(ValidationError):
            apply_operation(test_subscription, OperationType.CHANGE_SEAT_QUANTITY, notification)

    def test_original_is_unchanged(self, test_subscription, notification):
        """Test the input subscription is not mutated."""
        apply_operation(test_subscription, OperationType.CANCEL, notification)

        assert test_subscription.status == SubscriptionStatus.PENDING_ACTIVATION


class TestLiveMode:
    """Tests for LiveMode."""

    def test_capabilities(self):
        """Test live mode uses marketplace-backed resolution and verification."""
        mode = LiveMode(subscription_service=AsyncMock(), operation_service=AsyncMock())

        assert mode.is_test is False
        assert isinstance(mode.resolver, LiveSubscriptionResolver)
        assert isinstance(mode.verifier, LiveWebhookVerifier)

    @pytest.mark.asyncio
    async def test_records_nothing(self, subscription, notification):
        """Test live mode keeps no local state."""
        subscription_service = AsyncMock()
        mode = LiveMode(subscription_service=subscription_service, operation_service=AsyncMock())

        await mode.record_pending(subscription)
        await mode.record_purchase(subscription)
        await mode.record_operation(OperationType.CANCEL, subscription, notification)

        assert subscription_service.mock_calls == []


class TestTestMode:
    """Tests for TestMode."""

    @pytest.fixture
    def repository(self):
        """Fresh in-memory subscription cache."""
        return InMemorySubscriptionRepository()

    def test_capabilities(self, repository):
        """Test test mode uses cache-backed resolution and bypasses verification."""
        mode = TestMode(repository)

        assert mode.is_test is True
        assert isinstance(mode.resolver, TestSubscriptionResolver)
        assert isinstance(mode.verifier, TestWebhookVerifier)

    @pytest.mark.asyncio
    async def test_record_pending_caches(self, repository, test_subscription):
        """Test presented subscriptions are cached."""
        mode = TestMode(repository)

        await mode.record_pending(test_subscription)

        assert await repository.get_subscription(test_subscription.subscription_id) == test_subscription

    @pytest.mark.asyncio
    async def test_record_purchase_activates(self, repository, test_subscription):
        """Test confirmed purchases become active."""
        mode = TestMode(repository)
        await mode.record_pending(test_subscription)

        await mode.record_purchase(test_subscription)

        cached = await repository.get_subscription(test_subscription.subscription_id)
        assert cached.status == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_record_purchase_keeps_other_statuses(self, repository, test_subscription):
        """Test confirming a non-pending subscription leaves it alone."""
        suspended = test_subscription.model_copy(update={"status": SubscriptionStatus.SUSPENDED})
        await repository.put_subscription(suspended)
        mode = TestMode(repository)

        await mode.record_purchase(suspended)

        cached = await repository.get_subscription(test_subscription.subscription_id)
        assert cached.status == SubscriptionStatus.SUSPENDED

    @pytest.mark.asyncio
    async def test_record_operation_updates_cache(self, repository, test_subscription, make_notification):
        """Test webhook operations are applied to the cached subscription."""
        await repository.put_subscription(test_subscription)
        mode = TestMode(repository)
        notification = make_notification(
            subscriptionId=test_subscription.subscription_id,
            action="Suspend",
        )

        await mode.record_operation(OperationType.SUSPEND, test_subscription, notification)

        cached = await repository.get_subscription(test_subscription.subscription_id)
        assert cached.status == SubscriptionStatus.SUSPENDED
