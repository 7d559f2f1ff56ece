"""Pytest configuration and fixtures."""

import os
from datetime import UTC, datetime

import pytest
import pytest_asyncio

# Set test environment variables before importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "true"
os.environ["SKIP_JWT_VALIDATION"] = "true"
os.environ["TEST_MODE_ENABLED"] = "true"
os.environ["EVENT_PUBLISHER"] = "memory"
os.environ["SUBSCRIPTION_CACHE"] = "memory"
os.environ["OTEL_ENABLED"] = "false"

from saas_lifecycle.config import DeploymentConfiguration, OfferConfiguration  # noqa: E402
from saas_lifecycle.events import (  # noqa: E402
    InMemorySubscriptionEventPublisher,
    LifecycleEventDispatcher,
)
from saas_lifecycle.marketplace.models import (  # noqa: E402
    MarketplaceTerm,
    MarketplaceUser,
    Subscription,
    SubscriptionStatus,
    WebhookNotification,
)


@pytest.fixture
def test_settings():
    """Provide test settings."""
    from saas_lifecycle.config import Settings

    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        debug=True,
        skip_jwt_validation=True,
        test_mode_enabled=True,
        marketplace_api_base_url="https://marketplace.test/api",
        marketplace_aad_authority="https://login.test",
        marketplace_aad_tenant_id="publisher-tenant",
        marketplace_aad_client_id="publisher-client",
        marketplace_aad_client_secret="publisher-secret",
    )


@pytest.fixture
def offer_config():
    """Offer configuration with every redirect configured."""
    return OfferConfiguration(
        is_setup_complete=True,
        offer_id="contoso-analytics",
        offer_display_name="Contoso Analytics",
        offer_marketing_page_url="https://contoso.example/analytics",
        subscription_configuration_url="https://app.contoso.example/subscriptions/{subscription-id}",
        subscription_purchase_confirmation_url=(
            "https://app.contoso.example/subscriptions/{subscription-id}/welcome"
        ),
    )


@pytest.fixture
def deployment_config():
    """Deployment configuration with test mode enabled."""
    return DeploymentConfiguration(is_test_mode_enabled=True)


@pytest.fixture
def publisher():
    """In-memory event publisher."""
    return InMemorySubscriptionEventPublisher(subject_prefix="subscriptions")


@pytest.fixture
def dispatcher(publisher):
    """Lifecycle event dispatcher publishing to memory."""
    return LifecycleEventDispatcher(publisher)


def _build_subscription(**overrides) -> Subscription:
    """Build a subscription with realistic defaults."""
    values = {
        "subscription_id": "37f9dea2-4345-438f-b0bd-03d40d28c7e0",
        "subscription_name": "Contoso Cloud Solution",
        "offer_id": "contoso-analytics",
        "plan_id": "silver",
        "seat_quantity": 10,
        "term": MarketplaceTerm(
            start_date=datetime(2024, 1, 1, tzinfo=UTC),
            end_date=datetime(2024, 2, 1, tzinfo=UTC),
            term_unit="P1M",
        ),
        "beneficiary": MarketplaceUser(
            aad_object_id="0d4f7a3c-1a4f-4e0a-9c32-0a5b0d6d3f10",
            aad_tenant_id="a4c1b3e9-97a2-4c5f-8d3b-6f9e1f0b2a11",
            user_email="beneficiary@contoso.example",
            user_id="1003BFFD9F4F1B7A",
        ),
        "purchaser": MarketplaceUser(
            aad_object_id="0d4f7a3c-1a4f-4e0a-9c32-0a5b0d6d3f10",
            aad_tenant_id="a4c1b3e9-97a2-4c5f-8d3b-6f9e1f0b2a11",
            user_email="purchaser@contoso.example",
            user_id="1003BFFD9F4F1B7A",
        ),
        "status": SubscriptionStatus.ACTIVE,
    }
    values.update(overrides)
    return Subscription(**values)


def _build_notification(**overrides) -> WebhookNotification:
    """Build a webhook notification from marketplace-style keys."""
    payload = {
        "id": "74dfb4db-c193-4891-827d-eb05fbdc64b0",
        "activityId": "f8d7e8c2-6f57-4b31-8a6c-1c4b0b1f2d70",
        "subscriptionId": "37f9dea2-4345-438f-b0bd-03d40d28c7e0",
        "publisherId": "contoso",
        "offerId": "contoso-analytics",
        "planId": "silver",
        "quantity": 10,
        "timeStamp": "2024-01-15T10:00:00.0000000Z",
        "action": "Unsubscribe",
        "status": "InProgress",
    }
    payload.update(overrides)
    return WebhookNotification(**payload)


@pytest.fixture
def subscription():
    """An active live subscription."""
    return _build_subscription()


@pytest.fixture
def pending_subscription():
    """A live subscription awaiting activation."""
    return _build_subscription(status=SubscriptionStatus.PENDING_ACTIVATION)


@pytest.fixture
def test_subscription():
    """A cached test-mode subscription."""
    return _build_subscription(
        subscription_id="test-subscription-1",
        is_test=True,
        status=SubscriptionStatus.PENDING_ACTIVATION,
    )


@pytest.fixture
def notification():
    """An Unsubscribe webhook notification."""
    return _build_notification()


@pytest_asyncio.fixture
async def db_session():
    """Initialize database for tests.

    Creates all tables and yields, then cleans up after.
    """
    from saas_lifecycle.db import close_database, init_database

    await init_database()
    yield
    await close_database()


@pytest.fixture
def make_subscription():
    """Factory for subscriptions with field overrides."""
    return _build_subscription


@pytest.fixture
def make_notification():
    """Factory for webhook notifications with payload overrides."""
    return _build_notification
