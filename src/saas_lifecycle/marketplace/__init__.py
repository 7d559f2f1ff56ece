"""Marketplace SaaS subscription handling.

The request-facing pieces (orchestrator and router) live in their own
modules and are imported directly by the application.
"""

from saas_lifecycle.marketplace.client import (
    MarketplaceClient,
    MarketplaceOperationService,
    MarketplaceSubscriptionService,
    get_marketplace_client,
)
from saas_lifecycle.marketplace.models import (
    MarketplaceActionType,
    MarketplaceOperation,
    MarketplaceTerm,
    MarketplaceUser,
    OperationType,
    Subscription,
    SubscriptionStatus,
    WebhookNotification,
)
from saas_lifecycle.marketplace.modes import LifecycleMode, LiveMode, TestMode
from saas_lifecycle.marketplace.operations import ACTION_TYPE_MAPPING, to_operation_type
from saas_lifecycle.marketplace.repository import (
    DatabaseSubscriptionRepository,
    InMemorySubscriptionRepository,
    SubscriptionRepository,
    get_subscription_repository,
)
from saas_lifecycle.marketplace.resolver import (
    LiveSubscriptionResolver,
    SubscriptionResolver,
    TestSubscriptionResolver,
    create_test_subscription,
)
from saas_lifecycle.marketplace.verifier import (
    LiveWebhookVerifier,
    TestWebhookVerifier,
    WebhookVerifier,
)

__all__ = [
    # Models
    "MarketplaceActionType",
    "MarketplaceOperation",
    "MarketplaceTerm",
    "MarketplaceUser",
    "OperationType",
    "Subscription",
    "SubscriptionStatus",
    "WebhookNotification",
    # Operation types
    "ACTION_TYPE_MAPPING",
    "to_operation_type",
    # Client
    "MarketplaceClient",
    "MarketplaceOperationService",
    "MarketplaceSubscriptionService",
    "get_marketplace_client",
    # Repository
    "DatabaseSubscriptionRepository",
    "InMemorySubscriptionRepository",
    "SubscriptionRepository",
    "get_subscription_repository",
    # Resolution and verification
    "LiveSubscriptionResolver",
    "SubscriptionResolver",
    "TestSubscriptionResolver",
    "create_test_subscription",
    "LiveWebhookVerifier",
    "TestWebhookVerifier",
    "WebhookVerifier",
    # Modes
    "LifecycleMode",
    "LiveMode",
    "TestMode",
]
