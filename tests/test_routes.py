"""Tests for the landing page and webhook HTTP routes."""

import time
from unittest.mock import AsyncMock, patch

import jwt
import pytest
from fastapi.testclient import TestClient

from saas_lifecycle.api.app import create_app
from saas_lifecycle.config import Settings
from saas_lifecycle.marketplace.models import MarketplaceOperation, OperationType, SubscriptionStatus
from saas_lifecycle.marketplace.modes import LiveMode, TestMode
from saas_lifecycle.marketplace.orchestrator import SubscriptionLifecycleOrchestrator
from saas_lifecycle.marketplace.repository import InMemorySubscriptionRepository
from saas_lifecycle.marketplace.router import get_live_mode, get_orchestrator, get_test_mode

# Any bearer token is accepted as the development user while SKIP_JWT_VALIDATION is set
ADMIN_HEADERS = {"Authorization": "Bearer development-token"}

WEBHOOK_PAYLOAD = {
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


def _user_headers(scope: str) -> dict[str, str]:
    claims = {
        "iss": "https://login.microsoftonline.com/common/v2.0",
        "sub": "user-123",
        "aud": "landing-page",
        "exp": int(time.time()) + 3600,
        "iat": int(time.time()),
        "scope": scope,
        "email": "alex@contoso.example",
    }
    return {"Authorization": f"Bearer {jwt.encode(claims, 'secret', algorithm='HS256')}"}


@pytest.fixture
def marketplace():
    """Mock marketplace implementing both subscription and operation services."""
    service = AsyncMock()
    service.get_subscription.return_value = None
    service.resolve_subscription_token.return_value = None
    service.get_subscription_operation.return_value = None
    return service


@pytest.fixture
def repository():
    """Fresh in-memory subscription cache."""
    return InMemorySubscriptionRepository()


@pytest.fixture
def client(marketplace, repository, offer_config, deployment_config, dispatcher):
    """Test client with marketplace and cache dependencies replaced."""
    app = create_app()
    live_mode = LiveMode(subscription_service=marketplace, operation_service=marketplace)
    sandbox_mode = TestMode(repository)
    orchestrator = SubscriptionLifecycleOrchestrator(offer_config, deployment_config, dispatcher)

    app.dependency_overrides[get_live_mode] = lambda: live_mode
    app.dependency_overrides[get_test_mode] = lambda: sandbox_mode
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    return TestClient(app)


@pytest.fixture
def disable_test_mode():
    """Disable test mode for the router's endpoint gate."""
    with patch(
        "saas_lifecycle.marketplace.router.get_settings",
        return_value=Settings(test_mode_enabled=False),
    ):
        yield


class TestHealthEndpoints:
    """Tests for health and readiness endpoints."""

    def test_health(self, client):
        """Test the health endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """Test the readiness endpoint."""
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"


class TestLandingRoutes:
    """Tests for GET and POST /."""

    def test_no_token_redirects_to_marketing(self, client):
        """Test anonymous visitors without a token are redirected."""
        response = client.get("/", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://contoso.example/analytics"

    def test_unauthenticated_token_is_challenged(self, client):
        """Test token holders without credentials are challenged."""
        response = client.get("/", params={"token": "purchase-token"})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_unresolvable_token(self, client, marketplace):
        """Test an unresolvable token returns the error-coded landing page."""
        response = client.get("/", params={"token": "bogus"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["error_code"] == "UnableToResolveMarketplaceToken"
        assert body["in_test_mode"] is False
        marketplace.resolve_subscription_token.assert_awaited_once_with("bogus")

    def test_pending_subscription(self, client, marketplace, pending_subscription):
        """Test new subscriptions are returned for confirmation."""
        marketplace.resolve_subscription_token.return_value = pending_subscription

        response = client.get("/", params={"token": "purchase-token"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["error_code"] is None
        assert body["subscription"]["subscription_id"] == pending_subscription.subscription_id
        assert body["subscription"]["status"] == "PendingActivation"

    def test_confirm_requires_authentication(self, client):
        """Test purchase confirmation needs a signed-in user."""
        response = client.post("/", data={"subscriptionId": "sub-1"})

        assert response.status_code == 401

    def test_confirm_purchase(self, client, marketplace, pending_subscription, publisher):
        """Test confirming a purchase redirects to the confirmation page."""
        marketplace.get_subscription.return_value = pending_subscription

        response = client.post(
            "/",
            data={"subscriptionId": pending_subscription.subscription_id},
            headers=ADMIN_HEADERS,
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert response.headers["location"].endswith(
            f"/subscriptions/{pending_subscription.subscription_id}/welcome"
        )
        assert [e.event_type for e in publisher.published] == ["saas.subscription.purchased"]

    def test_confirm_unknown_subscription(self, client):
        """Test confirming an unknown subscription returns the error page."""
        response = client.post("/", data={"subscriptionId": "missing"}, headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["error_code"] == "SubscriptionNotFound"


class TestTestLandingRoutes:
    """Tests for GET and POST /test."""

    def test_synthesizes_subscription(self, client, repository, marketplace):
        """Test query overrides produce a cached test subscription."""
        response = client.get(
            "/test",
            params={"subscriptionId": "abc", "seatQuantity": "10"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["in_test_mode"] is True
        assert body["subscription"]["subscription_id"] == "abc"
        assert body["subscription"]["seat_quantity"] == 10
        assert body["subscription"]["status"] == "PendingActivation"
        assert "abc" in repository._subscriptions
        marketplace.resolve_subscription_token.assert_not_awaited()

    def test_requires_admin_scope(self, client):
        """Test the test landing page is limited to administrators."""
        response = client.get("/test", headers=_user_headers("openid profile"))

        assert response.status_code == 403

    def test_admin_scope_from_token(self, client):
        """Test a token carrying the admin scope is accepted."""
        response = client.get("/test", headers=_user_headers("openid saas:admin"))

        assert response.status_code == 200

    def test_requires_authentication(self, client):
        """Test anonymous callers are rejected."""
        response = client.get("/test")

        assert response.status_code == 401

    def test_hidden_when_disabled(self, client, disable_test_mode):
        """Test the test landing page is not found when test mode is off."""
        response = client.get("/test", headers=ADMIN_HEADERS)

        assert response.status_code == 404

    def test_confirm_test_purchase(self, client, repository):
        """Test confirming a synthesized purchase activates it."""
        client.get("/test", params={"subscriptionId": "abc"}, headers=ADMIN_HEADERS)

        response = client.post(
            "/test",
            data={"subscriptionId": "abc"},
            headers=ADMIN_HEADERS,
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert repository._subscriptions["abc"].status == SubscriptionStatus.ACTIVE


class TestWebhookRoutes:
    """Tests for POST /webhook and /webhook/test."""

    def test_webhook_accepted(self, client, marketplace, subscription, publisher):
        """Test a verified webhook is accepted and published."""
        marketplace.get_subscription.return_value = subscription
        marketplace.get_subscription_operation.return_value = MarketplaceOperation(
            operation_id=WEBHOOK_PAYLOAD["id"],
            subscription_id=WEBHOOK_PAYLOAD["subscriptionId"],
            operation_type=OperationType.CANCEL,
            action_type="Unsubscribe",
        )

        response = client.post("/webhook", json=WEBHOOK_PAYLOAD)

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert [e.event_type for e in publisher.published] == ["saas.subscription.cancelled"]

    def test_webhook_unknown_subscription(self, client):
        """Test webhooks for unknown subscriptions get 404."""
        response = client.post("/webhook", json=WEBHOOK_PAYLOAD)

        assert response.status_code == 404

    def test_webhook_verification_failure(self, client, marketplace, subscription, publisher):
        """Test unverifiable webhooks get 500 and publish nothing."""
        marketplace.get_subscription.return_value = subscription

        response = client.post("/webhook", json=WEBHOOK_PAYLOAD)

        assert response.status_code == 500
        assert not publisher.published

    def test_webhook_invalid_payload(self, client):
        """Test malformed notifications are rejected."""
        response = client.post("/webhook", json={"action": "Unsubscribe"})

        assert response.status_code == 422

    def test_test_webhook_negative_quantity(self, client, repository, test_subscription, publisher):
        """Test a negative seat quantity is rejected before anything is published or cached."""
        repository._subscriptions[test_subscription.subscription_id] = test_subscription
        payload = {
            **WEBHOOK_PAYLOAD,
            "subscriptionId": test_subscription.subscription_id,
            "action": "ChangeQuantity",
            "quantity": -5,
        }

        response = client.post("/webhook/test", json=payload)

        assert response.status_code == 422
        assert not publisher.published
        assert repository._subscriptions[test_subscription.subscription_id].seat_quantity == 10

    def test_test_webhook(self, client, repository, test_subscription, publisher):
        """Test test webhooks update the cached subscription."""
        repository._subscriptions[test_subscription.subscription_id] = test_subscription
        payload = {
            **WEBHOOK_PAYLOAD,
            "subscriptionId": test_subscription.subscription_id,
            "action": "Suspend",
        }

        response = client.post("/webhook/test", json=payload)

        assert response.status_code == 200
        assert publisher.published[0].event_type == "saas.subscription.suspended"
        assert repository._subscriptions[test_subscription.subscription_id].status == (
            SubscriptionStatus.SUSPENDED
        )

    def test_test_webhook_hidden_when_disabled(self, client, disable_test_mode):
        """Test test webhooks are not found when test mode is off."""
        response = client.post("/webhook/test", json=WEBHOOK_PAYLOAD)

        assert response.status_code == 404
