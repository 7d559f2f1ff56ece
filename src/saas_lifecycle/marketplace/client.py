"""Client for the marketplace SaaS fulfillment API."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from saas_lifecycle.config import get_settings
from saas_lifecycle.exceptions import MarketplaceAPIError, UnknownActionTypeError
from saas_lifecycle.marketplace.models import (
    MarketplaceOperation,
    MarketplaceTerm,
    MarketplaceUser,
    Subscription,
    SubscriptionStatus,
)
from saas_lifecycle.marketplace.operations import to_operation_type

if TYPE_CHECKING:
    from saas_lifecycle.config.settings import Settings

logger = logging.getLogger(__name__)

STATUS_MAPPING = {
    "NotStarted": SubscriptionStatus.PENDING_ACTIVATION,
    "PendingFulfillmentStart": SubscriptionStatus.PENDING_ACTIVATION,
    "Subscribed": SubscriptionStatus.ACTIVE,
    "Suspended": SubscriptionStatus.SUSPENDED,
    "Unsubscribed": SubscriptionStatus.CANCELLED,
}

# Refresh access tokens this many seconds before they expire
TOKEN_EXPIRY_MARGIN_SECONDS = 300


class MarketplaceSubscriptionService(Protocol):
    """Source of record for live subscriptions."""

    async def get_subscription(self, subscription_id: str) -> Subscription | None: ...

    async def resolve_subscription_token(self, token: str) -> Subscription | None: ...


class MarketplaceOperationService(Protocol):
    """Source of record for subscription operations."""

    async def get_subscription_operation(
        self, subscription_id: str, operation_id: str
    ) -> MarketplaceOperation | None: ...


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_user(data: dict[str, Any] | None) -> MarketplaceUser:
    data = data or {}
    return MarketplaceUser(
        aad_object_id=data.get("objectId"),
        aad_tenant_id=data.get("tenantId"),
        user_email=data.get("emailId"),
        user_id=data.get("puid"),
    )


def parse_subscription(data: dict[str, Any]) -> Subscription:
    """Convert a marketplace subscription document to a Subscription.

    Args:
        data: Subscription JSON as returned by the fulfillment API.

    Returns:
        Subscription instance.
    """
    raw_status = data.get("saasSubscriptionStatus")
    status = STATUS_MAPPING.get(raw_status)
    if status is None:
        logger.warning(
            "Unrecognized marketplace status [%s] for subscription [%s]",
            raw_status,
            data.get("id"),
        )
        status = SubscriptionStatus.PENDING_ACTIVATION

    term = data.get("term") or {}

    return Subscription(
        subscription_id=data["id"],
        subscription_name=data.get("name"),
        offer_id=data.get("offerId"),
        plan_id=data.get("planId"),
        seat_quantity=data.get("quantity"),
        term=MarketplaceTerm(
            start_date=_parse_datetime(term.get("startDate")),
            end_date=_parse_datetime(term.get("endDate")),
            term_unit=term.get("termUnit"),
        ),
        beneficiary=_parse_user(data.get("beneficiary")),
        purchaser=_parse_user(data.get("purchaser")),
        is_test=bool(data.get("isTest", False)),
        is_free_trial=bool(data.get("isFreeTrial", False)),
        status=status,
    )


def parse_operation(data: dict[str, Any]) -> MarketplaceOperation:
    """Convert a marketplace operation document to a MarketplaceOperation."""
    action = data.get("action")
    try:
        operation_type = to_operation_type(action)
    except UnknownActionTypeError:
        logger.warning("Marketplace operation [%s] has unmapped action [%s]", data.get("id"), action)
        operation_type = None

    return MarketplaceOperation(
        operation_id=data["id"],
        subscription_id=data["subscriptionId"],
        operation_type=operation_type,
        action_type=action,
        plan_id=data.get("planId"),
        seat_quantity=data.get("quantity"),
        status=data.get("status"),
        time_stamp=data.get("timeStamp"),
    )


class MarketplaceClient:
    """Client for the marketplace SaaS fulfillment API.

    This client handles:
    - Acquiring Azure AD access tokens (client credentials flow)
    - Resolving landing page tokens into subscriptions
    - Reading subscriptions and subscription operations

    HTTP 404 responses are reported as None. Any other failure raises
    MarketplaceAPIError.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the marketplace client.

        Args:
            settings: Application settings (uses default if not provided).
            http_client: Optional HTTP client for testing.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._access_token: str | None = None
        self._access_token_expires_at: float = 0.0

    @property
    def base_url(self) -> str:
        """Get the fulfillment API base URL."""
        return self._settings.marketplace_api_base_url.rstrip("/")

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._http_client:
                return await self._http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient() as client:
                return await client.request(
                    method,
                    url,
                    timeout=self._settings.marketplace_timeout_seconds,
                    **kwargs,
                )
        except httpx.HTTPError as e:
            raise MarketplaceAPIError(f"Marketplace request to {url} failed: {e}") from e

    async def _get_access_token(self) -> str:
        """Get a marketplace API access token, reusing the cached one if still valid."""
        if self._access_token and time.monotonic() < self._access_token_expires_at:
            return self._access_token

        settings = self._settings
        url = (
            f"{settings.marketplace_aad_authority.rstrip('/')}/"
            f"{settings.marketplace_aad_tenant_id}/oauth2/token"
        )
        response = await self._send(
            "POST",
            url,
            data={
                "grant_type": "client_credentials",
                "client_id": settings.marketplace_aad_client_id,
                "client_secret": settings.marketplace_aad_client_secret,
                "resource": settings.marketplace_api_resource,
            },
        )

        if response.status_code != 200:
            logger.error("Failed to acquire marketplace API token: %s", response.text)
            raise MarketplaceAPIError(
                "Failed to acquire marketplace API token",
                status_code=response.status_code,
                details=self._error_details(response),
            )

        data = response.json()
        expires_in = int(data.get("expires_in", 3600))
        self._access_token = data["access_token"]
        self._access_token_expires_at = (
            time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        )
        return self._access_token

    async def _get_headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        token = await self._get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _params(self) -> dict[str, str]:
        return {"api-version": self._settings.marketplace_api_version}

    @staticmethod
    def _error_details(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {"body": response.text}
        return body if isinstance(body, dict) else {"body": body}

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        logger.error(
            "Marketplace API %s failed (status=%s): %s",
            action,
            response.status_code,
            response.text,
        )
        raise MarketplaceAPIError(
            f"Marketplace API {action} failed",
            status_code=response.status_code,
            details=self._error_details(response),
        )

    async def resolve_subscription_token(self, token: str) -> Subscription | None:
        """Resolve a landing page token into a subscription.

        Args:
            token: Opaque marketplace purchase token.

        Returns:
            Subscription if the marketplace recognizes the token, None otherwise.
        """
        headers = await self._get_headers({"x-ms-marketplace-token": token})
        response = await self._send(
            "POST",
            f"{self.base_url}/saas/subscriptions/resolve",
            params=self._params(),
            headers=headers,
        )

        if response.status_code in (400, 404):
            logger.info("Marketplace could not resolve subscription token")
            return None
        self._raise_for_status(response, "token resolution")

        data = response.json()
        subscription_data = data.get("subscription") or {}
        subscription_data.setdefault("id", data.get("id"))
        subscription_data.setdefault("name", data.get("subscriptionName"))
        subscription_data.setdefault("offerId", data.get("offerId"))
        subscription_data.setdefault("planId", data.get("planId"))
        subscription_data.setdefault("quantity", data.get("quantity"))
        return parse_subscription(subscription_data)

    async def get_subscription(self, subscription_id: str) -> Subscription | None:
        """Get a subscription by ID.

        Args:
            subscription_id: The marketplace subscription ID.

        Returns:
            Subscription if found, None otherwise.
        """
        response = await self._send(
            "GET",
            f"{self.base_url}/saas/subscriptions/{subscription_id}",
            params=self._params(),
            headers=await self._get_headers(),
        )

        if response.status_code == 404:
            return None
        self._raise_for_status(response, f"get subscription [{subscription_id}]")
        return parse_subscription(response.json())

    async def get_subscription_operation(
        self,
        subscription_id: str,
        operation_id: str,
    ) -> MarketplaceOperation | None:
        """Get the marketplace record of a subscription operation.

        Args:
            subscription_id: The marketplace subscription ID.
            operation_id: The operation ID.

        Returns:
            MarketplaceOperation if found, None otherwise.
        """
        response = await self._send(
            "GET",
            f"{self.base_url}/saas/subscriptions/{subscription_id}/operations/{operation_id}",
            params=self._params(),
            headers=await self._get_headers(),
        )

        if response.status_code == 404:
            return None
        self._raise_for_status(
            response,
            f"get subscription [{subscription_id}] operation [{operation_id}]",
        )
        return parse_operation(response.json())


# Global client instance
_marketplace_client: MarketplaceClient | None = None


def get_marketplace_client() -> MarketplaceClient:
    """Get the global marketplace client instance.

    Returns:
        MarketplaceClient instance.
    """
    global _marketplace_client
    if _marketplace_client is None:
        _marketplace_client = MarketplaceClient()
    return _marketplace_client
