"""Subscription resolution for live and test mode."""

import calendar
import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime

from saas_lifecycle.marketplace.client import MarketplaceSubscriptionService
from saas_lifecycle.marketplace.models import (
    MarketplaceTerm,
    MarketplaceUser,
    Subscription,
    SubscriptionStatus,
)
from saas_lifecycle.marketplace.repository import SubscriptionRepository

logger = logging.getLogger(__name__)

DEFAULT_SUBSCRIPTION_NAME = "Test Subscription"
DEFAULT_OFFER_ID = "Test Offer"
DEFAULT_PLAN_ID = "Test Plan"
DEFAULT_TERM_UNIT = "P1M"
DEFAULT_BENEFICIARY_EMAIL = "beneficiary@example.com"
DEFAULT_PURCHASER_EMAIL = "purchaser@example.com"


class SubscriptionResolver(ABC):
    """Looks up subscriptions by ID and resolves landing page tokens.

    Lookup failures propagate to the caller. Token resolution failures are
    logged and reported as "not found" since tokens arrive from untrusted
    callers.
    """

    async def get_by_id(self, subscription_id: str) -> Subscription | None:
        """Get a subscription by ID.

        Args:
            subscription_id: The subscription ID.

        Returns:
            Subscription if found, None otherwise.
        """
        try:
            return await self._get_by_id(subscription_id)
        except Exception:
            logger.exception(
                "An error occurred while trying to get subscription [%s].",
                subscription_id,
            )
            raise

    async def resolve_token(
        self,
        token: str | None,
        overrides: Mapping[str, str] | None = None,
    ) -> Subscription | None:
        """Resolve a landing page token into a subscription.

        Args:
            token: Marketplace purchase token.
            overrides: Request-supplied values (used by test mode only).

        Returns:
            Subscription if resolved, None otherwise.
        """
        try:
            return await self._resolve_token(token, overrides or {})
        except Exception:
            logger.exception(
                "An error occurred while attempting to resolve subscription token [%s].",
                token,
            )
            return None

    @abstractmethod
    async def _get_by_id(self, subscription_id: str) -> Subscription | None: ...

    @abstractmethod
    async def _resolve_token(
        self, token: str | None, overrides: Mapping[str, str]
    ) -> Subscription | None: ...


class LiveSubscriptionResolver(SubscriptionResolver):
    """Resolves subscriptions against the live marketplace API."""

    def __init__(self, subscription_service: MarketplaceSubscriptionService) -> None:
        self._subscription_service = subscription_service

    async def _get_by_id(self, subscription_id: str) -> Subscription | None:
        return await self._subscription_service.get_subscription(subscription_id)

    async def _resolve_token(
        self, token: str | None, overrides: Mapping[str, str]
    ) -> Subscription | None:
        if not token:
            return None
        return await self._subscription_service.resolve_subscription_token(token)


class TestSubscriptionResolver(SubscriptionResolver):
    """Resolves subscriptions from the local test subscription cache.

    Token resolution never contacts the marketplace; it synthesizes a new
    pending subscription from the request overrides instead.
    """

    __test__ = False

    def __init__(self, repository: SubscriptionRepository) -> None:
        self._repository = repository

    async def _get_by_id(self, subscription_id: str) -> Subscription | None:
        logger.warning(
            "[TEST MODE]: Trying to get test subscription [%s] from subscription cache...",
            subscription_id,
        )
        return await self._repository.get_subscription(subscription_id)

    async def _resolve_token(
        self, token: str | None, overrides: Mapping[str, str]
    ) -> Subscription | None:
        return create_test_subscription(overrides)


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in ("true", "1"):
        return True
    if normalized in ("false", "0"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _create_test_user(
    overrides: Mapping[str, str],
    key_prefix: str,
    default_email: str,
) -> MarketplaceUser:
    return MarketplaceUser(
        aad_object_id=overrides.get(f"{key_prefix}_aadObjectId", str(uuid.uuid4())),
        aad_tenant_id=overrides.get(f"{key_prefix}_aadTenantId", str(uuid.uuid4())),
        user_email=overrides.get(f"{key_prefix}_userEmail", default_email),
        user_id=overrides.get(f"{key_prefix}_userId", str(uuid.uuid4())),
    )


def _create_test_term(overrides: Mapping[str, str]) -> MarketplaceTerm:
    today = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0)

    start_date = overrides.get("term_startDate")
    end_date = overrides.get("term_endDate")

    return MarketplaceTerm(
        start_date=_parse_datetime(start_date) if start_date else today,
        end_date=_parse_datetime(end_date) if end_date else _add_months(today, 1),
        term_unit=overrides.get("term_termUnit", DEFAULT_TERM_UNIT),
    )


def create_test_subscription(overrides: Mapping[str, str]) -> Subscription:
    """Synthesize a pending test subscription.

    Args:
        overrides: Values keyed by subscriptionId, subscriptionName, offerId,
            planId, isFreeTrial, seatQuantity, term_startDate, term_endDate,
            term_termUnit and beneficiary_/purchaser_ prefixed aadObjectId,
            aadTenantId, userEmail and userId. Missing identifiers get fresh
            UUIDs.

    Returns:
        A new Subscription with is_test set and PendingActivation status.

    Raises:
        ValueError: If an override can't be parsed.
    """
    seat_quantity = overrides.get("seatQuantity")
    is_free_trial = overrides.get("isFreeTrial")

    return Subscription(
        subscription_id=overrides.get("subscriptionId", str(uuid.uuid4())),
        subscription_name=overrides.get("subscriptionName", DEFAULT_SUBSCRIPTION_NAME),
        offer_id=overrides.get("offerId", DEFAULT_OFFER_ID),
        plan_id=overrides.get("planId", DEFAULT_PLAN_ID),
        is_test=True,
        is_free_trial=_parse_bool(is_free_trial) if is_free_trial is not None else False,
        seat_quantity=int(seat_quantity) if seat_quantity is not None else None,
        term=_create_test_term(overrides),
        beneficiary=_create_test_user(overrides, "beneficiary", DEFAULT_BENEFICIARY_EMAIL),
        purchaser=_create_test_user(overrides, "purchaser", DEFAULT_PURCHASER_EMAIL),
        status=SubscriptionStatus.PENDING_ACTIVATION,
    )
