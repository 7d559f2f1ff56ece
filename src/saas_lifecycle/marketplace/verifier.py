"""Verification of inbound webhook notifications."""

import logging
from abc import ABC, abstractmethod

from saas_lifecycle.exceptions import WebhookVerificationError
from saas_lifecycle.marketplace.client import MarketplaceOperationService
from saas_lifecycle.marketplace.models import WebhookNotification
from saas_lifecycle.marketplace.operations import to_operation_type

logger = logging.getLogger(__name__)


class WebhookVerifier(ABC):
    """Decides whether a webhook notification is authentic."""

    @abstractmethod
    async def verify(self, notification: WebhookNotification) -> None:
        """Verify a webhook notification.

        Args:
            notification: The inbound notification.

        Raises:
            WebhookVerificationError: If the notification can't be verified.
        """


class LiveWebhookVerifier(WebhookVerifier):
    """Checks notifications against the marketplace's own operation record."""

    def __init__(self, operation_service: MarketplaceOperationService) -> None:
        self._operation_service = operation_service

    async def verify(self, notification: WebhookNotification) -> None:
        operation = await self._operation_service.get_subscription_operation(
            notification.subscription_id,
            notification.operation_id,
        )

        if operation is None:
            logger.error(
                "Marketplace has no record of subscription [%s] operation [%s]",
                notification.subscription_id,
                notification.operation_id,
            )
            raise WebhookVerificationError(notification.subscription_id, notification.operation_id)

        if (
            operation.operation_id != notification.operation_id
            or operation.operation_type != to_operation_type(notification.action_type)
            or operation.subscription_id != notification.subscription_id
        ):
            logger.error(
                "Subscription [%s] operation [%s] does not match marketplace record "
                "(operation=%s, type=%s, subscription=%s)",
                notification.subscription_id,
                notification.operation_id,
                operation.operation_id,
                operation.operation_type,
                operation.subscription_id,
            )
            raise WebhookVerificationError(notification.subscription_id, notification.operation_id)


class TestWebhookVerifier(WebhookVerifier):
    """Accepts every notification without contacting the marketplace."""

    __test__ = False

    async def verify(self, notification: WebhookNotification) -> None:
        logger.warning(
            "[TEST MODE]: Verifying subscription [%s] operation [%s] in test mode. "
            "Bypassing Marketplace API and continuing...",
            notification.subscription_id,
            notification.operation_id,
        )
