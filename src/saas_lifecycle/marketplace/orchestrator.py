"""Landing page and webhook flows for marketplace subscriptions."""

import logging
from collections.abc import Mapping
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, Field

from saas_lifecycle.auth.models import AuthenticatedUser
from saas_lifecycle.config.settings import (
    SUBSCRIPTION_ID_PLACEHOLDER,
    DeploymentConfiguration,
    OfferConfiguration,
)
from saas_lifecycle.events.dispatcher import LifecycleEventDispatcher
from saas_lifecycle.marketplace.models import (
    Subscription,
    SubscriptionStatus,
    WebhookNotification,
)
from saas_lifecycle.marketplace.modes import LifecycleMode
from saas_lifecycle.marketplace.operations import to_operation_type

logger = logging.getLogger(__name__)


class LandingErrorCode(str, Enum):
    """Error codes shown on the landing page."""

    UNABLE_TO_RESOLVE_MARKETPLACE_TOKEN = "UnableToResolveMarketplaceToken"
    SUBSCRIPTION_NOT_FOUND = "SubscriptionNotFound"
    SUBSCRIPTION_ACTIVATION_FAILED = "SubscriptionActivationFailed"


class OutcomeKind(str, Enum):
    """Terminal outcomes of a landing page or webhook request."""

    REDIRECT_TO_SETUP = "redirect_to_setup"
    REDIRECT_TO_MARKETING = "redirect_to_marketing"
    REDIRECT_TO_SUBSCRIPTION_CONFIGURATION = "redirect_to_subscription_configuration"
    REDIRECT_TO_PURCHASE_CONFIRMATION = "redirect_to_purchase_confirmation"
    RENDER_PAGE = "render_page"
    CHALLENGE = "challenge"
    NOT_FOUND = "not_found"
    ACCEPTED = "accepted"
    INTERNAL_ERROR = "internal_error"


class LandingPage(BaseModel):
    """Data for the landing page view."""

    in_test_mode: bool = False
    user_name: str | None = None
    user_email: str | None = None
    offer_id: str | None = None
    offer_display_name: str | None = None
    subscription: Subscription | None = None
    error_code: LandingErrorCode | None = None


class Outcome(BaseModel):
    """What the request surface should do with a request."""

    kind: OutcomeKind
    url: str | None = Field(None, description="Redirect target")
    page: LandingPage | None = Field(None, description="Landing page to render")


def subscription_url(template: str | None, subscription_id: str) -> str | None:
    """Substitute a subscription ID into a configured URL template."""
    if not template:
        return None
    return template.replace(SUBSCRIPTION_ID_PLACEHOLDER, quote(subscription_id, safe=""))


class SubscriptionLifecycleOrchestrator:
    """Sequences resolution, verification and event dispatch per request.

    This orchestrator handles:
    - The landing page visit (GET) after a marketplace purchase
    - Purchase confirmation (POST) from the landing page
    - Marketplace webhook notifications

    Every flow takes the LifecycleMode for the request; all internal failures
    are translated into an Outcome here.
    """

    def __init__(
        self,
        offer_config: OfferConfiguration,
        deployment_config: DeploymentConfiguration,
        dispatcher: LifecycleEventDispatcher,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            offer_config: Publisher offer configuration.
            deployment_config: Deployment configuration.
            dispatcher: Lifecycle event dispatcher.
        """
        self._offer_config = offer_config
        self._deployment_config = deployment_config
        self._dispatcher = dispatcher

    def _is_mode_available(self, mode: LifecycleMode) -> bool:
        return not mode.is_test or self._deployment_config.is_test_mode_enabled

    def _landing_page(
        self,
        mode: LifecycleMode,
        user: AuthenticatedUser | None,
        subscription: Subscription | None = None,
        error_code: LandingErrorCode | None = None,
    ) -> Outcome:
        page = LandingPage(
            in_test_mode=mode.is_test,
            user_name=user.name if user else None,
            user_email=user.email if user else None,
            offer_id=self._offer_config.offer_id,
            offer_display_name=self._offer_config.offer_display_name,
            subscription=subscription,
            error_code=error_code,
        )
        return Outcome(kind=OutcomeKind.RENDER_PAGE, page=page)

    def _redirect_to_marketing_page(self) -> Outcome:
        url = self._offer_config.offer_marketing_page_url
        if not url:
            return Outcome(kind=OutcomeKind.NOT_FOUND)
        return Outcome(kind=OutcomeKind.REDIRECT_TO_MARKETING, url=url)

    async def get_landing_page(
        self,
        mode: LifecycleMode,
        token: str | None,
        user: AuthenticatedUser | None,
        overrides: Mapping[str, str] | None = None,
    ) -> Outcome:
        """Handle a landing page visit.

        Args:
            mode: Operating mode for this request.
            token: Marketplace purchase token from the query string.
            user: The authenticated user, or None.
            overrides: Query values used to synthesize test subscriptions.

        Returns:
            The outcome for the request.
        """
        if not self._offer_config.is_setup_complete:
            return Outcome(kind=OutcomeKind.REDIRECT_TO_SETUP, url=self._deployment_config.setup_url)

        if not self._is_mode_available(mode):
            return Outcome(kind=OutcomeKind.NOT_FOUND)

        if not token and not mode.is_test:
            logger.warning(
                "Landing page reached but no subscription token was provided. "
                "Attempting to redirect to service marketing page..."
            )
            return self._redirect_to_marketing_page()

        if user is None:
            logger.warning(
                "User has provided a subscription token [%s] but has not yet been "
                "authenticated. Challenging...",
                token,
            )
            return Outcome(kind=OutcomeKind.CHALLENGE)

        try:
            subscription = await mode.resolver.resolve_token(token, overrides)

            if subscription is None:
                logger.warning("Unable to resolve source subscription token [%s].", token)
                return self._landing_page(
                    mode,
                    user,
                    error_code=LandingErrorCode.UNABLE_TO_RESOLVE_MARKETPLACE_TOKEN,
                )

            if subscription.status == SubscriptionStatus.PENDING_ACTIVATION:
                logger.info(
                    "Subscription [%s] is new. Presenting user with purchase confirmation page...",
                    subscription.subscription_id,
                )
                await mode.record_pending(subscription)
                return self._landing_page(mode, user, subscription=subscription)

            config_url = subscription_url(
                self._offer_config.subscription_configuration_url,
                subscription.subscription_id,
            )
            if config_url is None:
                logger.warning(
                    "Subscription [%s] is already known but no subscription configuration "
                    "URL is set. Presenting subscription details instead...",
                    subscription.subscription_id,
                )
                return self._landing_page(mode, user, subscription=subscription)

            logger.info(
                "Subscription [%s] is already known. Redirecting user to subscription "
                "configuration page at [%s]...",
                subscription.subscription_id,
                config_url,
            )
            return Outcome(kind=OutcomeKind.REDIRECT_TO_SUBSCRIPTION_CONFIGURATION, url=config_url)
        except Exception:
            logger.exception("An error occurred while handling landing page token [%s].", token)
            return Outcome(kind=OutcomeKind.INTERNAL_ERROR)

    async def confirm_purchase(
        self,
        mode: LifecycleMode,
        subscription_id: str,
        user: AuthenticatedUser | None = None,
    ) -> Outcome:
        """Handle purchase confirmation posted from the landing page.

        Args:
            mode: Operating mode for this request.
            subscription_id: ID of the subscription being confirmed.
            user: The authenticated user.

        Returns:
            The outcome for the request.
        """
        if not self._is_mode_available(mode):
            return Outcome(kind=OutcomeKind.NOT_FOUND)

        try:
            subscription = await mode.resolver.get_by_id(subscription_id)

            if subscription is None:
                logger.error("Subscription [%s] not found.", subscription_id)
                return self._landing_page(
                    mode,
                    user,
                    error_code=LandingErrorCode.SUBSCRIPTION_NOT_FOUND,
                )

            await self._dispatcher.dispatch_purchased(subscription)
            await mode.record_purchase(subscription)

            confirmation_url = subscription_url(
                self._offer_config.subscription_purchase_confirmation_url,
                subscription.subscription_id,
            )
            if confirmation_url is None:
                logger.info("Subscription [%s] purchase confirmed.", subscription.subscription_id)
                return self._landing_page(mode, user, subscription=subscription)

            logger.info(
                "Subscription [%s] purchase confirmed. Redirecting user to [%s]...",
                subscription.subscription_id,
                confirmation_url,
            )
            return Outcome(kind=OutcomeKind.REDIRECT_TO_PURCHASE_CONFIRMATION, url=confirmation_url)
        except Exception:
            logger.exception(
                "An error occurred while trying to complete subscription [%s] activation.",
                subscription_id,
            )
            return self._landing_page(
                mode,
                user,
                error_code=LandingErrorCode.SUBSCRIPTION_ACTIVATION_FAILED,
            )

    async def process_webhook(
        self,
        mode: LifecycleMode,
        notification: WebhookNotification,
    ) -> Outcome:
        """Handle a marketplace webhook notification.

        Args:
            mode: Operating mode for this request.
            notification: The inbound notification.

        Returns:
            ACCEPTED when the operation was verified and its event published,
            NOT_FOUND for unknown subscriptions, INTERNAL_ERROR otherwise.
        """
        if not self._is_mode_available(mode):
            return Outcome(kind=OutcomeKind.NOT_FOUND)

        try:
            subscription = await mode.resolver.get_by_id(notification.subscription_id)

            if subscription is None:
                logger.error(
                    "Unable to process Marketplace webhook notification [%s]. "
                    "Subscription [%s] not found.",
                    notification.operation_id,
                    notification.subscription_id,
                )
                return Outcome(kind=OutcomeKind.NOT_FOUND)

            operation_type = to_operation_type(notification.action_type)

            logger.info(
                "Processing subscription [%s] webhook [%s] operation [%s]...",
                subscription.subscription_id,
                operation_type.value,
                notification.operation_id,
            )

            await mode.verifier.verify(notification)
            await self._dispatcher.dispatch(operation_type, subscription, notification)
            await mode.record_operation(operation_type, subscription, notification)

            logger.info(
                "Subscription [%s] webhook [%s] operation [%s] processed successfully.",
                subscription.subscription_id,
                operation_type.value,
                notification.operation_id,
            )
            return Outcome(kind=OutcomeKind.ACCEPTED)
        except Exception:
            logger.exception(
                "An error occurred while trying to process Marketplace webhook notification [%s].",
                notification.operation_id,
            )
            return Outcome(kind=OutcomeKind.INTERNAL_ERROR)
