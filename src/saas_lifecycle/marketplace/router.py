"""FastAPI router for the landing page and marketplace webhooks."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from saas_lifecycle.auth import AdminUser, CurrentUser, OptionalUser
from saas_lifecycle.config import get_settings
from saas_lifecycle.events import LifecycleEventDispatcher, get_event_publisher
from saas_lifecycle.marketplace.client import get_marketplace_client
from saas_lifecycle.marketplace.models import WebhookNotification
from saas_lifecycle.marketplace.modes import LifecycleMode, LiveMode, TestMode
from saas_lifecycle.marketplace.orchestrator import (
    Outcome,
    OutcomeKind,
    SubscriptionLifecycleOrchestrator,
)
from saas_lifecycle.marketplace.repository import get_subscription_repository
from saas_lifecycle.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(tags=["Marketplace"])

# Global instances (lazily initialized)
_live_mode: LifecycleMode | None = None
_test_mode: LifecycleMode | None = None
_orchestrator: SubscriptionLifecycleOrchestrator | None = None


def get_live_mode() -> LifecycleMode:
    """Get the live mode backed by the marketplace API."""
    global _live_mode
    if _live_mode is None:
        client = get_marketplace_client()
        _live_mode = LiveMode(subscription_service=client, operation_service=client)
    return _live_mode


def get_test_mode() -> LifecycleMode:
    """Get the test mode backed by the subscription cache."""
    global _test_mode
    if _test_mode is None:
        _test_mode = TestMode(get_subscription_repository())
    return _test_mode


def get_orchestrator() -> SubscriptionLifecycleOrchestrator:
    """Get the global lifecycle orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        _orchestrator = SubscriptionLifecycleOrchestrator(
            offer_config=settings.offer_configuration(),
            deployment_config=settings.deployment_configuration(),
            dispatcher=LifecycleEventDispatcher(get_event_publisher()),
        )
    return _orchestrator


async def require_test_mode() -> None:
    """Hide test endpoints unless test mode is enabled."""
    if not get_settings().test_mode_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")


Orchestrator = Annotated[SubscriptionLifecycleOrchestrator, Depends(get_orchestrator)]
LiveModeDep = Annotated[LifecycleMode, Depends(get_live_mode)]
TestModeDep = Annotated[LifecycleMode, Depends(get_test_mode)]


def to_response(outcome: Outcome) -> Response:
    """Translate an orchestrator outcome into an HTTP response.

    Args:
        outcome: The outcome to translate.

    Returns:
        A redirect, the landing page as JSON, or a plain status response.

    Raises:
        HTTPException: For challenge, not found and internal error outcomes.
    """
    match outcome.kind:
        case (
            OutcomeKind.REDIRECT_TO_SETUP
            | OutcomeKind.REDIRECT_TO_MARKETING
            | OutcomeKind.REDIRECT_TO_SUBSCRIPTION_CONFIGURATION
            | OutcomeKind.REDIRECT_TO_PURCHASE_CONFIRMATION
        ):
            return RedirectResponse(outcome.url, status_code=status.HTTP_302_FOUND)
        case OutcomeKind.RENDER_PAGE:
            return JSONResponse(outcome.page.model_dump(mode="json"))
        case OutcomeKind.ACCEPTED:
            return JSONResponse({"status": "ok"})
        case OutcomeKind.CHALLENGE:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required",
                headers={"WWW-Authenticate": "Bearer"},
            )
        case OutcomeKind.NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
        case OutcomeKind.INTERNAL_ERROR:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Internal Server Error",
            )
        case _:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Unhandled outcome: {outcome.kind}",
            )


@router.get("/")
async def landing_page(
    orchestrator: Orchestrator,
    mode: LiveModeDep,
    user: OptionalUser,
    token: Annotated[str | None, Query()] = None,
) -> Response:
    """Landing page for new marketplace purchases.

    The marketplace sends purchasers here with a ``token`` query parameter
    identifying their new subscription.
    """
    outcome = await orchestrator.get_landing_page(mode, token, user)
    return to_response(outcome)


@router.post("/")
async def confirm_purchase(
    orchestrator: Orchestrator,
    mode: LiveModeDep,
    user: CurrentUser,
    subscription_id: Annotated[str, Form(alias="subscriptionId")],
) -> Response:
    """Confirm a purchase presented on the landing page."""
    outcome = await orchestrator.confirm_purchase(mode, subscription_id, user)
    return to_response(outcome)


@router.get("/test", dependencies=[Depends(require_test_mode)])
async def test_landing_page(
    request: Request,
    orchestrator: Orchestrator,
    mode: TestModeDep,
    user: AdminUser,
    token: Annotated[str | None, Query()] = None,
) -> Response:
    """Test landing page.

    Synthesizes a test subscription from the query string (subscriptionId,
    planId, seatQuantity, purchaser_userEmail, ...) instead of resolving a
    marketplace token.
    """
    overrides = dict(request.query_params)
    outcome = await orchestrator.get_landing_page(mode, token, user, overrides)
    return to_response(outcome)


@router.post("/test", dependencies=[Depends(require_test_mode)])
async def confirm_test_purchase(
    orchestrator: Orchestrator,
    mode: TestModeDep,
    user: AdminUser,
    subscription_id: Annotated[str, Form(alias="subscriptionId")],
) -> Response:
    """Confirm a test purchase."""
    outcome = await orchestrator.confirm_purchase(mode, subscription_id, user)
    return to_response(outcome)


async def _process_webhook(
    orchestrator: SubscriptionLifecycleOrchestrator,
    mode: LifecycleMode,
    notification: WebhookNotification,
) -> Response:
    with tracer.start_as_current_span("marketplace.webhook") as span:
        span.set_attribute("saas.subscription_id", notification.subscription_id)
        span.set_attribute("saas.operation_id", notification.operation_id)
        span.set_attribute("saas.action", notification.action_type)
        span.set_attribute("saas.test_mode", mode.is_test)

        outcome = await orchestrator.process_webhook(mode, notification)
        span.set_attribute("saas.outcome", outcome.kind.value)

    return to_response(outcome)


@router.post("/webhook")
async def marketplace_webhook(
    notification: WebhookNotification,
    orchestrator: Orchestrator,
    mode: LiveModeDep,
) -> Response:
    """Receive marketplace subscription operation notifications.

    Each notification is verified against the marketplace operations API
    before its lifecycle event is published.
    """
    logger.debug("Received marketplace webhook [%s]", notification.operation_id)
    return await _process_webhook(orchestrator, mode, notification)


@router.post("/webhook/test", dependencies=[Depends(require_test_mode)])
async def test_webhook(
    notification: WebhookNotification,
    orchestrator: Orchestrator,
    mode: TestModeDep,
) -> Response:
    """Receive notifications for test subscriptions.

    Verification is skipped and the cached test subscription is updated.
    """
    logger.debug("Received test webhook [%s]", notification.operation_id)
    return await _process_webhook(orchestrator, mode, notification)
