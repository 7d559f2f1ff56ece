"""Exceptions raised by the subscription lifecycle core."""


class LifecycleError(Exception):
    """Base class for lifecycle errors."""


class UnknownActionTypeError(LifecycleError, ValueError):
    """Raised when a marketplace action type has no canonical operation."""

    def __init__(self, action_type: str | None):
        super().__init__(f"Action type [{action_type}] unknown.")
        self.action_type = action_type


class WebhookVerificationError(LifecycleError):
    """Raised when a webhook notification can't be matched to a marketplace operation."""

    def __init__(self, subscription_id: str, operation_id: str):
        super().__init__(
            f"Unable to verify subscription [{subscription_id}] operation [{operation_id}]."
        )
        self.subscription_id = subscription_id
        self.operation_id = operation_id


class MarketplaceAPIError(LifecycleError):
    """Error from a marketplace API call."""

    def __init__(self, message: str, status_code: int | None = None, details: dict | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details or {}


class EventPublishError(LifecycleError):
    """Raised when a subscription event can't be handed to the transport."""

    def __init__(self, message: str, event_id: str | None = None):
        super().__init__(message)
        self.event_id = event_id
