"""Translation of marketplace action types into canonical operations."""

from saas_lifecycle.exceptions import UnknownActionTypeError
from saas_lifecycle.marketplace.models import MarketplaceActionType, OperationType

ACTION_TYPE_MAPPING: dict[str, OperationType] = {
    MarketplaceActionType.CHANGE_PLAN.value: OperationType.CHANGE_PLAN,
    MarketplaceActionType.CHANGE_QUANTITY.value: OperationType.CHANGE_SEAT_QUANTITY,
    MarketplaceActionType.REINSTATE.value: OperationType.REINSTATE,
    MarketplaceActionType.SUSPEND.value: OperationType.SUSPEND,
    MarketplaceActionType.UNSUBSCRIBE.value: OperationType.CANCEL,
}


def to_operation_type(action_type: str | None) -> OperationType:
    """Map a raw marketplace action type onto its canonical operation.

    Args:
        action_type: Action type as sent by the marketplace (e.g. "Unsubscribe").

    Returns:
        The canonical OperationType.

    Raises:
        UnknownActionTypeError: If the action type is not in the mapping.
    """
    try:
        return ACTION_TYPE_MAPPING[action_type]
    except KeyError:
        raise UnknownActionTypeError(action_type) from None
