"""Tests for marketplace action type mapping."""

import pytest

from saas_lifecycle.exceptions import UnknownActionTypeError
from saas_lifecycle.marketplace.models import MarketplaceActionType, OperationType
from saas_lifecycle.marketplace.operations import ACTION_TYPE_MAPPING, to_operation_type


class TestToOperationType:
    """Tests for to_operation_type."""

    @pytest.mark.parametrize(
        ("action_type", "expected"),
        [
            ("ChangePlan", OperationType.CHANGE_PLAN),
            ("ChangeQuantity", OperationType.CHANGE_SEAT_QUANTITY),
            ("Reinstate", OperationType.REINSTATE),
            ("Suspend", OperationType.SUSPEND),
            ("Unsubscribe", OperationType.CANCEL),
        ],
    )
    def test_known_action_types(self, action_type, expected):
        """Test each marketplace action maps to its canonical operation."""
        assert to_operation_type(action_type) == expected

    def test_every_action_type_is_mapped(self):
        """Test the mapping covers every marketplace action type."""
        assert set(ACTION_TYPE_MAPPING) == {action.value for action in MarketplaceActionType}

    def test_mapping_is_injective(self):
        """Test no two actions share an operation type."""
        assert len(set(ACTION_TYPE_MAPPING.values())) == len(ACTION_TYPE_MAPPING)

    def test_unknown_action_type(self):
        """Test an unknown action raises with the offending value."""
        with pytest.raises(UnknownActionTypeError) as exc_info:
            to_operation_type("Renew")

        assert exc_info.value.action_type == "Renew"
        assert str(exc_info.value) == "Action type [Renew] unknown."

    def test_lookup_is_case_sensitive(self):
        """Test action types are matched exactly."""
        with pytest.raises(UnknownActionTypeError):
            to_operation_type("unsubscribe")

    def test_missing_action_type(self):
        """Test a missing action type is rejected."""
        with pytest.raises(UnknownActionTypeError):
            to_operation_type(None)

    def test_unknown_action_type_is_value_error(self):
        """Test callers catching ValueError also catch unknown actions."""
        with pytest.raises(ValueError):
            to_operation_type("")
