"""Tests for the order error taxonomy and its HTTP mapping."""

from orders.api.errors import status_code_for
from orders.errors import (
    AlreadyTerminal,
    InvalidInput,
    InvalidTransition,
    NotFound,
    NotModifiable,
    PreconditionFailed,
    UpstreamUnavailable,
    VersionConflict,
)


class TestErrorPayloads:
    def test_version_conflict_carries_both_versions(self):
        error = VersionConflict(1, 2)
        assert error.to_dict() == {
            "code": "VERSION_CONFLICT",
            "message": "Version conflict: expected 1, current is 2",
            "details": {"expected_version": 1, "current_version": 2},
        }

    def test_invalid_transition_lists_allowed_targets(self):
        error = InvalidTransition("PENDING", "SHIPPED", ["RESERVED", "CANCELLED"])
        assert error.details["allowed_transitions"] == ["CANCELLED", "RESERVED"]
        assert error.details["current_status"] == "PENDING"

    def test_precondition_failed_names_field(self):
        error = PreconditionFailed("tracking_number", "SHIPPED")
        assert error.details["missing_field"] == "tracking_number"

    def test_not_found_names_kind_and_id(self):
        error = NotFound("Order", "ord-1")
        assert error.details == {"kind": "Order", "id": "ord-1"}


class TestStatusCodes:
    def test_mapping(self):
        assert status_code_for(NotFound("Order", "x")) == 404
        assert status_code_for(VersionConflict(1, 2)) == 409
        assert status_code_for(InvalidTransition("A", "B", [])) == 409
        assert status_code_for(AlreadyTerminal("COMPLETED")) == 409
        assert status_code_for(PreconditionFailed("warehouse_id", "FULFILLING")) == 422
        assert status_code_for(NotModifiable("RESERVED", ["PENDING"])) == 422
        assert status_code_for(InvalidInput({})) == 422
        assert status_code_for(UpstreamUnavailable("inventory")) == 503
