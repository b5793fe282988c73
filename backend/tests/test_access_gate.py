"""
Access-gate tests.

Verifies:
- Role lists: buyer/seller/client/admin per action
- Admin passes every role check and bypasses ownership
- Ownership denies a matching role acting on someone else's resource
- Unknown actions and anonymous callers are denied (fail closed)
"""

import pytest

from buildmart.errors import AuthenticationRequiredError, PermissionDeniedError
from buildmart.permissions import ACTION_POLICIES, get_all_action_codes, validate_action_code
from buildmart.services.permission_service import (
    ALLOW,
    DENY_OWNERSHIP,
    DENY_ROLE,
    DENY_UNAUTHENTICATED,
    DENY_UNKNOWN_ACTION,
    Principal,
    authorize,
    require,
)

BUYER = Principal(id="u-buyer", role="buyer")
SELLER = Principal(id="u-seller", role="seller")
OTHER_SELLER = Principal(id="u-seller-2", role="seller")
CLIENT = Principal(id="u-client", role="client")
ADMIN = Principal(id="u-admin", role="admin")


# =============================================================================
# ROLE CHECKS
# =============================================================================


class TestRoleChecks:

    @pytest.mark.parametrize(
        "principal,action,expected",
        [
            (SELLER, "CREATE_PRODUCT", ALLOW),
            (BUYER, "CREATE_PRODUCT", DENY_ROLE),
            (CLIENT, "CREATE_PRODUCT", DENY_ROLE),
            (CLIENT, "CREATE_PROJECT", ALLOW),
            (BUYER, "CREATE_PROJECT", DENY_ROLE),
            (SELLER, "CREATE_PROJECT", DENY_ROLE),
            (BUYER, "PLACE_ORDER", ALLOW),
            (SELLER, "PLACE_ORDER", ALLOW),
            (CLIENT, "PLACE_ORDER", ALLOW),
            (BUYER, "VIEW_STATS", DENY_ROLE),
            (SELLER, "VIEW_USERS", DENY_ROLE),
            (BUYER, "UPDATE_ORDER_STATUS", DENY_ROLE),
        ],
    )
    def test_role_lists(self, principal, action, expected):
        assert authorize(principal, action).outcome == expected

    @pytest.mark.parametrize("action", sorted(ACTION_POLICIES))
    def test_admin_passes_every_action(self, action):
        assert authorize(ADMIN, action).allowed
        assert authorize(ADMIN, action, owner_id="someone-else").allowed


# =============================================================================
# OWNERSHIP
# =============================================================================


class TestOwnership:

    def test_owner_allowed(self):
        assert authorize(SELLER, "UPDATE_PRODUCT", owner_id=SELLER.id).allowed

    def test_same_role_other_owner_denied(self):
        decision = authorize(OTHER_SELLER, "DELETE_PRODUCT", owner_id=SELLER.id)
        assert decision.outcome == DENY_OWNERSHIP

    def test_admin_bypasses_ownership(self):
        assert authorize(ADMIN, "DELETE_PRODUCT", owner_id=SELLER.id).allowed

    def test_role_checked_before_ownership(self):
        # A buyer "owning" a product still lacks the seller role
        assert authorize(BUYER, "UPDATE_PRODUCT", owner_id=BUYER.id).outcome == DENY_ROLE

    def test_no_owner_is_role_only_prescreen(self):
        assert authorize(SELLER, "UPDATE_PRODUCT").allowed

    def test_project_ownership(self):
        other_client = Principal(id="u-client-2", role="client")
        assert authorize(CLIENT, "MANAGE_PROJECT_RECORDS", owner_id=CLIENT.id).allowed
        assert not authorize(other_client, "MANAGE_PROJECT_RECORDS", owner_id=CLIENT.id).allowed

    def test_ownership_ignored_for_non_owned_actions(self):
        assert authorize(SELLER, "CREATE_PRODUCT", owner_id="whoever").allowed


# =============================================================================
# FAIL CLOSED
# =============================================================================


class TestFailClosed:

    def test_unknown_action_denied(self):
        assert authorize(ADMIN, "LAUNCH_ROCKET").outcome == DENY_UNKNOWN_ACTION

    def test_anonymous_denied_private_action(self):
        assert authorize(None, "MANAGE_CART").outcome == DENY_UNAUTHENTICATED

    def test_anonymous_allowed_public_action(self):
        assert authorize(None, "VIEW_CATALOG").allowed

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            Principal(id="x", role="superuser")


class TestRequire:

    def test_require_raises_authentication_required(self):
        with pytest.raises(AuthenticationRequiredError):
            require(None, "PLACE_ORDER")

    def test_require_role_mismatch(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require(BUYER, "CREATE_PRODUCT")
        assert exc.value.kind == "Forbidden"
        assert exc.value.details == {"action": "CREATE_PRODUCT"}

    def test_require_ownership_mismatch(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require(OTHER_SELLER, "UPDATE_PRODUCT", owner_id=SELLER.id)
        assert exc.value.status_code == 403

    def test_require_unknown_action(self):
        with pytest.raises(PermissionDeniedError):
            require(ADMIN, "NOT_A_THING")


def test_action_catalog_is_consistent():
    codes = get_all_action_codes()
    assert len(codes) == len(set(codes))
    for code in codes:
        assert validate_action_code(code)
    assert not validate_action_code("NOT_A_THING")
