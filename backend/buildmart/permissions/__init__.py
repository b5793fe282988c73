# Overview: Access policy package.
# Re-exports the public API used by the access gate and the CLI.

from .categories import ActionCategory
from .definitions import (
    ACTION_DEFINITIONS,
    CATALOG_ACTIONS,
    CART_ACTIONS,
    ORDER_ACTIONS,
    PROJECT_ACTIONS,
    ADMIN_ACTIONS,
)
from .helpers import (
    ActionPolicy,
    ACTION_POLICIES,
    get_all_action_codes,
    get_actions_by_category,
    get_policy,
    validate_action_code,
)

__all__ = [
    "ActionCategory",
    "ACTION_DEFINITIONS",
    "CATALOG_ACTIONS",
    "CART_ACTIONS",
    "ORDER_ACTIONS",
    "PROJECT_ACTIONS",
    "ADMIN_ACTIONS",
    "ActionPolicy",
    "ACTION_POLICIES",
    "get_all_action_codes",
    "get_actions_by_category",
    "get_policy",
    "validate_action_code",
]
