# Overview: Policy table lookups.

from __future__ import annotations

from dataclasses import dataclass

from .definitions import ACTION_DEFINITIONS


@dataclass(frozen=True)
class ActionPolicy:
    code: str
    description: str
    category: str
    roles: frozenset
    ownership: bool
    public: bool


ACTION_POLICIES: dict[str, ActionPolicy] = {
    code: ActionPolicy(
        code=code,
        description=description,
        category=category,
        roles=frozenset(roles),
        ownership=ownership,
        public=public,
    )
    for code, description, category, roles, ownership, public in ACTION_DEFINITIONS
}


def get_all_action_codes():
    """Get list of all action codes."""
    return [action[0] for action in ACTION_DEFINITIONS]


def get_actions_by_category(category):
    """Get all actions in a category."""
    return [action for action in ACTION_DEFINITIONS if action[2] == category]


def get_policy(code) -> ActionPolicy | None:
    return ACTION_POLICIES.get(code)


def validate_action_code(code):
    """Check if an action code is valid."""
    return code in ACTION_POLICIES
