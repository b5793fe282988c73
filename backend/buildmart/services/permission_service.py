# Overview: Access-control gate; maps (principal, action, owner) to allow/deny.

"""
Access-Control Gate

One place decides who may do what. Routes and services never
compare roles themselves; they name an action from the policy table
(see permissions/definitions.py) and ask the gate.

RULES:
- Fail closed: unknown actions deny
- No principal: only public actions are allowed (AuthenticationRequired)
- Role check: principal.role in policy roles, admin passes every role check
- Ownership: when the policy requires it, owner_id must equal principal.id
  unless the principal is an admin (Forbidden otherwise)

The gate itself is pure; it neither reads request state nor touches the
database. Denials are recorded by the HTTP layer via log_security_event.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import AuthenticationRequiredError, PermissionDeniedError
from ..extensions import db
from ..models import SecurityEvent
from ..models.auth import ROLE_ADMIN, ROLES
from ..permissions import get_policy
from ..time_utils import utcnow


@dataclass(frozen=True)
class Principal:
    """The authenticated actor making a request."""
    id: str
    role: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role}")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


ALLOW = "allow"
DENY_UNAUTHENTICATED = "authentication_required"
DENY_ROLE = "role"
DENY_OWNERSHIP = "ownership"
DENY_UNKNOWN_ACTION = "unknown_action"


@dataclass(frozen=True)
class Decision:
    action: str
    outcome: str

    @property
    def allowed(self) -> bool:
        return self.outcome == ALLOW


def authorize(principal: Principal | None, action: str, owner_id: str | None = None) -> Decision:
    """
    Evaluate the policy for `action`.

    owner_id is the owning principal's id of the targeted resource
    (Product.seller_id, Project.client_id, Order.user_id, ...). It is only
    consulted when the policy requires ownership; passing None for such a
    policy checks the role alone, which is how routes pre-screen a request
    before the resource is loaded.
    """
    policy = get_policy(action)
    if policy is None:
        return Decision(action, DENY_UNKNOWN_ACTION)

    if principal is None:
        return Decision(action, ALLOW if policy.public else DENY_UNAUTHENTICATED)

    if principal.is_admin:
        return Decision(action, ALLOW)

    if principal.role not in policy.roles:
        return Decision(action, DENY_ROLE)

    if policy.ownership and owner_id is not None and owner_id != principal.id:
        return Decision(action, DENY_OWNERSHIP)

    return Decision(action, ALLOW)


def require(principal: Principal | None, action: str, owner_id: str | None = None) -> None:
    """
    Raise unless authorize() allows.

    Raises:
        AuthenticationRequiredError: no principal for a non-public action
        PermissionDeniedError: role or ownership mismatch, or unknown action
    """
    decision = authorize(principal, action, owner_id)
    if decision.allowed:
        return

    if decision.outcome == DENY_UNAUTHENTICATED:
        raise AuthenticationRequiredError("Authentication required")

    if decision.outcome == DENY_OWNERSHIP:
        raise PermissionDeniedError(
            "Not authorized to access this resource",
            details={"action": action},
        )

    raise PermissionDeniedError(
        "Insufficient permissions",
        details={"action": action},
    )


def log_security_event(
    user_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - AUTH_REQUIRED
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event
