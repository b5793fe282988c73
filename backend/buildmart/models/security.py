from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import generate_id


class SecurityEvent(db.Model):
    """
    Audit row for an access denial or failed login.

    Rows are only ever inserted.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
    )

    id = db.Column(db.String(36), primary_key=True, default=generate_id)

    # Not a foreign key: anonymous events and deleted users keep their rows
    user_id = db.Column(db.String(36), nullable=True, index=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)  # PERMISSION_DENIED, AUTH_REQUIRED, LOGIN_FAILED
    resource = db.Column(db.String(255), nullable=True)  # e.g., "/api/products/<id>"
    action = db.Column(db.String(64), nullable=True)     # e.g., "DELETE_PRODUCT"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
