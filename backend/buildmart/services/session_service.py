# Overview: Bearer session tokens; issue, resolve, revoke, purge.

"""
Bearer sessions.

The client holds a random 64-hex-character token; the database keeps
only its SHA-256 digest. A session stops working when it passes
SESSION_ABSOLUTE_TIMEOUT_HOURS since creation, sits unused longer than
SESSION_IDLE_TIMEOUT_HOURS, is revoked at logout, or its user is
deactivated. The last two cases are written back as revocations with a
reason so they show up when auditing.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow
from .permission_service import Principal


@dataclass
class SessionContext:
    user: User
    session: SessionToken

    @property
    def principal(self) -> Principal:
        return Principal(id=self.user.id, role=self.user.role)


def _hours(key: str, default: int) -> timedelta:
    return timedelta(hours=current_app.config.get(key, default))


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # the token is already random, so an unsalted fast digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return (
        db.session.query(SessionToken)
        .filter(SessionToken.token_hash == hash_token(token), SessionToken.is_revoked.is_(False))
        .first()
    )


def _revoke(session: SessionToken, reason: str, when: datetime) -> None:
    session.is_revoked = True
    session.revoked_at = when
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """Open a session for user_id; returns (row, plaintext token)."""
    if db.session.get(User, user_id) is None:
        raise ValueError(f"No user {user_id}")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _hours("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24),
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> SessionContext | None:
    """
    Resolve a bearer token to its user, or None.

    A hit refreshes last_used_at. Idle sessions and sessions of
    deactivated users are revoked on the way out.
    """
    session = _live_session(token)
    now = utcnow()
    if session is None or session.expires_at < now:
        return None

    if now - session.last_used_at > _hours("SESSION_IDLE_TIMEOUT_HOURS", 2):
        _revoke(session, "Idle timeout", now)
        return None

    user = session.user
    if user is None or not user.is_active:
        _revoke(session, "User account deactivated", now)
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token matches no live session."""
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason, utcnow())
    return True


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """Delete dead (expired or revoked) sessions created before the cutoff."""
    now = utcnow()
    dead = (SessionToken.expires_at < now) | SessionToken.is_revoked.is_(True)
    deleted = (
        db.session.query(SessionToken)
        .filter(dead, SessionToken.created_at < now - timedelta(days=older_than_days))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
