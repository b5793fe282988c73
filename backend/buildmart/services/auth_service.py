# Overview: Service-layer operations for accounts and credentials.

"""
Accounts and credentials.

Everything after login works with a Principal(id, role); this module is
the only place that sees usernames, emails and password hashes.

- bcrypt cost comes from BCRYPT_ROUNDS (12 outside tests)
- public registration can only create buyer, seller or client accounts
- unknown user, wrong password and inactive account all fail the same way
"""

import re

import bcrypt
from flask import current_app

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES, SELF_SERVICE_ROLES
from ..time_utils import utcnow

MIN_PASSWORD_LENGTH = 8

# (pattern, what is missing)
PASSWORD_RULES = [
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"[0-9]"), "a digit"),
    (re.compile(r"[^A-Za-z0-9\s]"), "a symbol such as ! or #"),
]


class PasswordValidationError(ValidationError):
    """A password failed the strength rules."""


def validate_password_strength(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password needs at least {MIN_PASSWORD_LENGTH} characters")
    for pattern, label in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password needs {label}")


def hash_password(password: str) -> str:
    """Check strength, then return the bcrypt hash as text."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """False on mismatch and on a malformed stored hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    role: str,
    business_name: str | None = None,
    self_service: bool = False,
) -> User:
    """
    Register an account.

    Emails are stored lowercased. With self_service=True (the public
    /register route) the admin role is refused.

    Raises ValidationError for missing fields, a bad role or a weak
    password, and ConflictError when the username or email is taken.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password:
        raise ValidationError("username, email and password required")

    allowed = SELF_SERVICE_ROLES if self_service else ROLES
    if role not in allowed:
        raise ValidationError(f"role must be one of: {', '.join(allowed)}", details={"role": role})

    taken = (
        db.session.query(User.id)
        .filter((User.username == username) | (User.email == email))
        .first()
    )
    if taken is not None:
        raise ConflictError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        business_name=(business_name or "").strip() or None,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """Active user matching username or email plus password, else None."""
    identifier = (identifier or "").strip()
    user = (
        db.session.query(User)
        .filter(
            (User.username == identifier) | (User.email == identifier.lower()),
            User.is_active.is_(True),
        )
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
