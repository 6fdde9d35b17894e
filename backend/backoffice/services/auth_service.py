# Overview: Service-layer operations for auth and manager accounts; encapsulates business logic and database work.

"""
Authentication and Manager Accounts

WHY: Every action in the audit log is attributed to a signed-in account.
Passwords are hashed with bcrypt; plaintext never reaches the database.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, 12 by default)
- Minimum 4 characters (back-office staff set their own PINs)
- Session tokens managed separately (see session_service.py)
- Deleting a manager cascades to their sessions
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADVERTISING, ROLES, VISIBILITY_LEVELS
from ..validation import ConflictError, NotFoundError, ValidationError
from backoffice.time_utils import utcnow


MIN_PASSWORD_LENGTH = 4


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str | None) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Пароль должен содержать минимум {MIN_PASSWORD_LENGTH} символа"
        )


def hash_password(password: str) -> str:
    """Hash password using bcrypt (BCRYPT_ROUNDS, 12 by default). Validates strength first."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user for these credentials, or None.

    Updates last_login_at on success.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def create_manager(
    *,
    name: str | None,
    username: str,
    password: str,
    role: str,
    visibility: str | None = None,
) -> User:
    """
    Create a back-office account.

    Raises:
        ValidationError: missing username, unknown role, or missing/unknown
            visibility for a non-advertising account
        PasswordValidationError: password shorter than 4 characters
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if not username:
        raise ValidationError("Username обязателен")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    if role == ROLE_ADVERTISING:
        visibility = None
    elif not visibility:
        raise ValidationError("Уровень видимости обязателен")
    elif visibility not in VISIBILITY_LEVELS:
        raise ValidationError(f"visibility must be one of: {', '.join(VISIBILITY_LEVELS)}")

    if db.session.query(User).filter_by(username=username).first():
        raise ConflictError("Username уже занят")

    user = User(
        username=username,
        full_name=(name or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
        visibility=visibility,
    )
    db.session.add(user)
    db.session.commit()
    return user


def list_managers() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_manager(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Пользователь не найден")
    return user


def delete_manager(user_id: int) -> None:
    user = get_manager(user_id)
    db.session.delete(user)
    db.session.commit()


def set_password(user_id: int, password: str) -> User:
    user = get_manager(user_id)
    user.password_hash = hash_password(password)
    db.session.commit()
    return user
