# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with expiry and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of SESSION_LIFETIME_DAYS (7 by default)
- Revocable on logout, refresh, or from the managers screen
- Tracks client IP, user agent and login location
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..validation import NotFoundError
from backoffice.time_utils import utcnow


DEFAULT_SESSION_LIFETIME_DAYS = 7


@dataclass
class SessionContext:
    """Validated session: the account plus the session row it came from."""
    user: User
    session: SessionToken


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client and never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _lifetime() -> timedelta:
    days = current_app.config.get("SESSION_LIFETIME_DAYS", DEFAULT_SESSION_LIFETIME_DAYS)
    return timedelta(days=int(days))


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_valid = False
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("Пользователь не найден")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + _lifetime(),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
        latitude=latitude,
        longitude=longitude,
        is_valid=True,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str | None) -> SessionContext | None:
    """
    Return SessionContext if the token is valid, else None.

    None when the token is unknown, disabled, expired, or the account is
    deactivated. Updates last_used_at on success.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_valid=True,
    ).first()

    if not session:
        return None

    now = utcnow()
    if session.expires_at < now:
        _revoke(session, "Expired")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def check_session(token: str | None) -> dict:
    ctx = validate_session(token)
    if ctx is None:
        return {"valid": False, "user_id": None}
    return {"valid": True, "user_id": ctx.user.id}


def refresh_session(token: str | None) -> tuple[SessionToken, str] | None:
    """
    Swap a valid token for a fresh one.

    The old session is disabled; the new one inherits its client info.
    Returns None when the presented token is not valid.
    """
    ctx = validate_session(token)
    if ctx is None:
        return None

    old = ctx.session
    _revoke(old, "Refreshed")
    db.session.flush()

    return create_session(
        old.user_id,
        user_agent=old.user_agent,
        ip_address=old.ip_address,
        latitude=old.latitude,
        longitude=old.longitude,
    )


def revoke_session(token: str | None, reason: str = "User logout") -> bool:
    """Returns True if session was revoked, False if not found."""
    if not token:
        return False

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_valid=True,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def list_user_sessions(user_id: int) -> list[SessionToken]:
    if db.session.get(User, user_id) is None:
        raise NotFoundError("Пользователь не найден")
    return (
        db.session.query(SessionToken)
        .filter_by(user_id=user_id)
        .order_by(SessionToken.created_at.desc(), SessionToken.id.desc())
        .all()
    )


def disable_session(session_id: int, reason: str = "Disabled by admin") -> SessionToken:
    session = db.session.get(SessionToken, session_id)
    if session is None:
        raise NotFoundError("Сессия не найдена")
    if session.is_valid:
        _revoke(session, reason)
        db.session.commit()
    return session


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired and disabled sessions older than `older_than_days`.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_valid.is_(False),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
