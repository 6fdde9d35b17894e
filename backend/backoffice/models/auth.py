from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_ADVERTISING = "advertising"
ROLE_MANAGER = "manager"
ROLES = (ROLE_ADMIN, ROLE_ADVERTISING, ROLE_MANAGER)

VISIBILITY_LEVELS = ("MINIMAL", "PARTIAL", "ADVERTISING")


class User(db.Model):
    """
    Back-office accounts (admins, advertising staff, managers).

    The role decides which areas of the API a session may reach:
    - admin: everything
    - advertising, manager: leaflets, distribution and distributors

    visibility narrows what an admin dashboard shows; advertising
    accounts do not carry one.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role", "role"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default=ROLE_MANAGER)
    visibility = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def display_name(self) -> str:
        return self.full_name or self.username

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "role": self.role,
            "visibility": self.visibility,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Server-side session records.

    WHY: Cookies only carry an opaque token; the row decides whether the
    session is still valid, so an admin can disable any device remotely.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute expiry (SESSION_LIFETIME_DAYS)
    - Revocable on logout or from the managers screen
    - Login location (lat/lng) is kept when the client sends it
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_valid", "user_id", "is_valid"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    is_valid = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    # Client information (for security monitoring)
    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    user = db.relationship(
        "User",
        backref=db.backref("session_tokens", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "is_valid": self.is_valid,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "revoked_at": to_utc_z(self.revoked_at),
            "revoked_reason": self.revoked_reason,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
