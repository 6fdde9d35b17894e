# Overview: Request and role decorators for API routes.

import hmac
from functools import wraps
from flask import current_app, g, jsonify, request

from .models.auth import ROLE_ADMIN, ROLE_ADVERTISING, ROLE_MANAGER
from .services import session_service


ACCESS_TOKEN_COOKIE = "access_token"
USER_DATA_COOKIE = "user_data"


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def request_token() -> str | None:
    """Session token from the Authorization header, falling back to the access_token cookie."""
    return _bearer_token() or request.cookies.get(ACCESS_TOKEN_COOKIE) or None


def require_auth(f):
    """
    Require a valid session.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No token in header or cookie
    - Invalid, disabled or expired token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles: str):
    """
    Require the signed-in account to hold one of `roles`.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role not in roles:
                return jsonify({
                    "error": "Permission denied",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


require_admin = require_role(ROLE_ADMIN)
require_advertising = require_role(ROLE_ADMIN, ROLE_ADVERTISING, ROLE_MANAGER)


def require_bot_key(f):
    """
    Guard endpoints polled by the notification bot.

    The bot sends BOT_API_KEY as a bearer token. An unset key locks the
    endpoints entirely.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("BOT_API_KEY") or ""
        presented = _bearer_token() or ""
        if not expected or not hmac.compare_digest(presented, expected):
            return jsonify({"error": "Invalid bot key"}), 401
        return f(*args, **kwargs)

    return decorated_function


def who_did() -> str:
    """Name written to the audit log for the current request."""
    user = getattr(g, "current_user", None)
    return user.display_name() if user is not None else "Неизвестный"
