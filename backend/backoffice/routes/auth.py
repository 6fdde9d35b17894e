# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration does not exist; accounts come from admins or the CLI
- Login sets the access_token cookie (plus a readable user_data cookie)
  and also returns the token for clients that prefer the header
- refresh swaps the current token for a new one; the client retries its
  failed request once with it
"""

import json

from flask import Blueprint, current_app, g, jsonify, make_response, request

from ..decorators import ACCESS_TOKEN_COOKIE, USER_DATA_COOKIE, request_token, require_auth
from ..services import auth_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


def _float_or_none(value):
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _session_response(user, session, token, status: int = 200):
    body = {
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }
    response = make_response(jsonify(body), status)

    max_age = int(current_app.config.get("SESSION_LIFETIME_DAYS", 7)) * 24 * 60 * 60
    secure = bool(current_app.config.get("SESSION_COOKIE_SECURE", False))
    response.set_cookie(
        ACCESS_TOKEN_COOKIE, token,
        max_age=max_age, httponly=True, secure=secure, samesite="Lax",
    )
    response.set_cookie(
        USER_DATA_COOKIE,
        json.dumps(
            {"id": user.id, "username": user.username, "full_name": user.full_name,
             "role": user.role, "visibility": user.visibility},
            ensure_ascii=False,
        ),
        max_age=max_age, secure=secure, samesite="Lax",
    )
    return response


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Body: username, password, optional lat/lng from the browser's
    geolocation (stored with the session).
    """
    try:
        data = request.get_json(silent=True) or {}
        username = (data.get("username") or "").strip()
        password = data.get("password")

        if not username or not password:
            return jsonify({"error": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Неверный логин или пароль"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
            latitude=_float_or_none(data.get("lat")),
            longitude=_float_or_none(data.get("lng")),
        )
        return _session_response(user, session, token)

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the current session and clear cookies. Idempotent."""
    try:
        token = request_token()
        revoked = session_service.revoke_session(token, reason="User logout")

        response = make_response(jsonify({"ok": True, "revoked": revoked}), 200)
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        response.delete_cookie(USER_DATA_COOKIE)
        return response

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/session/check")
def check_session_route():
    """{valid, user_id}; always 200 so the front end can poll it cheaply."""
    return jsonify(session_service.check_session(request_token())), 200


@auth_bp.post("/refresh")
def refresh_route():
    try:
        result = session_service.refresh_session(request_token())
        if result is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        session, token = result
        return _session_response(session.user, session, token)

    except Exception:
        current_app.logger.exception("Failed to refresh session")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "session": g.session_context.session.to_dict(),
    }), 200
