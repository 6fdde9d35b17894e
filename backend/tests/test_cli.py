"""
Flask CLI command tests.
"""

from datetime import timedelta

from backoffice.models import Goal, SessionToken, User
from backoffice.services import session_service
from backoffice.time_utils import utcnow


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert "PASS Created admin: admin" in first.output
    assert "PASS Using existing admin: admin" in second.output
    assert db_session.query(User).count() == 1
    assert db_session.get(Goal, 1) is not None


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--username", "anna", "--name", "Анна", "--password", "1234", "--role", "advertising",
    ])
    assert result.exit_code == 0, result.output

    listing = runner.invoke(args=["users", "list"])
    assert "anna" in listing.output
    assert "advertising" in listing.output


def test_users_create_rejects_duplicate(app, db_session, admin_user):
    result = app.test_cli_runner().invoke(args=[
        "users", "create", "--username", "admin", "--password", "1234", "--role", "admin", "--visibility", "MINIMAL",
    ])
    assert result.exit_code != 0
    assert "Username уже занят" in result.output


def test_set_password_unknown_user(app, db_session):
    result = app.test_cli_runner().invoke(args=["users", "set-password", "--username", "ghost", "--password", "1234"])
    assert result.exit_code != 0


def test_sessions_cleanup(app, db_session, admin_user):
    session, _ = session_service.create_session(admin_user.id)
    session.created_at = utcnow() - timedelta(days=90)
    session.is_valid = False
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["sessions", "cleanup", "--older-than-days", "30"])

    assert "Deleted 1 sessions" in result.output
    assert db_session.query(SessionToken).count() == 0
