"""
Notification bot tests.

The back office API is replaced by an httpx.MockTransport and the chat
bot by a recorder, so no network is touched.
"""

import json
import os
from types import SimpleNamespace

import httpx
import pytest
import requests

from notifier.api_client import BackofficeApiError, BackofficeClient
from notifier.bot import NotifierBot
from notifier.config import Settings
from notifier.messages import (
    BACK_ONLINE_NOTICE,
    DOWNTIME_NOTICE,
    NO_RIGHTS_REPLY,
    format_arrive_date,
    format_order_message,
)


OWNER_ID = 42

ORDER = {
    "id": 7,
    "full_name": "Анна <script>",
    "phone": "+79990001122",
    "address": "ул. Баумана, 10",
    "problem": "Течёт & шумит",
    "arrive_date": "2026-10-19T14:30:00Z",
    "visit_type": "GARAGE",
    "city": {"id": 1, "name": "Казань"},
    "leaflet": None,
}


class RecordingBot:
    """Stands in for telebot.TeleBot; records outgoing calls."""

    def __init__(self, fail_for=()):
        self.sent = []
        self.replies = []
        self.fail_for = set(fail_for)

    def send_message(self, chat_id, text, **kwargs):
        for marker in self.fail_for:
            if marker in text:
                raise requests.ConnectionError("chat unreachable")
        self.sent.append((chat_id, text))

    def reply_to(self, message, text, **kwargs):
        self.replies.append(text)


def _settings(**overrides):
    values = dict(
        telegram_token="token",
        chat_id="-100500",
        api_base_url="http://backoffice.test",
        site_url="https://crm.example.org",
        owner_id=OWNER_ID,
        bot_api_key="secret",
    )
    values.update(overrides)
    return Settings(**values)


def _api(orders, *, patched=None, status_code=200):
    """MockTransport serving /api/v1/telegram; PATCH bodies are appended to `patched`."""
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer secret"
        if request.method == "GET":
            return httpx.Response(status_code, json={"orders": orders})
        body = json.loads(request.content)
        if patched is not None:
            patched.append(body["id"])
        return httpx.Response(200, json={"id": body["id"], "is_notified": True})

    return BackofficeClient("http://backoffice.test", "secret", transport=httpx.MockTransport(handler))


def _message(user_id):
    return SimpleNamespace(from_user=SimpleNamespace(id=user_id), chat=SimpleNamespace(id=user_id))


# =============================================================================
# MESSAGES
# =============================================================================


class TestMessages:

    def test_order_message(self):
        text = format_order_message(ORDER, "https://crm.example.org")

        assert text.startswith("🔔 <b>Приближается заявка #7</b>")
        assert "19.10.2026, 14:30" in text
        assert "Гарантийный" in text
        assert "Казань" in text
        assert "Листовка - Не указана" in text
        assert text.endswith("https://crm.example.org/admin/orders/7")

    def test_user_fields_are_escaped(self):
        text = format_order_message(ORDER, "https://crm.example.org")
        assert "&lt;script&gt;" in text
        assert "Течёт &amp; шумит" in text

    @pytest.mark.parametrize("value,expected", [
        ("2026-01-05T08:05:00Z", "05.01.2026, 08:05"),
        ("not a date", "not a date"),
        (None, "не указана"),
    ])
    def test_format_arrive_date(self, value, expected):
        assert format_arrive_date(value) == expected


# =============================================================================
# API CLIENT
# =============================================================================


class TestClient:

    def test_fetch(self):
        with _api([ORDER]) as client:
            assert client.fetch_upcoming_orders() == [ORDER]

    def test_http_error_is_wrapped(self):
        with _api([], status_code=401) as client:
            with pytest.raises(BackofficeApiError) as exc:
                client.fetch_upcoming_orders()
        assert "401" in str(exc.value)

    def test_connection_error_is_wrapped(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = BackofficeClient("http://backoffice.test", "secret", transport=httpx.MockTransport(handler))
        with pytest.raises(BackofficeApiError):
            client.mark_notified(1)


# =============================================================================
# POLLING JOB
# =============================================================================


class TestNotifyUpcoming:

    def test_sends_and_marks_each_order(self):
        patched = []
        bot = RecordingBot()
        second = dict(ORDER, id=8)
        notifier = NotifierBot(_settings(), bot=bot, client=_api([ORDER, second], patched=patched))

        assert notifier.notify_upcoming_orders() == 2
        assert [chat for chat, _ in bot.sent] == ["-100500", "-100500"]
        assert patched == [7, 8]

    def test_one_failure_does_not_stop_the_batch(self):
        patched = []
        bot = RecordingBot(fail_for=["#7"])
        notifier = NotifierBot(_settings(), bot=bot, client=_api([ORDER, dict(ORDER, id=8)], patched=patched))

        assert notifier.notify_upcoming_orders() == 1
        assert patched == [8]

    def test_api_down(self):
        bot = RecordingBot()
        notifier = NotifierBot(_settings(), bot=bot, client=_api([], status_code=500))

        assert notifier.notify_upcoming_orders() == 0
        assert bot.sent == []

    def test_nothing_to_send(self):
        notifier = NotifierBot(_settings(), bot=RecordingBot(), client=_api([]))
        assert notifier.notify_upcoming_orders() == 0


# =============================================================================
# COMMANDS
# =============================================================================


class TestCommands:

    def test_owner_can_announce_downtime(self):
        bot = RecordingBot()
        notifier = NotifierBot(_settings(), bot=bot, client=_api([]))

        notifier.handle_notify(_message(OWNER_ID))

        assert bot.sent == [("-100500", DOWNTIME_NOTICE)]
        assert bot.replies == ["✅ Уведомление отправлено"]

    def test_work_notice(self):
        bot = RecordingBot()
        NotifierBot(_settings(), bot=bot, client=_api([])).handle_work(_message(OWNER_ID))
        assert bot.sent == [("-100500", BACK_ONLINE_NOTICE)]

    def test_callback_goes_to_owner(self):
        bot = RecordingBot()
        NotifierBot(_settings(), bot=bot, client=_api([])).handle_callback(_message(OWNER_ID))
        assert bot.sent[0][0] == OWNER_ID

    @pytest.mark.parametrize("handler", ["handle_notify", "handle_work", "handle_callback"])
    def test_strangers_are_refused(self, handler):
        bot = RecordingBot()
        notifier = NotifierBot(_settings(), bot=bot, client=_api([]))

        getattr(notifier, handler)(_message(1))

        assert bot.sent == []
        assert bot.replies == [NO_RIGHTS_REPLY]

    def test_no_owner_configured(self):
        bot = RecordingBot()
        NotifierBot(_settings(owner_id=None), bot=bot, client=_api([])).handle_notify(_message(OWNER_ID))
        assert bot.replies == [NO_RIGHTS_REPLY]


# =============================================================================
# SETTINGS
# =============================================================================


class TestSettings:

    ENV_KEYS = ("TELEGRAM_TOKEN", "CHAT_ID", "API_BASE_URL", "SITE_URL", "OWNER_ID", "BOT_API_KEY",
                "POLL_INTERVAL_SECONDS")

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for key in self.ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
        yield
        # load_dotenv writes os.environ directly
        for key in self.ENV_KEYS:
            os.environ.pop(key, None)

    def test_reads_dotenv(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TELEGRAM_TOKEN=abc\nOWNER_ID=42\nAPI_BASE_URL=http://api.local/\n")
        monkeypatch.setenv("CHAT_ID", "-1")

        settings = Settings.from_env(dotenv_path=str(env_file))

        assert settings.telegram_token == "abc"
        assert settings.owner_id == 42
        assert settings.chat_id == "-1"
        assert settings.api_base_url == "http://api.local"
        assert settings.poll_interval_seconds == 60

    def test_token_required(self, tmp_path):
        with pytest.raises(RuntimeError):
            Settings.from_env(dotenv_path=str(tmp_path / "missing.env"))
