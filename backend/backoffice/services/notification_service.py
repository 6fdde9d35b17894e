# Overview: Outbound chat notifications sent from the web process.

"""
Chat notifications

The web process only pushes one kind of message itself: the payment proof
of a leaflet order, sent to the admin chat. Upcoming service orders are
pushed by the separate notifier bot, which polls /api/v1/telegram.

Sending is best-effort. A failed send is logged and swallowed by the caller
so that the database change it reports on is not rolled back.
"""

from __future__ import annotations

import requests
import telebot
from flask import current_app


class NotificationError(Exception):
    """Raised when a chat message could not be delivered."""


def _bot() -> telebot.TeleBot | None:
    token = current_app.config.get("TELEGRAM_TOKEN")
    if not token:
        return None
    return telebot.TeleBot(token, parse_mode="HTML")


def send_admin_photo(path: str, caption: str) -> bool:
    """Returns False when notifications are not configured."""
    bot = _bot()
    chat_id = current_app.config.get("TELEGRAM_CHAT_ID")
    if bot is None or not chat_id:
        current_app.logger.info("Chat notifications disabled; skipped photo %s", path)
        return False
    try:
        with open(path, "rb") as fh:
            bot.send_photo(chat_id, fh, caption=caption)
    except (OSError, telebot.apihelper.ApiException, requests.RequestException) as exc:
        raise NotificationError(str(exc)) from exc
    return True
