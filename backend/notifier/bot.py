# backend/notifier/bot.py
"""
Notification bot process.

Every POLL_INTERVAL_SECONDS the bot asks the back office for service orders
arriving soon, posts one message per order to the admin chat, and marks each
order as notified. A failure on one order is logged and the batch goes on;
an API failure ends the run until the next tick.

Owner-only commands:
    /notify    planned-downtime notice to the admin chat
    /work      site back online notice to the admin chat
    /callback  "alive" message to the owner
"""

from __future__ import annotations

import logging

import requests
import telebot
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .api_client import BackofficeApiError, BackofficeClient
from .config import Settings
from .messages import (
    ALIVE_NOTICE,
    BACK_ONLINE_NOTICE,
    DOWNTIME_NOTICE,
    NO_RIGHTS_REPLY,
    format_order_message,
)


logger = logging.getLogger("notifier")

SEND_ERRORS = (telebot.apihelper.ApiException, requests.RequestException)


class NotifierBot:
    def __init__(
        self,
        settings: Settings,
        *,
        bot: telebot.TeleBot | None = None,
        client: BackofficeClient | None = None,
    ):
        self.settings = settings
        self.bot = bot or telebot.TeleBot(settings.telegram_token, parse_mode="HTML")
        self.client = client or BackofficeClient(settings.api_base_url, settings.bot_api_key)
        self.scheduler = BackgroundScheduler()

    # ------------------------------------------------------------------
    # Polling job
    # ------------------------------------------------------------------
    def notify_upcoming_orders(self) -> int:
        """Returns how many orders were pushed and marked notified."""
        logger.info("⏰ Checking upcoming orders...")
        try:
            orders = self.client.fetch_upcoming_orders()
        except BackofficeApiError:
            logger.exception("🔥 Could not fetch upcoming orders")
            return 0

        if not orders:
            logger.info("🔕 No orders to notify about")
            return 0

        sent = 0
        for order in orders:
            order_id = order.get("id")
            try:
                self.bot.send_message(
                    self.settings.chat_id,
                    format_order_message(order, self.settings.site_url),
                    parse_mode="HTML",
                    disable_web_page_preview=True,
                )
                logger.info("📨 Sent notification for order #%s", order_id)
                self.client.mark_notified(order_id)
                logger.info("✅ Order #%s marked as notified", order_id)
                sent += 1
            except (BackofficeApiError, *SEND_ERRORS):
                logger.exception("❌ Failed to notify about order #%s", order_id)

        logger.info("🎉 Notification run finished: %s/%s sent", sent, len(orders))
        return sent

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _is_owner(self, message) -> bool:
        owner_id = self.settings.owner_id
        return owner_id is not None and message.from_user is not None and message.from_user.id == owner_id

    def handle_notify(self, message) -> None:
        if not self._is_owner(message):
            self.bot.reply_to(message, NO_RIGHTS_REPLY)
            return
        self.bot.send_message(self.settings.chat_id, DOWNTIME_NOTICE, parse_mode="HTML")
        self.bot.reply_to(message, "✅ Уведомление отправлено")

    def handle_work(self, message) -> None:
        if not self._is_owner(message):
            self.bot.reply_to(message, NO_RIGHTS_REPLY)
            return
        self.bot.send_message(self.settings.chat_id, BACK_ONLINE_NOTICE, parse_mode="HTML")
        self.bot.reply_to(message, "✅ Сообщение отправлено")

    def handle_callback(self, message) -> None:
        if not self._is_owner(message):
            self.bot.reply_to(message, NO_RIGHTS_REPLY)
            return
        self.bot.send_message(self.settings.owner_id, ALIVE_NOTICE, parse_mode="HTML")

    def register_handlers(self) -> None:
        self.bot.message_handler(commands=["notify"])(self.handle_notify)
        self.bot.message_handler(commands=["work"])(self.handle_work)
        self.bot.message_handler(commands=["callback"])(self.handle_callback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_scheduler(self) -> None:
        self.scheduler.add_job(
            func=self.notify_upcoming_orders,
            trigger=IntervalTrigger(seconds=self.settings.poll_interval_seconds),
            id="notify_upcoming_orders",
            name="Notify upcoming orders",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info("🕒 Polling every %s seconds", self.settings.poll_interval_seconds)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.client.close()

    def run(self) -> None:
        self.register_handlers()
        self.start_scheduler()
        logger.info("🤖 Bot started")
        try:
            self.bot.infinity_polling(timeout=10, long_polling_timeout=5)
        finally:
            self.stop()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    NotifierBot(Settings.from_env()).run()
