# backend/notifier/config.py
from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    telegram_token: str
    chat_id: str
    api_base_url: str
    site_url: str
    owner_id: int | None
    bot_api_key: str
    poll_interval_seconds: int = 60

    @classmethod
    def from_env(cls, *, dotenv_path: str | None = None) -> "Settings":
        """
        Read settings from the environment, loading a .env file first.

        Variables already set in the environment win over the .env file.
        """
        load_dotenv(dotenv_path)

        token = os.environ.get("TELEGRAM_TOKEN", "")
        if not token:
            raise RuntimeError("TELEGRAM_TOKEN is not set")

        owner = os.environ.get("OWNER_ID", "").strip()
        return cls(
            telegram_token=token,
            chat_id=os.environ.get("CHAT_ID", ""),
            api_base_url=os.environ.get("API_BASE_URL", "http://localhost:5000").rstrip("/"),
            site_url=os.environ.get("SITE_URL", "http://localhost:3000").rstrip("/"),
            owner_id=int(owner) if owner else None,
            bot_api_key=os.environ.get("BOT_API_KEY", ""),
            poll_interval_seconds=int(os.environ.get("POLL_INTERVAL_SECONDS", "60")),
        )
