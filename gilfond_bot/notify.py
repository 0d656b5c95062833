"""Send bot messages to Telegram, or to the log when no bot is configured."""
from __future__ import annotations

import asyncio
import logging

from telegram import Bot

logger = logging.getLogger(__name__)

REQUESTS_URL = "https://mail.gilfondrt.ru/private/requests.php"
# Telegram rejects longer messages
MAX_MESSAGE_LENGTH = 4096


def added_flat_message(row) -> str:
    rooms = row.rooms if row.rooms is not None else "?"
    text = f"Flat {row.number} added (floor {row.floor}, {rooms} room(s))"
    if row.url:
        text += f"\n{row.url}"
    return f"{text}\nCheck priorities: {REQUESTS_URL}"


def failure_message(error: BaseException, trace: str) -> str:
    head = f"Run failed: {type(error).__name__}: {error}\n\n"
    room = MAX_MESSAGE_LENGTH - len(head)
    if room <= 0:
        return head[:MAX_MESSAGE_LENGTH]
    # keep the end of the traceback, that is where the failing frame is
    if len(trace) > room:
        trace = "..." + trace[-(room - 3):]
    return head + trace


class LogNotifier:
    def notify(self, message: str) -> bool:
        logger.info("Notification: %s", message)
        return True


class TelegramNotifier:
    def __init__(self, token: str, chat_id: str):
        self.token = token
        self.chat_id = chat_id

    def notify(self, message: str) -> bool:
        """Sync wrapper around the async Bot; failures are logged, not raised."""
        try:
            return asyncio.run(self._send(message[:MAX_MESSAGE_LENGTH]))
        except Exception as e:
            logger.error("Telegram send failed: %s", e)
            return False

    async def _send(self, text: str) -> bool:
        bot = Bot(token=self.token)
        await bot.send_message(chat_id=self.chat_id, text=text)
        logger.info("Sent to Telegram: %s", text.splitlines()[0][:60])
        return True


def build_notifier(settings):
    if settings.telegram_token and settings.telegram_chat_id:
        return TelegramNotifier(settings.telegram_token, settings.telegram_chat_id)
    logger.warning("GF_TG_TOKEN or GF_TG_CHAT_ID missing; notifications go to the log")
    return LogNotifier()
