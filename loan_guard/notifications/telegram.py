"""Telegram delivery: one bot for alerts, a second (usually muted) for cycle logs."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
_MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """Post guard messages to a Telegram chat."""

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram bot token or chat id missing; message dropped")
            return False

        if len(text) > _MAX_MESSAGE_LENGTH:
            text = text[: _MAX_MESSAGE_LENGTH - 3] + "..."

        payload = {
            "chat_id": self.chat_id,
            "text": text,
            "disable_notification": silent,
            "disable_web_page_preview": True,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    _API_URL.format(token=bot_token), json=payload
                ) as response:
                    if response.status != 200:
                        logger.error("Telegram rejected message: HTTP %s", response.status)
                        return False
        except aiohttp.ClientError as e:
            logger.error("Telegram unreachable: %s", e)
            return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        text = f"{subject}\n\n{message}" if subject else message
        delivered = await self._post(self.alert_bot_token, text, silent=False)
        if delivered:
            logger.info("Telegram alert delivered")
        return delivered

    async def send_log(self, message: str, silent: bool = True) -> bool:
        delivered = await self._post(self.log_bot_token, message, silent=silent)
        if delivered:
            logger.debug("Telegram log delivered")
        return delivered
