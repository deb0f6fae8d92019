"""Telegram Bot API notifier."""

import logging

import httpx

from signalforge.config import Config

logger = logging.getLogger("signalforge")


class TelegramNotifier:
    """Sends Markdown messages to one chat.

    A notifier without a token or chat id does nothing.  Delivery failures
    are logged and reported as ``False``; they never raise.
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
    ) -> None:
        self._token = token
        self._chat_id = chat_id
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> "TelegramNotifier":
        return cls(config.telegram_token, config.telegram_chat_id)

    @property
    def enabled(self) -> bool:
        return bool(self._token and self._chat_id)

    async def send(self, text: str) -> bool:
        if not self.enabled:
            logger.debug("Telegram not configured — message dropped")
            return False

        url = f"{self._base_url}/bot{self._token}/sendMessage"
        payload = {"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"}
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(url, json=payload, timeout=self._timeout)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Telegram send failed: %s", exc)
            return False

        logger.info("Telegram notification sent")
        return True
