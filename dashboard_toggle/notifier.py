from __future__ import annotations

import httpx
import structlog

from dashboard_toggle.errors import DeliveryError
from dashboard_toggle.settings import BotSettings


logger = structlog.get_logger(__name__)


class SlackNotifier:
    """Posts plain-text replies through Slack's chat.postMessage."""

    def __init__(self, client: httpx.AsyncClient, settings: BotSettings):
        self.client = client
        self.settings = settings

    def _redact(self, s: str) -> str:
        token = self.settings.bot_token
        return s.replace(token, "<redacted>") if token else s

    async def send(self, channel: str, text: str) -> None:
        url = f"{self.settings.slack_api_base_url}/chat.postMessage"
        try:
            resp = await self.client.post(
                url,
                headers={"Authorization": f"Bearer {self.settings.bot_token}"},
                json={"channel": channel, "text": text},
                timeout=self.settings.chat_timeout_seconds,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            raise DeliveryError(self._redact(f"{type(exc).__name__}: {exc}")) from exc

        if not isinstance(data, dict) or not data.get("ok"):
            err = data.get("error") if isinstance(data, dict) else None
            raise DeliveryError(f"slack_api_error: {err or 'unknown'}")
        logger.info("Chat message sent", channel=channel, ts=data.get("ts"))
