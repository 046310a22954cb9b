# src/review_relay/infrastructure/channels/telegram.py
"""
通过 Telegram Bot HTTP API 实现 `MessageChannel` 接口。
"""

from __future__ import annotations

import httpx
import structlog

from review_relay.config import TelegramSettings
from review_relay_core.exceptions import ConfigurationError, DeliveryError

logger = structlog.get_logger(__name__)


class TelegramMessageChannel:
    """
    使用 `sendMessage` 方法投递文本消息。

    Telegram 以 `{"ok": false, "error_code": ..., "description": ...}` 报告失败，
    例如用户屏蔽了 Bot（403）或 chat_id 无效（400），这些都会转换为 `DeliveryError`。
    """

    def __init__(
        self,
        settings: TelegramSettings,
        client: httpx.AsyncClient | None = None,
    ):
        if not settings.bot_token:
            raise ConfigurationError("Telegram Bot Token 未配置")
        self._url = f"{settings.api_base.rstrip('/')}/bot{settings.bot_token}/sendMessage"
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)

    async def send(self, recipient: str, text: str) -> None:
        try:
            response = await self._client.post(
                self._url, json={"chat_id": recipient, "text": text}
            )
        except httpx.HTTPError as e:
            raise DeliveryError(recipient, f"请求 Telegram API 失败: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        if response.is_success and payload.get("ok"):
            logger.debug("Telegram 消息已发送。", recipient=recipient)
            return

        description = payload.get("description") or response.reason_phrase
        raise DeliveryError(
            recipient,
            f"Telegram 拒绝投递: {description}",
            error_code=payload.get("error_code", response.status_code),
        )

    async def close(self) -> None:
        await self._client.aclose()
