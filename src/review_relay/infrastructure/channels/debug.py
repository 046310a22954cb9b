# src/review_relay/infrastructure/channels/debug.py
"""
提供一个用于开发和测试的调试消息通道：只记录日志，不真正发送。
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


class DebugMessageChannel:
    """把每条消息记录到日志和 `sent` 列表中。"""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, recipient: str, text: str) -> None:
        self.sent.append((recipient, text))
        logger.info("[debug] 模拟发送消息。", recipient=recipient, text=text)

    async def close(self) -> None:
        pass
