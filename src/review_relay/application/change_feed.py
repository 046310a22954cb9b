# src/review_relay/application/change_feed.py
"""
变更流适配器。

持有对文档库 `status != pending` 的唯一持续订阅，并把订阅推送的变更
作为一个不间断的异步事件流交给下游。订阅终止后按指数退避重新建立；
重新建立时文档库会重放全部匹配文档（`added`），下游的分类器负责去重。
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import structlog

from review_relay.config import ReconnectPolicySettings
from review_relay_core.exceptions import SubscriptionLostError
from review_relay_core.interfaces import SubmissionStore
from review_relay_core.types import ChangeEvent

logger = structlog.get_logger(__name__)


class ChangeFeedAdapter:
    """
    把文档库订阅包装成带显式重连边界的异步事件流。
    """

    def __init__(self, store: SubmissionStore, policy: ReconnectPolicySettings):
        self._store = store
        self._policy = policy
        self.reconnect_count = 0

    async def events(self, shutdown_event: asyncio.Event) -> AsyncIterator[ChangeEvent]:
        """
        持续产出变更事件，直到 `shutdown_event` 被设置。

        连续重连失败次数超过 `max_attempts`（非 0 时）后，
        `SubscriptionLostError` 会向上抛出。
        """
        backoff = self._policy.initial_backoff
        failures = 0

        while not shutdown_event.is_set():
            if self.reconnect_count or failures:
                logger.info("正在重新建立订阅...", attempt=failures)
            else:
                logger.info("正在建立对终态提交记录的订阅...")

            try:
                async for event in self._store.subscribe_terminal():
                    backoff = self._policy.initial_backoff
                    failures = 0
                    yield event
                    if shutdown_event.is_set():
                        return
                logger.warning("订阅流意外结束。")
                error: Exception | None = None
            except SubscriptionLostError as e:
                logger.warning("订阅已断开。", error=str(e))
                error = e

            if shutdown_event.is_set():
                return

            failures += 1
            self.reconnect_count += 1
            if self._policy.max_attempts and failures > self._policy.max_attempts:
                logger.error(
                    "连续重连次数已达上限，放弃订阅。",
                    max_attempts=self._policy.max_attempts,
                )
                raise SubscriptionLostError(
                    f"连续 {failures} 次重连失败"
                ) from error

            logger.info("等待后重连。", backoff=backoff)
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=backoff)
            except asyncio.TimeoutError:
                pass
            backoff = min(backoff * 2, self._policy.max_backoff)
