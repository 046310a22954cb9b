# src/review_relay/workers/_relay_worker.py
"""
通知中继 Worker。

把变更流、分类器和分发器串成一条流水线：
变更流逐条产出事件，分类器同步判定，通知任务放入有界队列，
由若干个分发协程并发投递，慢投递不会阻塞变更流。
"""

from __future__ import annotations

import asyncio
import signal
from typing import Any

import redis.asyncio as aioredis
import structlog

from review_relay.application.change_feed import ChangeFeedAdapter
from review_relay.application.classifier import classify_change
from review_relay.application.dispatcher import NotificationDispatcher
from review_relay.config import RelayConfig
from review_relay.infrastructure.redis._client import close_redis_client
from review_relay_core.interfaces import MessageChannel
from review_relay_core.types import NotificationJob

logger = structlog.get_logger(__name__)


class RelayWorker:
    """
    负责运行通知流水线的 Worker 类。
    所有依赖项通过构造函数注入。
    """

    def __init__(
        self,
        config: RelayConfig,
        feed: ChangeFeedAdapter,
        dispatcher: NotificationDispatcher,
        channel: MessageChannel,
        redis_client: aioredis.Redis | None = None,
    ):
        self._config = config
        self._feed = feed
        self._dispatcher = dispatcher
        self._channel = channel
        self._redis_client = redis_client
        self.events_seen = 0
        self.jobs_enqueued = 0

    async def _consume_feed(
        self, queue: asyncio.Queue[NotificationJob], shutdown_event: asyncio.Event
    ) -> None:
        async for event in self._feed.events(shutdown_event):
            self.events_seen += 1
            try:
                job = classify_change(event)
            except Exception as e:
                logger.error(
                    "分类变更事件时发生未知错误，已跳过。",
                    submission_id=event.submission.id,
                    error=e,
                    exc_info=True,
                )
                continue
            if job is None:
                continue
            self.jobs_enqueued += 1
            logger.debug(
                "通知任务已入队。",
                submission_id=job.source_submission_id,
                queue_size=queue.qsize(),
            )
            await queue.put(job)

    async def _dispatch_jobs(self, queue: asyncio.Queue[NotificationJob]) -> None:
        while True:
            job = await queue.get()
            try:
                await self._dispatcher.dispatch(job)
            except Exception as e:
                logger.error("分发通知时发生未知错误。", error=e, exc_info=True)
            finally:
                queue.task_done()

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """
        运行流水线直到 `shutdown_event` 被设置。

        停机时取消变更流消费和所有分发协程，尚未完成的投递会被放弃。
        """
        queue: asyncio.Queue[NotificationJob] = asyncio.Queue(
            maxsize=self._config.relay.queue_maxsize
        )
        dispatchers = [
            asyncio.create_task(self._dispatch_jobs(queue), name=f"dispatcher-{i}")
            for i in range(self._config.relay.max_concurrency)
        ]
        feed_task = asyncio.create_task(
            self._consume_feed(queue, shutdown_event), name="change-feed"
        )
        shutdown_task = asyncio.create_task(shutdown_event.wait())

        try:
            await asyncio.wait(
                {feed_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            tasks = [feed_task, shutdown_task, *dispatchers]
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if queue.qsize():
                logger.warning("停机时仍有未投递的通知任务被放弃。", count=queue.qsize())

        if not feed_task.cancelled() and feed_task.exception() is not None:
            raise feed_task.exception()

    async def run_loop(self, shutdown_event: asyncio.Event) -> None:
        """Worker 的主循环，负责信号处理和资源释放。"""

        def _signal_handler(*args: Any) -> None:
            logger.warning("收到停机信号，正在准备优雅关闭 (RelayWorker)...")
            shutdown_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

        logger.info("通知中继 Worker 已启动。")
        try:
            await self.run(shutdown_event)
        except asyncio.CancelledError:
            logger.info("通知中继 Worker 循环被取消。")
        finally:
            logger.info(
                "通知中继 Worker 正在关闭...",
                events_seen=self.events_seen,
                jobs_enqueued=self.jobs_enqueued,
                reconnects=self._feed.reconnect_count,
            )
            await self._channel.close()
            await close_redis_client(self._redis_client)
            logger.info("通知中继 Worker 已安全关闭。")
