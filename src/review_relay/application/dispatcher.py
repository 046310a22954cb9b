# src/review_relay/application/dispatcher.py
"""
通知分发器。

每个通知任务只调用一次出站通道，不做自动重试。任何投递失败都被记录后吞下，
不会影响其他接收者，也不会终止所在的 Worker。
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from review_relay_core.exceptions import DeliveryError
from review_relay_core.interfaces import MessageChannel, StreamProducer, SubmissionStore
from review_relay_core.types import DeliveryOutcome, NotificationJob

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """把 NotificationJob 投递给接收者的终端环节。"""

    def __init__(
        self,
        channel: MessageChannel,
        store: SubmissionStore | None = None,
        stream_producer: StreamProducer | None = None,
        event_stream_name: str = "relay_events",
        track_notified_at: bool = True,
    ):
        self._channel = channel
        self._store = store
        self._stream_producer = stream_producer
        self._event_stream_name = event_stream_name
        self._track_notified_at = track_notified_at and store is not None

    async def dispatch(self, job: NotificationJob) -> DeliveryOutcome:
        """投递一个通知任务。永远不会抛出投递相关的异常。"""
        log = logger.bind(
            recipient=job.recipient, submission_id=job.source_submission_id
        )
        try:
            await self._channel.send(job.recipient, job.body)
        except asyncio.CancelledError:
            raise
        except DeliveryError as e:
            log.warning("通知投递失败。", error=str(e), error_code=e.error_code)
            outcome = DeliveryOutcome(job=job, delivered=False, error=str(e))
        except Exception as e:
            log.error("通知投递时发生未知错误。", error=str(e), exc_info=True)
            outcome = DeliveryOutcome(job=job, delivered=False, error=str(e))
        else:
            log.info("通知已投递。", status=job.status.value)
            outcome = DeliveryOutcome(job=job, delivered=True)

        await self._mark_notified(job)
        await self._publish_audit(outcome)
        return outcome

    async def _mark_notified(self, job: NotificationJob) -> None:
        if not self._track_notified_at:
            return
        try:
            await self._store.mark_notified(
                job.source_submission_id, datetime.now(timezone.utc)
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "写入 notifiedAt 标记失败。",
                submission_id=job.source_submission_id,
                error=str(e),
            )

    async def _publish_audit(self, outcome: DeliveryOutcome) -> None:
        if self._stream_producer is None:
            return
        job = outcome.job
        event = {
            "type": (
                "notification.delivered" if outcome.delivered else "notification.failed"
            ),
            "submission_id": job.source_submission_id,
            "recipient": job.recipient,
            "status": job.status.value,
            "error": outcome.error,
        }
        try:
            await self._stream_producer.publish(self._event_stream_name, event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "审计事件发布失败。", stream=self._event_stream_name, error=str(e)
            )
