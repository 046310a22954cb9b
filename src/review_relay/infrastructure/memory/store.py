# src/review_relay/infrastructure/memory/store.py
"""
内存文档库实现，用于开发和测试环境，或未配置 Firestore 时的备用方案。

订阅语义与 Firestore 的持续查询保持一致：订阅建立时先以 `added` 重放
全部终态文档，之后按写入顺序推送 `modified` / `removed`。
`disconnect()` 会终止所有活跃订阅，用于模拟网络中断。
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from datetime import datetime, timezone

from review_relay_core.exceptions import (
    InvalidTransitionError,
    SubmissionNotFoundError,
    SubscriptionLostError,
)
from review_relay_core.types import ChangeEvent, ChangeType, Submission, SubmissionStatus

_DISCONNECTED = object()


class InMemorySubmissionStore:
    """基于内存字典的提交记录存储。"""

    def __init__(self) -> None:
        self._docs: dict[str, Submission] = {}
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def add(self, content: str, submitted_by: str) -> Submission:
        submission = Submission(
            id=uuid.uuid4().hex,
            content=content,
            submitted_by=submitted_by,
            status=SubmissionStatus.PENDING,
            submitted_at=datetime.now(timezone.utc),
        )
        self.put(submission)
        return submission

    async def get(self, submission_id: str) -> Submission | None:
        return self._docs.get(submission_id)

    async def transition(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        to: SubmissionStatus,
    ) -> Submission:
        return self._update(submission_id, expected=expected, status=to.value)

    async def mark_notified(self, submission_id: str, at: datetime) -> None:
        self._update(submission_id, notified_at=at)

    async def delete(self, submission_id: str) -> None:
        before = self._docs.pop(submission_id, None)
        if before is None:
            raise SubmissionNotFoundError(submission_id)
        if before.is_terminal:
            self._broadcast(ChangeEvent(change_type=ChangeType.REMOVED, submission=before))

    def put(self, submission: Submission) -> None:
        """直接写入（或覆盖）一条文档，并按查询语义推送变更。"""
        before = self._docs.get(submission.id)
        self._docs[submission.id] = submission
        self._emit(before, submission)

    def disconnect(self) -> None:
        """终止所有活跃订阅。"""
        for queue in list(self._subscribers):
            queue.put_nowait(_DISCONNECTED)

    async def subscribe_terminal(self) -> AsyncIterator[ChangeEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        for doc in list(self._docs.values()):
            if doc.is_terminal:
                queue.put_nowait(ChangeEvent(change_type=ChangeType.ADDED, submission=doc))
        self._subscribers.add(queue)
        try:
            while True:
                item = await queue.get()
                if item is _DISCONNECTED:
                    raise SubscriptionLostError("内存文档库订阅已断开")
                yield item
        finally:
            self._subscribers.discard(queue)

    def _update(
        self,
        submission_id: str,
        expected: SubmissionStatus | None = None,
        **changes: object,
    ) -> Submission:
        # 同步执行，检查与写入之间不会切换协程
        before = self._docs.get(submission_id)
        if before is None:
            raise SubmissionNotFoundError(submission_id)
        if expected is not None and before.status != expected.value:
            raise InvalidTransitionError(
                f"提交记录 {submission_id} 当前为 {before.status}，而不是 {expected.value}。"
            )
        after = before.model_copy(update=changes)
        self.put(after)
        return after

    def _emit(self, before: Submission | None, after: Submission) -> None:
        # 文档级语义：已存在的文档被修改后仍在查询结果集中，即为 modified
        if not after.is_terminal:
            if before is not None and before.is_terminal:
                self._broadcast(ChangeEvent(change_type=ChangeType.REMOVED, submission=after))
            return
        change_type = ChangeType.ADDED if before is None else ChangeType.MODIFIED
        self._broadcast(ChangeEvent(change_type=change_type, submission=after))

    def _broadcast(self, event: ChangeEvent) -> None:
        for queue in self._subscribers:
            queue.put_nowait(event)
