# src/review_relay_core/interfaces.py
"""
定义了 Review Relay 系统中所有外部协作方的抽象接口协议 (Protocols)。
应用层只依赖这些接口，具体实现（Firestore、Telegram、Redis 或内存替身）
由 DI 容器在启动时装配。
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Protocol

from .types import ChangeEvent, Submission, SubmissionStatus


class SubmissionStore(Protocol):
    """定义了提交记录文档库的接口。"""

    async def add(self, content: str, submitted_by: str) -> Submission:
        """写入一条新的 `pending` 提交记录并返回。"""
        ...

    async def get(self, submission_id: str) -> Submission | None:
        """按 ID 读取提交记录，不存在时返回 None。"""
        ...

    async def transition(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        to: SubmissionStatus,
    ) -> Submission:
        """
        仅当当前状态为 `expected` 时把状态改为 `to`，读取、比较与写入是一次原子操作。

        返回更新后的提交记录。记录不存在时抛出 `SubmissionNotFoundError`，
        当前状态不符时抛出 `InvalidTransitionError`。
        """
        ...

    async def mark_notified(self, submission_id: str, at: datetime) -> None:
        """为提交记录写入 `notifiedAt` 标记。"""
        ...

    async def delete(self, submission_id: str) -> None:
        """删除一条提交记录，不存在时抛出 `SubmissionNotFoundError`。"""
        ...

    def subscribe_terminal(self) -> AsyncIterator[ChangeEvent]:
        """
        建立对 `status != pending` 文档的持续订阅。

        订阅建立时，当前所有匹配文档会以 `added` 事件重放一遍；
        之后按文档顺序推送变更。订阅终止时抛出 `SubscriptionLostError`。
        """
        ...


class MessageChannel(Protocol):
    """定义了出站消息通道的接口。"""

    async def send(self, recipient: str, text: str) -> None:
        """向接收者投递一条文本消息，失败时抛出 `DeliveryError`。"""
        ...

    async def close(self) -> None:
        """释放通道持有的连接等资源。"""
        ...


class StreamProducer(Protocol):
    """定义了事件流生产者的接口。"""

    async def publish(self, stream_name: str, event_data: dict[str, Any]) -> None:
        """向指定的事件流发布一条事件。"""
        ...
