# src/review_relay/infrastructure/firestore/store.py
"""
使用 Cloud Firestore 实现 `SubmissionStore` 接口。

持续订阅基于 `Query.on_snapshot`。Firestore SDK 在后台线程中回调，
这里通过 `loop.call_soon_threadsafe` 把每个快照批次送回事件循环。

查询语义注意：文档从 `pending` 迁移到终态时，是“进入” `status != pending`
的结果集，Firestore 会把它报告为 ADDED。因此每次订阅的首个快照按
`added`（重放）上报，之后的 ADDED 按 `modified`（实时迁移）上报。
"""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import structlog
from google.api_core.exceptions import NotFound
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account
from pydantic import ValidationError

from review_relay.config import FirestoreSettings
from review_relay_core.exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    SubmissionNotFoundError,
    SubscriptionLostError,
)
from review_relay_core.types import ChangeEvent, ChangeType, Submission, SubmissionStatus

logger = structlog.get_logger(__name__)

_CHANGE_TYPES = {
    "ADDED": ChangeType.ADDED,
    "MODIFIED": ChangeType.MODIFIED,
    "REMOVED": ChangeType.REMOVED,
}


def create_firestore_client(settings: FirestoreSettings) -> firestore.Client:
    """根据配置创建 Firestore 客户端；未提供密钥时使用应用默认凭据。"""
    credentials = None
    try:
        if settings.credentials_json:
            credentials = service_account.Credentials.from_service_account_info(
                json.loads(settings.credentials_json)
            )
        elif settings.credentials_file:
            credentials = service_account.Credentials.from_service_account_file(
                settings.credentials_file
            )
    except (ValueError, OSError) as e:
        raise ConfigurationError(f"无法加载 Firestore 服务账号密钥: {e}") from e

    project = settings.project_id or getattr(credentials, "project_id", None)
    return firestore.Client(project=project, credentials=credentials)


def to_change_event(
    change: Any, *, is_replay: bool
) -> ChangeEvent | None:
    """把一条 Firestore DocumentChange 转换为 ChangeEvent；无法解析时返回 None。"""
    change_type = _CHANGE_TYPES.get(change.type.name)
    if change_type is None:
        logger.warning("未知的 Firestore 变更类型。", change_type=change.type.name)
        return None
    if change_type is ChangeType.ADDED and not is_replay:
        change_type = ChangeType.MODIFIED

    document = change.document
    try:
        submission = Submission.from_document(document.id, document.to_dict() or {})
    except ValidationError as e:
        logger.warning(
            "无法解析提交记录文档，已跳过。",
            document_id=document.id,
            error=str(e),
        )
        return None
    return ChangeEvent(change_type=change_type, submission=submission)


class FirestoreSubmissionStore:
    """基于 Firestore 集合的提交记录存储。"""

    def __init__(self, client: firestore.Client, settings: FirestoreSettings):
        self._client = client
        self._collection = client.collection(settings.collection)
        self._liveness_interval = settings.liveness_interval

    async def add(self, content: str, submitted_by: str) -> Submission:
        data = {
            "gmailAddress": content,
            "submittedBy": submitted_by,
            "status": SubmissionStatus.PENDING.value,
            "submissionDate": datetime.now(timezone.utc),
        }
        _, doc_ref = await asyncio.to_thread(self._collection.add, data)
        return Submission.from_document(doc_ref.id, data)

    async def get(self, submission_id: str) -> Submission | None:
        snapshot = await asyncio.to_thread(
            self._collection.document(submission_id).get
        )
        if not snapshot.exists:
            return None
        return Submission.from_document(snapshot.id, snapshot.to_dict() or {})

    async def transition(
        self,
        submission_id: str,
        expected: SubmissionStatus,
        to: SubmissionStatus,
    ) -> Submission:
        doc_ref = self._collection.document(submission_id)

        @firestore.transactional
        def _compare_and_set(transaction: Any) -> Submission:
            # 事务内读取；提交时若文档已被他人修改，SDK 会重跑本函数
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise SubmissionNotFoundError(submission_id)
            current = Submission.from_document(snapshot.id, snapshot.to_dict() or {})
            if current.status != expected.value:
                raise InvalidTransitionError(
                    f"提交记录 {submission_id} 当前为 {current.status}，而不是 {expected.value}。"
                )
            transaction.update(doc_ref, {"status": to.value})
            return current.model_copy(update={"status": to.value})

        return await asyncio.to_thread(_compare_and_set, self._client.transaction())

    async def mark_notified(self, submission_id: str, at: datetime) -> None:
        await self._update(submission_id, {"notifiedAt": at})

    async def delete(self, submission_id: str) -> None:
        doc_ref = self._collection.document(submission_id)
        try:
            await asyncio.to_thread(
                doc_ref.delete, option=self._client.write_option(exists=True)
            )
        except NotFound as e:
            raise SubmissionNotFoundError(submission_id) from e

    async def _update(self, submission_id: str, fields: dict[str, Any]) -> None:
        doc_ref = self._collection.document(submission_id)
        try:
            await asyncio.to_thread(doc_ref.update, fields)
        except NotFound as e:
            raise SubmissionNotFoundError(submission_id) from e

    def terminal_query(self) -> Any:
        return self._collection.where(
            filter=FieldFilter("status", "!=", SubmissionStatus.PENDING.value)
        )

    async def subscribe_terminal(self) -> AsyncIterator[ChangeEvent]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[list[ChangeEvent]] = asyncio.Queue()
        lock = threading.Lock()
        state = {"first_snapshot": True}

        def _on_snapshot(_docs: Any, changes: Any, read_time: Any) -> None:
            with lock:
                is_replay = state["first_snapshot"]
                state["first_snapshot"] = False
            events = [
                event
                for event in (to_change_event(c, is_replay=is_replay) for c in changes)
                if event is not None
            ]
            if events:
                loop.call_soon_threadsafe(queue.put_nowait, events)

        watch = self.terminal_query().on_snapshot(_on_snapshot)
        logger.info("Firestore 订阅已建立。", collection=self._collection.id)
        try:
            while True:
                try:
                    batch = await asyncio.wait_for(
                        queue.get(), timeout=self._liveness_interval
                    )
                except asyncio.TimeoutError:
                    if not watch.is_active:
                        raise SubscriptionLostError("Firestore 订阅已终止")
                    continue
                for event in batch:
                    yield event
        finally:
            watch.unsubscribe()
