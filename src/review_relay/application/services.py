# src/review_relay/application/services.py
"""
提交入口与审核操作的应用服务。

这两条路径位于通知流水线之外：入口服务写入 `pending` 记录，
审核服务执行版主的一次性状态迁移；两者产生的变更都会经由订阅进入流水线。
"""

from __future__ import annotations

import re

import structlog

from review_relay_core.exceptions import InvalidSubmissionError, InvalidTransitionError
from review_relay_core.interfaces import SubmissionStore
from review_relay_core.types import TERMINAL_STATUSES, Submission, SubmissionStatus

logger = structlog.get_logger(__name__)

ACK_TEMPLATE = (
    "✅ Your submission for ({content}) has been received and is awaiting review."
)


class SubmissionIntakeService:
    """校验并写入用户提交的内容。"""

    def __init__(self, store: SubmissionStore, content_pattern: str):
        self._store = store
        self._pattern = re.compile(content_pattern)

    def validate(self, content: str) -> str:
        """返回规范化后的内容，不合法时抛出 `InvalidSubmissionError`。"""
        text = content.strip()
        if not text or text.startswith("/"):
            raise InvalidSubmissionError("提交内容为空或是一条命令。")
        if not self._pattern.fullmatch(text):
            raise InvalidSubmissionError(f"提交内容格式不合法: {text!r}")
        return text

    async def submit(self, content: str, submitted_by: str) -> Submission:
        text = self.validate(content)
        submission = await self._store.add(text, submitted_by)
        logger.info(
            "已接收新的提交。",
            submission_id=submission.id,
            submitted_by=submitted_by,
        )
        return submission

    @staticmethod
    def acknowledgement(submission: Submission) -> str:
        return ACK_TEMPLATE.format(content=submission.content)


class SubmissionReviewService:
    """版主审核操作：把一条 `pending` 记录迁移到终态，且只能迁移一次。"""

    def __init__(self, store: SubmissionStore):
        self._store = store

    async def review(
        self, submission_id: str, status: SubmissionStatus
    ) -> Submission:
        if status not in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"审核结果只能是终态，收到: {status.value}")

        # 并发审核时只有一个能成功，其余收到 InvalidTransitionError
        submission = await self._store.transition(
            submission_id, SubmissionStatus.PENDING, status
        )
        logger.info(
            "提交记录已审核。", submission_id=submission_id, status=status.value
        )
        return submission
