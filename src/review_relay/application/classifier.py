# src/review_relay/application/classifier.py
"""
变更分类器。

判断一条变更事件是否代表一次值得通知的 `pending → 终态` 迁移。
分类器是纯函数，不持有任何状态，因此对重复投递的事件天然幂等。

判定规则：
- `added`   ：永不通知。重连后订阅会把所有终态文档以 `added` 重放一遍。
- `removed` ：永不通知。删除事件直接丢弃。
- `modified`：当前状态为 approved / rejected 且尚未打上 `notifiedAt` 标记时通知。

已知缺口：变更流在退避等待、尚未重新订阅的窗口内发生的迁移，重连后只会以
`added` 重放，因此不会被通知，即使该记录还没有 `notifiedAt` 标记。
"""

from __future__ import annotations

import structlog

from review_relay_core.types import (
    ChangeEvent,
    ChangeType,
    NotificationJob,
    SubmissionStatus,
)

logger = structlog.get_logger(__name__)

APPROVED_TEMPLATE = (
    '🎉 Congratulations! Your submission for "{content}" has been approved.'
)
REJECTED_TEMPLATE = (
    '😞 Unfortunately, your submission for "{content}" has been rejected.'
)

_TEMPLATES: dict[SubmissionStatus, str] = {
    SubmissionStatus.APPROVED: APPROVED_TEMPLATE,
    SubmissionStatus.REJECTED: REJECTED_TEMPLATE,
}


def render_body(status: SubmissionStatus, content: str) -> str:
    """按审核结果渲染通知正文。"""
    return _TEMPLATES[status].format(content=content)


def classify_change(event: ChangeEvent) -> NotificationJob | None:
    """为一条变更事件生成 0 或 1 个通知任务。"""
    submission = event.submission

    if event.change_type is not ChangeType.MODIFIED:
        logger.debug(
            "忽略非 modified 事件。",
            change_type=event.change_type.value,
            submission_id=submission.id,
        )
        return None

    if submission.notified_at is not None:
        logger.debug(
            "提交记录已通知过，跳过。",
            submission_id=submission.id,
            notified_at=submission.notified_at.isoformat(),
        )
        return None

    try:
        status = SubmissionStatus(submission.status)
    except ValueError:
        logger.warning(
            "提交记录的状态值不在预期范围内，不发送通知。",
            submission_id=submission.id,
            status=submission.status,
        )
        return None

    if status is SubmissionStatus.PENDING:
        return None

    return NotificationJob(
        recipient=submission.submitted_by,
        body=render_body(status, submission.content),
        source_submission_id=submission.id,
        status=status,
    )
