# src/review_relay_core/types.py
"""
本模块定义了 Review Relay 系统的核心数据类型。
这些类型是变更流、分类器与分发器之间数据交换的契约。
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmissionStatus(str, Enum):
    """表示提交记录在审核生命周期中的状态。"""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({SubmissionStatus.APPROVED, SubmissionStatus.REJECTED})


class ChangeType(str, Enum):
    """文档库订阅上报的变更类型。"""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class Submission(BaseModel):
    """
    一条待审核的提交记录。

    字段别名与文档库中的字段名保持一致（`gmailAddress`、`submittedBy` 等），
    因此既可以用 Python 字段名构造，也可以直接用文档数据校验。
    `status` 保留为原始字符串，未知的状态值不会在解析阶段被拒绝。
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    content: str = Field(alias="gmailAddress")
    submitted_by: str = Field(alias="submittedBy")
    status: str = SubmissionStatus.PENDING.value
    submitted_at: datetime | None = Field(default=None, alias="submissionDate")
    notified_at: datetime | None = Field(default=None, alias="notifiedAt")

    @field_validator("status", mode="before")
    @classmethod
    def _unwrap_status(cls, v: object) -> object:
        # 枚举成员统一存为其字符串值
        if isinstance(v, Enum):
            return v.value
        return v

    @classmethod
    def from_document(cls, doc_id: str, data: dict) -> "Submission":
        """从文档库的原始文档数据创建提交记录。"""
        return cls.model_validate({**data, "id": doc_id})

    def to_document(self) -> dict:
        """转换为文档库字段名表示的字典（不含 ID）。"""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in {s.value for s in TERMINAL_STATUSES}


class ChangeEvent(BaseModel):
    """变更流中的一条事件，不做持久化。"""

    model_config = ConfigDict(frozen=True)

    change_type: ChangeType
    submission: Submission


class NotificationJob(BaseModel):
    """一条待投递的通知：一个接收者、一段文本。"""

    model_config = ConfigDict(frozen=True)

    recipient: str
    body: str
    source_submission_id: str
    status: SubmissionStatus


class DeliveryOutcome(BaseModel):
    """一次投递尝试的结果。"""

    job: NotificationJob
    delivered: bool
    error: str | None = None
