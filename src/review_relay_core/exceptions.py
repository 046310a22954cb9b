# src/review_relay_core/exceptions.py
"""
定义了 Review Relay 系统中所有自定义异常的层级结构。
所有异常都继承自 `RelayError`，便于上层统一捕获。
"""

from __future__ import annotations


class RelayError(Exception):
    """所有 Review Relay 异常的基类。"""


class ConfigurationError(RelayError):
    """配置缺失或非法时抛出。"""


class SubscriptionLostError(RelayError):
    """文档库的持续订阅意外终止（网络中断、服务不可用等）。"""


class DeliveryError(RelayError):
    """向单个接收者投递消息失败。"""

    def __init__(
        self, recipient: str, message: str, error_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.recipient = recipient
        self.error_code = error_code


class SubmissionNotFoundError(RelayError):
    """指定 ID 的提交记录不存在。"""

    def __init__(self, submission_id: str) -> None:
        super().__init__(f"提交记录不存在: {submission_id}")
        self.submission_id = submission_id


class InvalidSubmissionError(RelayError):
    """提交内容未通过格式校验。"""


class InvalidTransitionError(RelayError):
    """审核状态迁移不合法（例如从终态再次迁移）。"""
