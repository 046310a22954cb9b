# src/review_relay_core/__init__.py
"""
Review Relay 核心契约包。

包含系统各层共享的数据类型、接口协议与异常定义，不依赖任何基础设施实现。
"""
from .exceptions import (
    ConfigurationError, DeliveryError, InvalidSubmissionError,
    InvalidTransitionError, RelayError, SubmissionNotFoundError,
    SubscriptionLostError,
)
from .interfaces import MessageChannel, StreamProducer, SubmissionStore
from .types import (
    TERMINAL_STATUSES, ChangeEvent, ChangeType, DeliveryOutcome,
    NotificationJob, Submission, SubmissionStatus,
)

__all__ = [
    # from exceptions.py
    "RelayError", "ConfigurationError", "SubscriptionLostError",
    "DeliveryError", "SubmissionNotFoundError", "InvalidSubmissionError",
    "InvalidTransitionError",
    # from interfaces.py
    "SubmissionStore", "MessageChannel", "StreamProducer",
    # from types.py
    "SubmissionStatus", "TERMINAL_STATUSES", "ChangeType", "Submission",
    "ChangeEvent", "NotificationJob", "DeliveryOutcome",
]
