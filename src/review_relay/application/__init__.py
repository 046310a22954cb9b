# src/review_relay/application/__init__.py
from .change_feed import ChangeFeedAdapter
from .classifier import classify_change
from .dispatcher import NotificationDispatcher
from .services import SubmissionIntakeService, SubmissionReviewService

__all__ = [
    "ChangeFeedAdapter",
    "classify_change",
    "NotificationDispatcher",
    "SubmissionIntakeService",
    "SubmissionReviewService",
]
