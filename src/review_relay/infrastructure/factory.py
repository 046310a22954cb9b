# src/review_relay/infrastructure/factory.py
"""
根据配置选择文档库和消息通道的具体实现。
"""

from __future__ import annotations

import structlog

from review_relay.config import RelayConfig
from review_relay_core.interfaces import MessageChannel, SubmissionStore

logger = structlog.get_logger(__name__)


def create_submission_store(config: RelayConfig) -> SubmissionStore:
    if config.store == "firestore":
        from review_relay.infrastructure.firestore import (
            FirestoreSubmissionStore,
            create_firestore_client,
        )

        client = create_firestore_client(config.firestore)
        logger.debug("使用 Firestore 文档库。", collection=config.firestore.collection)
        return FirestoreSubmissionStore(client, config.firestore)

    from review_relay.infrastructure.memory import InMemorySubmissionStore

    logger.debug("使用内存文档库。")
    return InMemorySubmissionStore()


def create_message_channel(config: RelayConfig) -> MessageChannel:
    from review_relay.infrastructure.channels import (
        DebugMessageChannel,
        TelegramMessageChannel,
    )

    if config.channel == "telegram":
        return TelegramMessageChannel(config.telegram)
    return DebugMessageChannel()
