# src/review_relay/containers/infrastructure.py
"""
基础设施容器：文档库、出站消息通道与 Redis。

文档库连接在整个进程内只有一个，由本容器以单例持有。
"""

from dependency_injector import containers, providers

from review_relay.config import RelayConfig
from review_relay.infrastructure.factory import (
    create_message_channel,
    create_submission_store,
)
from review_relay.infrastructure.redis._client import create_redis_client
from review_relay.infrastructure.redis.streams import create_stream_producer


class InfrastructureContainer(containers.DeclarativeContainer):
    """基础设施相关服务的容器。"""

    config = providers.Dependency(instance_of=RelayConfig)

    submission_store = providers.Singleton(create_submission_store, config=config)

    message_channel = providers.Singleton(create_message_channel, config=config)

    # 未配置 Redis URL 时为 None，审计事件随之关闭
    redis_client = providers.Singleton(create_redis_client, config=config)

    stream_producer = providers.Singleton(
        create_stream_producer,
        client=redis_client,
        key_prefix=config.provided.redis.key_prefix,
    )
