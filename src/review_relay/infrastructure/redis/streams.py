# src/review_relay/infrastructure/redis/streams.py
"""
使用 Redis Streams 实现 `StreamProducer` 接口，用于发布通知审计事件。
"""

import json
from typing import Any

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)


class RedisStreamProducer:
    """
    基于 Redis Streams 的事件流生产者实现。
    """

    def __init__(self, client: aioredis.Redis, key_prefix: str = ""):
        """
        Args:
            client: 一个配置好的 Redis 异步客户端实例。
            key_prefix: 追加在 Stream 键名前的命名空间前缀。
        """
        self._client = client
        self._key_prefix = key_prefix

    async def publish(self, stream_name: str, event_data: dict[str, Any]) -> None:
        """
        向指定的 Redis Stream 发布一条事件。

        事件整体序列化为 JSON，存放在单个 `payload` 字段中。
        """
        key = f"{self._key_prefix}{stream_name}"
        try:
            serialized_payload = json.dumps(event_data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error(
                "事件数据序列化失败",
                stream=key,
                error=str(e),
                event_data_type=type(event_data).__name__,
            )
            raise

        try:
            await self._client.xadd(key, {"payload": serialized_payload})
        except Exception:
            logger.error("发布事件到 Redis Stream 失败", stream=key, exc_info=True)
            raise

        logger.debug("事件已成功发布到 Redis Stream", stream=key)


def create_stream_producer(
    client: aioredis.Redis | None, key_prefix: str
) -> RedisStreamProducer | None:
    if client is None:
        return None
    return RedisStreamProducer(client, key_prefix=key_prefix)
