# src/review_relay/infrastructure/redis/_client.py
"""
集中管理 Redis 客户端的创建和关闭。
"""

import redis.asyncio as aioredis

from review_relay.config import RelayConfig


def create_redis_client(config: RelayConfig) -> aioredis.Redis | None:
    """按配置创建 Redis 异步客户端；未配置 URL 时返回 None。连接在首次使用时建立。"""
    if not config.redis.url:
        return None
    return aioredis.from_url(config.redis.url, decode_responses=True)


async def close_redis_client(client: aioredis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
