# tests/conftest.py
"""
Pytest 共享夹具

核心 Fixtures:
- relay_config: 重连退避被压缩到毫秒级的测试配置。
- store: 全新的内存文档库。
- channel: 记录所有投递的假消息通道。
- wait_until: 轮询等待某个条件成立的辅助函数。
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest
import structlog

from review_relay.config import RelayConfig
from review_relay.infrastructure.memory import InMemorySubmissionStore

from tests.helpers.tools.fakes import FakeMessageChannel


@pytest.fixture(autouse=True)
def _reset_structlog():
    """避免日志配置测试的全局副作用泄漏到其他测试。"""
    yield
    structlog.reset_defaults()


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(
        store="memory",
        channel="debug",
        reconnect={"initial_backoff": 0.01, "max_backoff": 0.05},
        relay={"max_concurrency": 2, "event_stream_name": "test_events"},
    )


@pytest.fixture
def store() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


@pytest.fixture
def channel() -> FakeMessageChannel:
    return FakeMessageChannel()


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.fixture
def wait_until():
    return _wait_until
