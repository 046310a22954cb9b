# src/review_relay/bootstrap.py
"""
应用引导程序和 DI 容器的生命周期管理。

本模块是应用的唯一初始化入口，负责：
1. 加载配置。
2. 创建并装配 DI 容器。
3. 初始化核心资源（日志）。
"""

from __future__ import annotations

from typing import Literal

import structlog

from review_relay.config import RelayConfig
from review_relay.config_loader import load_config_from_env
from review_relay.containers import ApplicationContainer

logger = structlog.get_logger("review_relay.bootstrap")


def create_app_config(
    env_mode: Literal["prod", "test"] = "prod", strict: bool = True
) -> RelayConfig:
    """加载、验证并返回应用配置对象。"""
    return load_config_from_env(mode=env_mode, strict=strict)


def create_container(config: RelayConfig, service_name: str) -> ApplicationContainer:
    """创建并装配 DI 容器。"""
    container = ApplicationContainer()

    # 1. 注入整块配置对象 (pydantic_config)
    container.pydantic_config.override(config)

    # 2. 从整块配置中派生出字段级配置
    container.config.from_pydantic(config)
    container.config.service_name.from_value(service_name)

    # 3. 初始化核心服务（如日志）
    container.core.init_resources()

    logger.debug(
        "DI 容器已创建。",
        service=service_name,
        store=config.store,
        channel=config.channel,
    )
    return container
