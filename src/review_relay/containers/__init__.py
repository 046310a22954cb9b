# src/review_relay/containers/__init__.py
"""
应用的组合根 (Composition Root)。

本模块定义了 `ApplicationContainer`，它是所有 DI 容器的聚合点，
负责装配各子容器并管理日志等核心资源的生命周期。
"""

from __future__ import annotations

from dependency_injector import containers, providers

from review_relay.config import RelayConfig

from .core import CoreContainer
from .infrastructure import InfrastructureContainer
from .services import ServicesContainer
from .workers import WorkersContainer


class ApplicationContainer(containers.DeclarativeContainer):
    """应用的顶层 DI 容器。"""

    # 1. 整块配置对象，作为唯一事实来源向下传递
    pydantic_config = providers.Dependency(instance_of=RelayConfig)
    # 2. 字段级配置提供者，用于需要细粒度配置的场景 (如日志)
    config = providers.Configuration()

    core = providers.Container(
        CoreContainer,
        config=config,
    )
    infrastructure = providers.Container(
        InfrastructureContainer,
        config=pydantic_config,
    )
    services = providers.Container(
        ServicesContainer,
        config=pydantic_config,
        store=infrastructure.submission_store,
        channel=infrastructure.message_channel,
        stream_producer=infrastructure.stream_producer,
    )
    workers = providers.Container(
        WorkersContainer,
        config=pydantic_config,
        store=infrastructure.submission_store,
        channel=infrastructure.message_channel,
        redis_client=infrastructure.redis_client,
        dispatcher=services.dispatcher,
    )
