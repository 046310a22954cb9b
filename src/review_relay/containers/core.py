# src/review_relay/containers/core.py
"""
核心容器：提供日志等应用范围内的基础服务。
"""

from dependency_injector import containers, providers

from review_relay.observability.logging_config import setup_logging


class CoreContainer(containers.DeclarativeContainer):
    """核心服务和配置的容器。"""

    config = providers.Configuration()

    # 在 init_resources() 时调用一次以配置全局日志
    logging = providers.Resource(
        setup_logging,
        log_level=config.logging.level,
        log_format=config.logging.format,
        service=config.service_name,
    )
