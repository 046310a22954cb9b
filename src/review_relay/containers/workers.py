# src/review_relay/containers/workers.py
"""
后台 Worker 容器。
"""

from dependency_injector import containers, providers

from review_relay.application.change_feed import ChangeFeedAdapter
from review_relay.config import RelayConfig
from review_relay.workers._relay_worker import RelayWorker


class WorkersContainer(containers.DeclarativeContainer):
    """后台 Worker 实例的容器。"""

    config = providers.Dependency(instance_of=RelayConfig)
    store = providers.Dependency()
    channel = providers.Dependency()
    redis_client = providers.Dependency()
    dispatcher = providers.Dependency()

    change_feed = providers.Factory(
        ChangeFeedAdapter,
        store=store,
        policy=config.provided.reconnect,
    )

    relay_worker = providers.Factory(
        RelayWorker,
        config=config,
        feed=change_feed,
        dispatcher=dispatcher,
        channel=channel,
        redis_client=redis_client,
    )
