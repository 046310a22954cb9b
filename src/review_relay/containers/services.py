# src/review_relay/containers/services.py
"""
应用服务层容器。

本容器只依赖于抽象接口，不依赖任何具体的基础设施实现。
"""

from dependency_injector import containers, providers

from review_relay.application import services
from review_relay.application.dispatcher import NotificationDispatcher
from review_relay.config import RelayConfig


class ServicesContainer(containers.DeclarativeContainer):
    """应用服务的容器。"""

    config = providers.Dependency(instance_of=RelayConfig)
    store = providers.Dependency()
    channel = providers.Dependency()
    stream_producer = providers.Dependency()

    dispatcher = providers.Factory(
        NotificationDispatcher,
        channel=channel,
        store=store,
        stream_producer=stream_producer,
        event_stream_name=config.provided.relay.event_stream_name,
        track_notified_at=config.provided.relay.track_notified_at,
    )

    intake_service = providers.Factory(
        services.SubmissionIntakeService,
        store=store,
        content_pattern=config.provided.intake.content_pattern,
    )
    review_service = providers.Factory(
        services.SubmissionReviewService,
        store=store,
    )
