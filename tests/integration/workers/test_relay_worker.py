# tests/integration/workers/test_relay_worker.py
"""
对通知中继 Worker 的端到端流程进行集成测试。

内存文档库 + 假消息通道，经由真实的变更流适配器、分类器与分发器。
"""

import asyncio

import pytest

from review_relay.application.change_feed import ChangeFeedAdapter
from review_relay.application.dispatcher import NotificationDispatcher
from review_relay.config import RelayConfig
from review_relay.infrastructure.memory import InMemorySubmissionStore
from review_relay.workers._relay_worker import RelayWorker
from review_relay_core.exceptions import SubscriptionLostError
from review_relay_core.types import ChangeEvent, ChangeType, Submission, SubmissionStatus

from tests.helpers.tools.fakes import FakeMessageChannel, ScriptedSubmissionStore

pytestmark = [pytest.mark.integration]


def _build_worker(
    config: RelayConfig,
    store,
    channel: FakeMessageChannel,
    track_notified_at: bool = True,
) -> RelayWorker:
    dispatcher = NotificationDispatcher(
        channel, store=store, track_notified_at=track_notified_at
    )
    feed = ChangeFeedAdapter(store, config.reconnect)
    return RelayWorker(config, feed, dispatcher, channel)


class RunningWorker:
    """在后台任务中运行 Worker，退出时触发停机并等待结束。"""

    def __init__(self, worker: RelayWorker):
        self.worker = worker
        self.shutdown = asyncio.Event()
        self.task: asyncio.Task | None = None

    async def __aenter__(self) -> "RunningWorker":
        self.task = asyncio.create_task(self.worker.run(self.shutdown))
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.shutdown.set()
        await asyncio.wait_for(self.task, timeout=2)


async def _seed_pending(store: InMemorySubmissionStore) -> Submission:
    submission = Submission(
        id="s1", content="alice@gmail.com", submitted_by="u1", status="pending"
    )
    store.put(submission)
    return submission


@pytest.mark.asyncio
async def test_approval_notifies_submitter_once(relay_config, store, channel, wait_until):
    """场景 1：pending → approved，通知提交者一次，正文包含内容与通过字样。"""
    await _seed_pending(store)
    worker = _build_worker(relay_config, store, channel)

    async with RunningWorker(worker):
        await wait_until(lambda: store.subscriber_count == 1)
        await store.transition("s1", SubmissionStatus.PENDING, SubmissionStatus.APPROVED)
        await wait_until(lambda: (store._docs["s1"].notified_at is not None))
        # 给标记写入引发的 modified 事件留出处理时间
        await wait_until(lambda: worker.events_seen == 2)

    assert channel.attempts == ["u1"]
    (body,) = channel.bodies_for("u1")
    assert "alice@gmail.com" in body
    assert "approved" in body
    assert "Congratulations" in body


@pytest.mark.asyncio
async def test_rejection_notifies_submitter_once(relay_config, store, channel, wait_until):
    """场景 2：pending → rejected，通知提交者一次，正文包含拒绝字样。"""
    await _seed_pending(store)
    worker = _build_worker(relay_config, store, channel)

    async with RunningWorker(worker):
        await wait_until(lambda: store.subscriber_count == 1)
        await store.transition("s1", SubmissionStatus.PENDING, SubmissionStatus.REJECTED)
        await wait_until(lambda: len(channel.sent) == 1)

    (body,) = channel.bodies_for("u1")
    assert "alice@gmail.com" in body
    assert "rejected" in body
    assert "Unfortunately" in body


@pytest.mark.asyncio
@pytest.mark.parametrize("track_notified_at", [True, False])
async def test_reconnect_replay_does_not_renotify(
    relay_config, store, channel, wait_until, track_notified_at
):
    """场景 3：重连后 s1 以 added 重放，不会产生第二次通知。"""
    await _seed_pending(store)
    worker = _build_worker(relay_config, store, channel, track_notified_at)

    async with RunningWorker(worker):
        await wait_until(lambda: store.subscriber_count == 1)
        await store.transition("s1", SubmissionStatus.PENDING, SubmissionStatus.APPROVED)
        await wait_until(lambda: len(channel.sent) == 1)

        if track_notified_at:
            # 标记写入本身也会产生一条 modified 事件
            await wait_until(lambda: worker.events_seen == 2)
        seen_before = worker.events_seen
        store.disconnect()
        await wait_until(lambda: worker._feed.reconnect_count == 1)
        await wait_until(lambda: worker.events_seen > seen_before)

    assert channel.attempts == ["u1"]


@pytest.mark.asyncio
async def test_slow_delivery_does_not_stall_feed(relay_config, store, channel, wait_until):
    """一个接收者的慢投递不阻塞其他提交记录的通知。"""
    channel.delays = {"slow-user": 10}
    store.put(Submission(id="a", content="a@gmail.com", submitted_by="slow-user"))
    store.put(Submission(id="b", content="b@gmail.com", submitted_by="fast-user"))
    worker = _build_worker(relay_config, store, channel)

    async with RunningWorker(worker):
        await wait_until(lambda: store.subscriber_count == 1)
        await store.transition("a", SubmissionStatus.PENDING, SubmissionStatus.APPROVED)
        await store.transition("b", SubmissionStatus.PENDING, SubmissionStatus.APPROVED)
        await wait_until(lambda: channel.bodies_for("fast-user"))

    # 停机放弃了尚在进行的慢投递
    assert channel.bodies_for("slow-user") == []


@pytest.mark.asyncio
async def test_failed_delivery_does_not_affect_other_recipients(
    relay_config, store, channel, wait_until
):
    channel.fail_on_recipients = {"blocked"}
    store.put(Submission(id="a", content="a@gmail.com", submitted_by="blocked"))
    store.put(Submission(id="b", content="b@gmail.com", submitted_by="u2"))
    worker = _build_worker(relay_config, store, channel)

    async with RunningWorker(worker):
        await wait_until(lambda: store.subscriber_count == 1)
        await store.transition("a", SubmissionStatus.PENDING, SubmissionStatus.REJECTED)
        await store.transition("b", SubmissionStatus.PENDING, SubmissionStatus.APPROVED)
        await wait_until(
            lambda: all(store._docs[i].notified_at is not None for i in ("a", "b"))
        )

    assert [who for who, _ in channel.sent] == ["u2"]
    # 投递失败同样会写入标记，避免后续修正触发重复尝试
    assert store._docs["a"].notified_at is not None


@pytest.mark.asyncio
async def test_unexpected_status_does_not_stop_pipeline(
    relay_config, channel, wait_until
):
    def modified(sid: str, status: str) -> ChangeEvent:
        return ChangeEvent(
            change_type=ChangeType.MODIFIED,
            submission=Submission(
                id=sid, content=f"{sid}@gmail.com", submitted_by="u1", status=status
            ),
        )

    store = ScriptedSubmissionStore(
        [([modified("weird", "archived"), modified("s1", "approved")], None)]
    )
    worker = _build_worker(relay_config, store, channel, track_notified_at=False)

    async with RunningWorker(worker):
        await wait_until(lambda: len(channel.sent) == 1)

    assert worker.events_seen == 2
    assert worker.jobs_enqueued == 1
    assert "s1@gmail.com" in channel.bodies_for("u1")[0]


@pytest.mark.asyncio
async def test_exhausted_reconnects_surface_from_run(channel):
    config = RelayConfig(
        reconnect={"max_attempts": 1, "initial_backoff": 0.01, "max_backoff": 0.01}
    )
    store = ScriptedSubmissionStore([([], SubscriptionLostError("down"))] * 3)
    worker = _build_worker(config, store, channel, track_notified_at=False)

    with pytest.raises(SubscriptionLostError):
        await asyncio.wait_for(worker.run(asyncio.Event()), timeout=2)


@pytest.mark.asyncio
async def test_run_loop_closes_channel_on_shutdown(relay_config, store, channel):
    worker = _build_worker(relay_config, store, channel)
    shutdown = asyncio.Event()

    task = asyncio.create_task(worker.run_loop(shutdown))
    await asyncio.sleep(0.05)
    shutdown.set()
    await asyncio.wait_for(task, timeout=2)

    assert channel.closed is True
