# tests/unit/infrastructure/test_firestore_store.py
"""
FirestoreSubmissionStore 的单元测试。

不连接真实的 Firestore：用 Mock 替代客户端，并在后台线程中手动触发
`on_snapshot` 回调，验证快照到 ChangeEvent 的转换与线程桥接。
"""

import asyncio
import threading
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock

import pytest
from google.api_core.exceptions import NotFound
from pytest_mock import MockerFixture

from review_relay.config import FirestoreSettings
from review_relay.infrastructure.firestore.store import (
    FirestoreSubmissionStore,
    to_change_event,
)
from review_relay_core.exceptions import (
    InvalidTransitionError,
    SubmissionNotFoundError,
    SubscriptionLostError,
)
from review_relay_core.types import ChangeType, SubmissionStatus


def _change(kind: str, doc_id: str, data: dict | None):
    document = Mock()
    document.id = doc_id
    document.to_dict.return_value = data
    return SimpleNamespace(type=SimpleNamespace(name=kind), document=document)


DOC = {
    "gmailAddress": "alice@gmail.com",
    "submittedBy": "u1",
    "status": "approved",
}


class TestToChangeEvent:
    def test_replay_added_stays_added(self):
        event = to_change_event(_change("ADDED", "s1", DOC), is_replay=True)
        assert event.change_type is ChangeType.ADDED
        assert event.submission.content == "alice@gmail.com"
        assert event.submission.submitted_by == "u1"

    def test_live_added_is_a_transition(self):
        """首个快照之后的 ADDED 表示文档刚离开 pending，按 modified 上报。"""
        event = to_change_event(_change("ADDED", "s1", DOC), is_replay=False)
        assert event.change_type is ChangeType.MODIFIED

    @pytest.mark.parametrize(
        "kind, expected",
        [("MODIFIED", ChangeType.MODIFIED), ("REMOVED", ChangeType.REMOVED)],
    )
    def test_direct_mapping(self, kind, expected):
        for is_replay in (True, False):
            event = to_change_event(_change(kind, "s1", DOC), is_replay=is_replay)
            assert event.change_type is expected

    def test_malformed_document_is_skipped(self):
        assert to_change_event(_change("MODIFIED", "s1", {"status": "approved"}), is_replay=False) is None


class FakeQuery:
    """记录 on_snapshot 回调的查询替身。"""

    def __init__(self):
        self.callback = None
        self.watch = Mock(is_active=True)

    def on_snapshot(self, callback):
        self.callback = callback
        return self.watch

    def fire(self, changes):
        thread = threading.Thread(target=self.callback, args=(None, changes, None))
        thread.start()
        thread.join()


@pytest.fixture
def firestore_store():
    client = MagicMock()
    settings = FirestoreSettings(collection="gmails", liveness_interval=0.02)
    store = FirestoreSubmissionStore(client, settings)
    query = FakeQuery()
    store.terminal_query = lambda: query
    return store, query


@pytest.mark.asyncio
async def test_subscription_bridges_snapshots_from_sdk_thread(firestore_store, wait_until):
    store, query = firestore_store
    feed = store.subscribe_terminal()
    first = asyncio.ensure_future(feed.__anext__())
    await wait_until(lambda: query.callback is not None)

    query.fire([_change("ADDED", "old", DOC)])
    assert (await asyncio.wait_for(first, 1)).change_type is ChangeType.ADDED

    query.fire([_change("ADDED", "new", {**DOC, "status": "rejected"})])
    live = await asyncio.wait_for(feed.__anext__(), 1)
    assert live.change_type is ChangeType.MODIFIED
    assert live.submission.status == SubmissionStatus.REJECTED.value

    await feed.aclose()
    query.watch.unsubscribe.assert_called_once()


@pytest.mark.asyncio
async def test_inactive_watch_raises_subscription_lost(firestore_store, wait_until):
    store, query = firestore_store
    feed = store.subscribe_terminal()
    pending = asyncio.ensure_future(feed.__anext__())
    await wait_until(lambda: query.callback is not None)

    query.watch.is_active = False

    with pytest.raises(SubscriptionLostError):
        await asyncio.wait_for(pending, 1)
    query.watch.unsubscribe.assert_called_once()


@pytest.fixture
def inline_transactions(mocker: MockerFixture):
    """去掉 SDK 事务装饰器的 begin/commit/重试，直接执行被装饰的函数。"""
    mocker.patch("google.cloud.firestore.transactional", lambda fn: fn)


def _snapshot(doc_id: str, data: dict | None) -> Mock:
    snapshot = Mock(exists=data is not None, id=doc_id)
    snapshot.to_dict.return_value = data
    return snapshot


@pytest.mark.asyncio
async def test_transition_reads_and_writes_in_one_transaction(
    firestore_store, inline_transactions
):
    store, _ = firestore_store
    doc_ref = store._collection.document.return_value
    doc_ref.get.return_value = _snapshot("s1", {**DOC, "status": "pending"})
    transaction = store._client.transaction.return_value

    result = await store.transition(
        "s1", SubmissionStatus.PENDING, SubmissionStatus.APPROVED
    )

    doc_ref.get.assert_called_once_with(transaction=transaction)
    transaction.update.assert_called_once_with(doc_ref, {"status": "approved"})
    assert result.status == "approved"
    assert result.submitted_by == "u1"


@pytest.mark.asyncio
async def test_transition_refuses_already_reviewed_document(
    firestore_store, inline_transactions
):
    store, _ = firestore_store
    doc_ref = store._collection.document.return_value
    doc_ref.get.return_value = _snapshot("s1", DOC)
    transaction = store._client.transaction.return_value

    with pytest.raises(InvalidTransitionError):
        await store.transition(
            "s1", SubmissionStatus.PENDING, SubmissionStatus.REJECTED
        )
    transaction.update.assert_not_called()


@pytest.mark.asyncio
async def test_transition_missing_document(firestore_store, inline_transactions):
    store, _ = firestore_store
    store._collection.document.return_value.get.return_value = _snapshot("s1", None)

    with pytest.raises(SubmissionNotFoundError):
        await store.transition(
            "s1", SubmissionStatus.PENDING, SubmissionStatus.APPROVED
        )


@pytest.mark.asyncio
async def test_delete_requires_existing_document(firestore_store):
    store, _ = firestore_store
    doc_ref = store._collection.document.return_value
    doc_ref.delete.side_effect = NotFound("no document")

    with pytest.raises(SubmissionNotFoundError):
        await store.delete("s1")

    store._client.write_option.assert_called_once_with(exists=True)
    doc_ref.delete.assert_called_once_with(
        option=store._client.write_option.return_value
    )
