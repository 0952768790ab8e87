from app.db.session import get_session_factory
from app.services.cache import LedgerSnapshotCache
from app.services.change_feed import ChangeEvent, ChangeFeed
from app.services.ledger import Ledger
from app.services.registry import StudentRegistry


def test_publish_and_unsubscribe():
    feed = ChangeFeed()
    received = []
    unsubscribe = feed.subscribe(received.append)

    assert feed.publish(ChangeEvent("students", "insert", "s-1")) == 1
    unsubscribe()
    unsubscribe()
    assert feed.publish(ChangeEvent("students", "delete", "s-1")) == 0

    assert [(e.action, e.record_id) for e in received] == [("insert", "s-1")]
    assert feed.subscriber_count == 0


def test_failing_subscriber_does_not_block_others(caplog):
    feed = ChangeFeed()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    feed.subscribe(broken)
    feed.subscribe(received.append)

    with caplog.at_level("WARNING", logger="app.services.change_feed"):
        delivered = feed.publish(ChangeEvent("transactions", "reset"))

    assert delivered == 1
    assert len(received) == 1
    assert "boom" in caplog.text


def test_cache_reloads_only_after_invalidation(db, feed, admin_actor):
    cache = LedgerSnapshotCache(get_session_factory())
    cache.attach(feed)
    registry = StudentRegistry(db, feed)
    student = registry.create("Siti", "3", "0012345678")

    assert [record.name for record in cache.students()] == ["Siti"]
    reloads = cache.reloads
    cache.students()
    assert cache.reloads == reloads

    Ledger(db, feed).record_transaction(student.id, "deposit", 7000, "x", admin_actor)
    assert cache.is_stale("students")
    assert cache.is_stale("transactions")
    assert cache.students()[0].balance == 7000
    assert [record.amount for record in cache.transactions()] == [7000]

    cache.detach()
    assert not cache.attached
    assert feed.subscriber_count == 0


def test_duplicate_events_are_harmless(db, feed):
    cache = LedgerSnapshotCache(get_session_factory())
    cache.attach(feed)
    cache.attach(feed)
    assert feed.subscriber_count == 1

    StudentRegistry(db).create("Budi", "1", "1111111111")
    for _ in range(3):
        feed.publish(ChangeEvent("students", "insert"))
    assert [record.name for record in cache.students()] == ["Budi"]
    assert not cache.is_stale("students")
