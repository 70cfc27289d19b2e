import threading
from datetime import timedelta

import pytest

import platform_monitoring
from campaign_engine.control_layer.audit import InMemoryAuditStore
from campaign_engine.control_layer.campaign_manager import CampaignManager
from campaign_engine.exceptions import AdapterError, NotFoundError, ValidationError
from campaign_engine.models import DeliveryOutcome
from campaign_engine.scheduling.guard import InMemoryLeaseGuard
from campaign_engine.tools.delivery.adapters.noop_adapter import NoOpPushAdapter
from campaign_engine.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter
from campaign_engine.tools.persistence.service import CampaignStore


def build_manager(clock, transport=None, guard=None):
    store = CampaignStore(InMemoryAdapter(), clock=clock)
    transport = transport or NoOpPushAdapter()
    audit = InMemoryAuditStore()
    mgr = CampaignManager(store, guard or InMemoryLeaseGuard(ttl=30), transport=transport, audit_store=audit)
    return mgr, store, transport, audit


class SelectiveTransport:
    """Fails for messages whose text is 'fail'."""

    def __init__(self):
        self.sent = []

    def send(self, message, audience):
        if message.get("text") == "fail":
            return DeliveryOutcome(delivered=False, error="gateway rejected")
        self.sent.append(message)
        return DeliveryOutcome(delivered=True, recipient_count=1)


def test_run_delivers_due_campaign_once(clock):
    mgr, store, transport, audit = build_manager(clock)
    c = store.upsert({"status": "active", "message": "hi"}).item
    first = mgr.run_due()
    assert (first.checked, first.due, first.delivered, first.skipped, first.failed) == (1, 1, 1, 0, 0)
    assert first.item_for(c.id).action == "delivered"
    clock.advance(minutes=10)
    second = mgr.run_due()
    assert (second.checked, second.due, second.delivered) == (1, 0, 0)
    assert second.items == []
    assert len(transport.sent) == 1
    saved = store.get(c.id)
    assert saved.delivery_count == 1
    assert saved.status == "completed"
    assert [r["run_id"] for r in mgr.list_runs()] == [first.run_id, second.run_id]


def test_forced_redelivery(clock):
    mgr, store, transport, _ = build_manager(clock)
    c = store.upsert({"status": "active", "message": "hi"}).item
    mgr.run_due()
    clock.advance(minutes=1)
    res = mgr.deliver(c.id, force=True)
    assert res.forced is True
    assert res.delivered == 1
    saved = store.get(c.id)
    assert saved.delivery_count == 2
    assert saved.last_delivered_at == clock.now
    assert len(transport.sent) == 2


def test_deliver_not_due_reports_nothing(clock):
    mgr, store, transport, _ = build_manager(clock)
    c = store.upsert({"status": "draft"}).item
    res = mgr.deliver(c.id)
    assert (res.checked, res.due, res.delivered) == (1, 0, 0)
    assert transport.sent == []


def test_deliver_unknown_raises(clock):
    mgr, *_ = build_manager(clock)
    with pytest.raises(NotFoundError):
        mgr.deliver("nope")


def test_future_schedule_not_due_until_reached(clock):
    mgr, store, transport, _ = build_manager(clock)
    c = store.upsert({"status": "active", "scheduledAt": (clock.now + timedelta(hours=1)).isoformat()}).item
    assert mgr.run_due().due == 0
    assert mgr.run_due(force=True).due == 0
    clock.advance(hours=1)
    res = mgr.run_due()
    assert res.item_for(c.id).action == "delivered"


def test_inactive_excluded(clock):
    mgr, store, transport, _ = build_manager(clock)
    for status in ("draft", "scheduled", "paused"):
        store.upsert({"status": status})
    res = mgr.run_due(force=True)
    assert (res.checked, res.due) == (3, 0)
    assert transport.sent == []


def test_partial_failure_isolation(clock):
    transport = SelectiveTransport()
    mgr, store, _, _ = build_manager(clock, transport=transport)
    ok1 = store.upsert({"status": "active", "message": "one"}).item
    bad = store.upsert({"status": "active", "message": "fail"}).item
    ok2 = store.upsert({"status": "active", "message": "two"}).item
    res = mgr.run_due()
    assert (res.due, res.delivered, res.failed) == (3, 2, 1)
    assert res.item_for(bad.id).detail == "gateway rejected"
    assert store.get(ok1.id).delivery_count == 1
    assert store.get(ok2.id).delivery_count == 1
    failed = store.get(bad.id)
    assert failed.delivery_count == 0
    assert failed.status == "active"
    # the failed one is retried on the next run
    again = mgr.run_due()
    assert again.due == 1 and again.failed == 1


def test_mutual_exclusion_between_overlapping_runs(clock):
    entered = threading.Event()
    release = threading.Event()

    class BlockingTransport:
        def __init__(self):
            self.calls = 0

        def send(self, message, audience):
            self.calls += 1
            entered.set()
            release.wait(5)
            return DeliveryOutcome(delivered=True, recipient_count=1)

    transport = BlockingTransport()
    mgr, store, _, _ = build_manager(clock, transport=transport)
    c = store.upsert({"status": "active", "message": "hi"}).item

    results = {}
    t = threading.Thread(target=lambda: results.setdefault("first", mgr.run_due()))
    t.start()
    assert entered.wait(5)
    second = mgr.deliver(c.id, force=True)
    release.set()
    t.join(5)

    assert second.skipped == 1
    assert second.delivered == 0
    assert results["first"].delivered == 1
    assert transport.calls == 1
    assert store.get(c.id).delivery_count == 1


def test_stale_listing_rechecked_under_lease(clock):
    mgr, store, transport, _ = build_manager(clock)
    c = store.upsert({"status": "active"}).item
    stale = store.get(c.id)
    mgr.run_due()
    # a run holding the pre-delivery snapshot must not deliver again
    summary = mgr._start("run", False)
    mgr._process(stale, summary)
    assert summary.item_for(c.id).action == "skipped"
    assert summary.item_for(c.id).detail == "no longer due"
    assert len(transport.sent) == 1


def test_recurring_delivered_once_per_day(clock):
    mgr, store, transport, _ = build_manager(clock)
    store.upsert({"status": "active", "recurrence": "daily"})
    assert mgr.run_due().delivered == 1
    clock.advance(hours=2)
    assert mgr.run_due().delivered == 0
    clock.advance(days=1)
    assert mgr.run_due().delivered == 1
    assert len(transport.sent) == 2


def test_upsert_and_deliver(clock):
    mgr, store, transport, _ = build_manager(clock)
    res = mgr.upsert_and_deliver({"status": "active", "message": "now"}, deliver=True)
    assert res["created"] is True
    assert res["delivery"].delivered == 1
    assert res["item"].delivery_count == 1
    again = mgr.upsert_and_deliver({"id": res["item"].id, "message": "now"}, deliver=True)
    assert again["created"] is False
    assert again["delivery"].delivered == 0
    assert len(transport.sent) == 1


def test_upsert_and_deliver_rejects_bad_payload(clock):
    mgr, store, transport, _ = build_manager(clock)
    with pytest.raises(ValidationError):
        mgr.upsert_and_deliver({"status": "bogus"}, deliver=True)
    assert store.list() == []


def test_listing_failure_recorded_and_raised(clock):
    mgr, store, _, audit = build_manager(clock)

    def broken():
        raise AdapterError("backend down")

    store.list = broken
    with pytest.raises(AdapterError):
        mgr.run_due()
    assert audit.failures[0]["error"] == "backend down"


def test_delivery_metric_incremented(clock):
    mgr, store, _, _ = build_manager(clock)
    store.upsert({"status": "active"})
    before = platform_monitoring.metric_value("campaign_deliveries", {"action": "delivered"})
    mgr.run_due()
    after = platform_monitoring.metric_value("campaign_deliveries", {"action": "delivered"})
    assert after == before + 1


def test_counts_passthrough(clock):
    mgr, store, _, _ = build_manager(clock)
    store.upsert({"status": "active"})
    mgr.run_due()
    counts = mgr.counts()
    assert counts["completed"] == 1
    assert counts["total_sent"] == 1


def test_two_overlapping_forced_deliveries_send_once(clock):
    entered = threading.Event()
    release = threading.Event()
    calls = []

    class BlockingTransport:
        def send(self, message, audience):
            calls.append(message)
            entered.set()
            release.wait(5)
            return DeliveryOutcome(delivered=True, recipient_count=1)

    mgr, store, _, _ = build_manager(clock, transport=BlockingTransport())
    c = store.upsert({"status": "active", "message": "hi"}).item

    results = {}
    t = threading.Thread(target=lambda: results.setdefault("first", mgr.deliver(c.id, force=True)))
    t.start()
    assert entered.wait(5)
    second = mgr.deliver(c.id, force=True)
    release.set()
    t.join(5)

    first = results["first"]
    assert (first.delivered, first.skipped) == (1, 0)
    assert (second.delivered, second.skipped) == (0, 1)
    assert "is being delivered" in second.item_for(c.id).detail
    assert len(calls) == 1
    assert store.get(c.id).delivery_count == 1
