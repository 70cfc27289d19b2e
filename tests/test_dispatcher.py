from unittest.mock import MagicMock

import pytest

from campaign_engine.exceptions import AdapterError, DispatchError
from campaign_engine.models import DeliveryOutcome
from campaign_engine.scheduling.dispatcher import DeliveryDispatcher
from campaign_engine.tools.delivery.adapters.noop_adapter import NoOpPushAdapter
from campaign_engine.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter
from campaign_engine.tools.persistence.service import CampaignStore


def build(clock, transport=None):
	store = CampaignStore(InMemoryAdapter(), clock=clock)
	transport = transport or NoOpPushAdapter()
	return store, transport, DeliveryDispatcher(store, transport)


def test_successful_send_records_delivery_and_completes_single_shot(clock):
	store, transport, dispatcher = build(clock)
	c = store.upsert({"status": "active", "message": "hi", "audience": {"room_ids": ["r1", "r2"]}}).item
	res = dispatcher.dispatch(c, clock.now)
	assert res.action == "delivered"
	assert res.detail == "recipients=2"
	saved = store.get(c.id)
	assert saved.delivery_count == 1
	assert saved.last_delivered_at == clock.now
	assert saved.status == "completed"
	assert transport.sent == [{"message": {"text": "hi"}, "audience": {"room_ids": ["r1", "r2"]}}]


def test_recurring_stays_active(clock):
	store, _, dispatcher = build(clock)
	c = store.upsert({"status": "active", "recurrence": "daily"}).item
	dispatcher.dispatch(c, clock.now)
	assert store.get(c.id).status == "active"


def test_failed_send_leaves_delivery_state(clock):
	store, _, dispatcher = build(clock, NoOpPushAdapter(disabled=True))
	c = store.upsert({"status": "active"}).item
	clock.advance(minutes=1)
	res = dispatcher.dispatch(c, clock.now)
	assert res.action == "failed"
	assert res.detail == "delivery disabled"
	saved = store.get(c.id)
	assert saved.delivery_count == 0
	assert saved.last_delivered_at is None
	assert saved.status == "active"
	assert saved.updated_at == clock.now


def test_transport_exception_becomes_failed_outcome(clock):
	transport = MagicMock()
	transport.send.side_effect = ConnectionError("gateway unreachable")
	store, _, dispatcher = build(clock, transport)
	c = store.upsert({"status": "active"}).item
	res = dispatcher.dispatch(c, clock.now)
	assert res.action == "failed"
	assert "gateway unreachable" in res.detail
	assert store.get(c.id).delivery_count == 0


def test_conflicting_edit_during_send_keeps_both_changes(clock):
	store, _, _ = build(clock)
	c = store.upsert({"status": "active", "name": "before"}).item

	class EditingTransport:
		def send(self, message, audience):
			store.upsert({"id": c.id, "name": "edited"})
			return DeliveryOutcome(delivered=True, recipient_count=1)

	dispatcher = DeliveryDispatcher(store, EditingTransport())
	res = dispatcher.dispatch(c, clock.now)
	assert res.action == "delivered"
	saved = store.get(c.id)
	assert saved.name == "edited"
	assert saved.delivery_count == 1
	assert saved.status == "completed"


def test_store_failure_after_send_reported(clock):
	store, transport, dispatcher = build(clock)
	c = store.upsert({"status": "active"}).item
	store.save = MagicMock(side_effect=AdapterError("backend down"))
	res = dispatcher.dispatch(c, clock.now)
	assert res.action == "failed"
	assert res.detail.startswith("sent but not recorded")
	assert len(transport.sent) == 1


def test_send_raises_dispatch_error_when_transport_blows_up(clock):
	transport = MagicMock()
	transport.send.side_effect = TimeoutError("no answer")
	store, _, dispatcher = build(clock, transport)
	c = store.upsert({"status": "active"}).item
	with pytest.raises(DispatchError) as exc:
		dispatcher.send(c)
	assert "TimeoutError" in str(exc.value)
	assert isinstance(exc.value.__cause__, TimeoutError)
