import threading
from unittest.mock import MagicMock

import pytest
import redis

from campaign_engine.exceptions import AdapterError, BusyError
from campaign_engine.scheduling.guard import InMemoryLeaseGuard, RedisLeaseGuard
from campaign_engine.tools.redis.client import RedisKV


class Tick:
    def __init__(self):
        self.t = 100.0

    def __call__(self):
        return self.t


def test_second_acquire_is_busy_until_release():
    guard = InMemoryLeaseGuard(ttl=30)
    lease = guard.acquire("c1")
    with pytest.raises(BusyError):
        guard.acquire("c1")
    # other campaigns are independent
    guard.release(guard.acquire("c2"))
    assert guard.release(lease) is True
    guard.release(guard.acquire("c1"))


def test_lease_expires_after_ttl():
    tick = Tick()
    guard = InMemoryLeaseGuard(ttl=5, clock=tick)
    stale = guard.acquire("c1")
    tick.t += 5.1
    fresh = guard.acquire("c1")
    # the expired holder must not free the new lease
    assert guard.release(stale) is False
    with pytest.raises(BusyError):
        guard.acquire("c1")
    assert guard.release(fresh) is True


def test_hold_releases_on_error():
    guard = InMemoryLeaseGuard(ttl=30)
    with pytest.raises(RuntimeError):
        with guard.hold("c1"):
            raise RuntimeError("boom")
    with guard.hold("c1") as lease:
        assert lease.campaign_id == "c1"


def test_only_one_thread_wins():
    guard = InMemoryLeaseGuard(ttl=30)
    start = threading.Event()
    wins, busy = [], []

    def worker():
        start.wait()
        try:
            wins.append(guard.acquire("c1"))
        except BusyError:
            busy.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    start.set()
    for t in threads:
        t.join()
    assert len(wins) == 1
    assert len(busy) == 7


def build_redis_guard(client):
    return RedisLeaseGuard(RedisKV(client=client, namespace="test"), ttl=2.5)


def test_redis_acquire_uses_set_nx_px():
    client = MagicMock()
    client.set.return_value = True
    guard = build_redis_guard(client)
    lease = guard.acquire("c1")
    args, kwargs = client.set.call_args
    assert args[0] == "test:ops:lease:campaign:c1"
    assert args[1] == lease.token
    assert kwargs == {"nx": True, "px": 2500}


def test_redis_acquire_busy_when_key_exists():
    client = MagicMock()
    client.set.return_value = None
    guard = build_redis_guard(client)
    with pytest.raises(BusyError):
        guard.acquire("c1")


def test_redis_release_runs_compare_and_delete():
    client = MagicMock()
    client.set.return_value = True
    script = MagicMock(return_value=1)
    client.register_script.return_value = script
    guard = build_redis_guard(client)
    lease = guard.acquire("c1")
    assert guard.release(lease) is True
    script.assert_called_once_with(keys=["test:ops:lease:campaign:c1"], args=[lease.token])
    script.return_value = 0
    assert guard.release(lease) is False


def test_redis_errors():
    client = MagicMock()
    client.set.side_effect = redis.ConnectionError("down")
    client.register_script.return_value = MagicMock(side_effect=redis.ConnectionError("down"))
    guard = build_redis_guard(client)
    with pytest.raises(AdapterError):
        guard.acquire("c1")
    from campaign_engine.scheduling.guard import LeaseToken
    assert guard.release(LeaseToken("c1", "t", 2.5)) is False


@pytest.mark.live_integration
def test_redis_guard_live():
    guard = RedisLeaseGuard(RedisKV(namespace="campaigns-test"), ttl=5)
    lease = guard.acquire("live-c1")
    try:
        with pytest.raises(BusyError):
            guard.acquire("live-c1")
    finally:
        assert guard.release(lease) is True
