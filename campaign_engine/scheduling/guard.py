"""Delivery guard: per-campaign mutual-exclusion leases.

At most one dispatch per campaign id may be in flight at any instant. A
lease is a token with a bounded time-to-live, so a crashed or hung dispatch
frees the campaign once the TTL elapses. Force never bypasses the lease.

Usage:
    with guard.hold(campaign.id):
        dispatcher.dispatch(campaign, now)

``acquire`` raises BusyError when another caller holds a live lease;
``release`` only deletes the lease if the token still owns it, so a caller
whose lease already expired cannot free somebody else's.
"""
from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple

import redis

from campaign_engine.config import engine_config as cfg
from campaign_engine.exceptions import AdapterError, BusyError
from campaign_engine.tools.redis import config as rconf
from campaign_engine.tools.redis.client import RedisKV

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaseToken:
    campaign_id: str
    token: str
    ttl: float


class DeliveryGuard(Protocol):
    def acquire(self, campaign_id: str) -> LeaseToken: ...
    def release(self, lease: LeaseToken) -> bool: ...
    def hold(self, campaign_id: str): ...


class _LeaseGuard:
    ttl: float

    def acquire(self, campaign_id: str) -> LeaseToken:
        raise NotImplementedError

    def release(self, lease: LeaseToken) -> bool:
        raise NotImplementedError

    @contextmanager
    def hold(self, campaign_id: str) -> Iterator[LeaseToken]:
        lease = self.acquire(campaign_id)
        try:
            yield lease
        finally:
            if not self.release(lease):
                logger.warning("lease for campaign %s expired before release", campaign_id)


class InMemoryLeaseGuard(_LeaseGuard):
    """Process-local leases; enough when every trigger runs in one process."""

    def __init__(self, ttl: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = cfg.GUARD_LEASE_TTL if ttl is None else ttl
        self.clock = clock
        self._leases: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def acquire(self, campaign_id: str) -> LeaseToken:
        now = self.clock()
        with self._lock:
            held = self._leases.get(campaign_id)
            if held is not None and held[1] > now:
                raise BusyError(f"campaign {campaign_id} is being delivered")
            token = uuid.uuid4().hex
            self._leases[campaign_id] = (token, now + self.ttl)
        logger.debug("lease acquired campaign=%s ttl=%.1fs", campaign_id, self.ttl)
        return LeaseToken(campaign_id=campaign_id, token=token, ttl=self.ttl)

    def release(self, lease: LeaseToken) -> bool:
        with self._lock:
            held = self._leases.get(lease.campaign_id)
            if held is None or held[0] != lease.token:
                return False
            del self._leases[lease.campaign_id]
        return True


class RedisLeaseGuard(_LeaseGuard):
    """Leases shared across processes through Redis.

    Acquire is ``SET key token NX PX ttl``; release runs a Lua script that
    deletes the key only while it still holds our token.
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, kv: Optional[RedisKV] = None, ttl: Optional[float] = None, scope: str = "campaign"):
        self.kv = kv or RedisKV()
        self.ttl = cfg.GUARD_LEASE_TTL if ttl is None else ttl
        self.scope = scope
        self._release = self.kv.client.register_script(self.RELEASE_SCRIPT)

    def _key(self, campaign_id: str) -> str:
        return self.kv.key(rconf.lease_key(self.scope, campaign_id))

    def acquire(self, campaign_id: str) -> LeaseToken:
        token = uuid.uuid4().hex
        try:
            ok = self.kv.client.set(self._key(campaign_id), token, nx=True, px=int(self.ttl * 1000))
        except redis.RedisError as e:
            raise AdapterError(f"lease acquire failed for campaign {campaign_id}: {e}") from e
        if not ok:
            raise BusyError(f"campaign {campaign_id} is being delivered")
        logger.debug("lease acquired campaign=%s key=%s", campaign_id, self._key(campaign_id))
        return LeaseToken(campaign_id=campaign_id, token=token, ttl=self.ttl)

    def release(self, lease: LeaseToken) -> bool:
        try:
            return int(self._release(keys=[self._key(lease.campaign_id)], args=[lease.token])) == 1
        except redis.RedisError as e:
            # the lease still expires on its own TTL
            logger.error("lease release failed for campaign %s: %s", lease.campaign_id, e)
            return False


__all__ = ["LeaseToken", "DeliveryGuard", "InMemoryLeaseGuard", "RedisLeaseGuard"]
