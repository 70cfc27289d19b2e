"""Unified factory helpers for the campaign engine.

Purpose
-------
- Provide a single composition point for adapters -> stores -> guard ->
  transport -> CampaignManager.
- Keep env parsing and backend choice out of callers.
- Testability: swap every backend via `kind='memory'` without touching
  callers.

Backends
--------
- store:  'memory' | 'redis' | 'supabase'
- guard:  'memory' | 'redis'
- transport: 'feed' (writes into the notification feed) | 'noop'

The Redis guard is required whenever triggers can run in more than one
process; the in-memory guard only serialises callers inside one process.
"""

from __future__ import annotations

from typing import Optional

from config import settings
from campaign_engine.control_layer.audit import InMemoryAuditStore
from campaign_engine.control_layer.campaign_manager import CampaignManager
from campaign_engine.scheduling.guard import DeliveryGuard, InMemoryLeaseGuard
from campaign_engine.tools.delivery.adapters.feed_adapter import FeedPushAdapter
from campaign_engine.tools.delivery.adapters.noop_adapter import NoOpPushAdapter
from campaign_engine.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter
from campaign_engine.tools.persistence.service import CampaignStore, NotificationFeedStore, RecordAdapter


def build_adapter(kind: Optional[str] = None) -> RecordAdapter:
    kind = (kind or settings.CAMPAIGN_STORE_BACKEND).lower()
    if kind == "memory":
        return InMemoryAdapter()
    if kind == "redis":
        from campaign_engine.tools.persistence.adapters.redis_adapter import RedisAdapter
        from campaign_engine.tools.redis.client import RedisKV

        return RedisAdapter(RedisKV(url=settings.REDIS_URL))
    if kind == "supabase":
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise RuntimeError("SUPABASE_URL / SUPABASE_KEY not configured for persistence")
        from campaign_engine.tools.persistence.adapters.supabase_adapter import SupabaseAdapter

        return SupabaseAdapter(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    raise ValueError(f"Unknown persistence backend kind '{kind}'")


def build_guard(kind: Optional[str] = None, ttl: Optional[float] = None) -> DeliveryGuard:
    kind = (kind or settings.CAMPAIGN_GUARD_BACKEND).lower()
    if kind == "memory":
        return InMemoryLeaseGuard(ttl=ttl)
    if kind == "redis":
        from campaign_engine.scheduling.guard import RedisLeaseGuard
        from campaign_engine.tools.redis.client import RedisKV

        return RedisLeaseGuard(RedisKV(url=settings.REDIS_URL), ttl=ttl)
    raise ValueError(f"Unknown guard backend kind '{kind}'")


def create_campaign_manager(
    store_kind: Optional[str] = None,
    guard_kind: Optional[str] = None,
    transport_kind: Optional[str] = None,
    adapter: Optional[RecordAdapter] = None,
) -> CampaignManager:
    """Wire a CampaignManager; campaigns and the feed share one adapter."""
    adapter = adapter or build_adapter(store_kind)
    store = CampaignStore(adapter)
    transport_kind = (transport_kind or settings.CAMPAIGN_TRANSPORT).lower()
    if transport_kind == "feed":
        transport = FeedPushAdapter(NotificationFeedStore(adapter, clock=store.clock))
    elif transport_kind == "noop":
        transport = NoOpPushAdapter()
    else:
        raise ValueError(f"Unknown transport kind '{transport_kind}'")
    return CampaignManager(
        store,
        build_guard(guard_kind),
        transport=transport,
        audit_store=InMemoryAuditStore(),
    )


__all__ = ["build_adapter", "build_guard", "create_campaign_manager"]
