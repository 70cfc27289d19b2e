from __future__ import annotations

import logging
import os
import time
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, Type, TypeVar

from campaign_engine.config import engine_config as cfg
from campaign_engine.models import Campaign, NotificationItem, UpsertResult, iso, utc_now
from campaign_engine.utils.schemas import CampaignPayload, NotificationPayload, parse_payload
from campaign_engine.exceptions import AdapterError, CampaignEngineError, ConflictError, NotFoundError
from . import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T", Campaign, NotificationItem)


class RecordAdapter(Protocol):
    """Protocol for keyed record backends (in-memory / Redis / Supabase)."""

    def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]: ...
    def replace(self, collection: str, record: Dict[str, Any], expected_version: int) -> Dict[str, Any]: ...
    def read(self, collection: str, id_value: str) -> Optional[Dict[str, Any]]: ...
    def list_all(self, collection: str) -> List[Dict[str, Any]]: ...


class RecordStore(Generic[T]):
    """Versioned keyed store façade shared by campaigns and the notification feed.

    Responsibilities
    ----------------
    - Validate upsert payloads before anything is written.
    - Apply the field-level merge rule: only keys present in the payload
      overwrite; a supplied dict value replaces the stored one wholesale.
    - Route every mutation through ``save`` so lost updates raise
      ConflictError instead of silently overwriting.
    - Wrap adapter calls to add timing, metrics, and backend error wrapping.
    """

    record_cls: Type[T]
    payload_model: Type[Any]
    clearable: frozenset = frozenset()

    def __init__(
        self,
        adapter: RecordAdapter,
        collection: str,
        clock: Callable[[], datetime] = utc_now,
        save_retries: Optional[int] = None,
    ):
        self.adapter = adapter
        self.collection = collection
        self.clock = clock
        self.save_retries = cfg.STORE_SAVE_RETRIES if save_retries is None else save_retries

    # -------- subclass hooks --------
    def _new_item(self, fields: Dict[str, Any], now: datetime) -> T:
        raise NotImplementedError

    def _merge(self, item: T, fields: Dict[str, Any], now: datetime) -> bool:
        changed = False
        for name, value in fields.items():
            if getattr(item, name) != value:
                setattr(item, name, value)
                changed = True
        if changed:
            item.updated_at = now
        return changed

    # -------- internal helpers --------
    def _clean(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        # explicit nulls only clear fields that are optional on the record
        return {k: v for k, v in fields.items() if v is not None or k in self.clearable}

    # -------- read APIs --------
    def find(self, item_id: str) -> Optional[T]:
        rec = self._invoke("read", lambda: self.adapter.read(self.collection, item_id))
        return self.record_cls.from_record(rec) if rec else None

    def get(self, item_id: str) -> T:
        item = self.find(item_id)
        if item is None:
            raise NotFoundError(f"{self.collection}/{item_id} not found")
        return item

    def list(self) -> List[T]:
        rows = self._invoke("list", lambda: self.adapter.list_all(self.collection))
        items = [self.record_cls.from_record(r) for r in rows]
        # stable sort: ties keep the adapter's newest-first order
        items.sort(key=lambda i: i.created_at, reverse=True)
        return items

    # -------- write APIs --------
    def save(self, item: T) -> T:
        """Overwrite a previously read record; ConflictError if it changed since."""
        rec = item.to_record()
        stored = self._invoke("save", lambda: self.adapter.replace(self.collection, rec, item.version))
        return self.record_cls.from_record(stored)

    def update(self, item_id: str, mutate: Callable[[T], bool]) -> T:
        """Read-modify-save with conflict retries.

        ``mutate`` edits the fresh copy in place and returns False when it made
        no change, in which case nothing is written.
        """
        attempt = 0
        while True:
            current = self.get(item_id)
            candidate = current.copy()
            if mutate(candidate) is False:
                return current
            try:
                return self.save(candidate)
            except ConflictError:
                if attempt >= self.save_retries:
                    raise
                attempt += 1
                logger.debug("conflict saving %s/%s, retry %d", self.collection, item_id, attempt)

    def upsert(self, data: Dict[str, Any]) -> UpsertResult:
        payload = parse_payload(self.payload_model, data)
        fields = self._clean(payload.model_dump(exclude_unset=True, exclude={"id"}))
        now = self.clock()
        if payload.id and self.find(payload.id) is not None:
            item = self.update(payload.id, lambda cur: self._merge(cur, fields, now))
            return UpsertResult(created=False, item=item)
        item = self._new_item(fields, now)
        stored = self._invoke("insert", lambda: self.adapter.insert(self.collection, item.to_record()))
        return UpsertResult(created=True, item=self.record_cls.from_record(stored))

    # -------- instrumentation wrapper --------
    def _invoke(self, op: str, func: Callable[[], Any]):
        start = time.time()
        failed = False
        try:
            return func()
        except CampaignEngineError:
            failed = True
            raise
        except Exception as e:  # wrap generic adapter/backend exceptions
            failed = True
            raise AdapterError(f"Adapter error during {op} on {self.collection}: {e}") from e
        finally:
            duration = (time.time() - start) * 1000.0
            metrics.inc(op, self.collection, error=failed)
            metrics.observe(op, self.collection, duration)
            if os.environ.get("PERSIST_LOGGING"):
                logger.info("[persistence] op=%s collection=%s ms=%.1f", op, self.collection, duration)


class CampaignStore(RecordStore[Campaign]):
    """Durable keyed storage for campaigns: upsert, list, get, save."""

    record_cls = Campaign
    payload_model = CampaignPayload
    clearable = frozenset({"scheduled_at", "ends_at", "recurrence"})

    def __init__(self, adapter: RecordAdapter, collection: Optional[str] = None, **kwargs):
        super().__init__(adapter, collection or cfg.CAMPAIGNS_COLLECTION, **kwargs)

    def _new_item(self, fields: Dict[str, Any], now: datetime) -> Campaign:
        return Campaign(
            id=uuid.uuid4().hex,
            status=fields.get("status", cfg.DEFAULT_STATUS),
            message=fields.get("message", {}),
            audience=fields.get("audience", {}),
            created_at=now,
            updated_at=now,
            scheduled_at=fields.get("scheduled_at"),
            ends_at=fields.get("ends_at"),
            recurrence=fields.get("recurrence"),
            channels=fields.get("channels", list(cfg.DEFAULT_CHANNELS)),
            name=fields.get("name", ""),
            advertiser_name=fields.get("advertiser_name", ""),
            budget_tier=fields.get("budget_tier", cfg.DEFAULT_BUDGET_TIER),
        )

    def counts(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Dashboard counters: status buckets, pending campaigns and total pushes sent."""
        now = now or self.clock()
        items = self.list()
        by_status = {s: 0 for s in cfg.CAMPAIGN_STATUSES}
        pending = 0
        for c in items:
            by_status[c.status] = by_status.get(c.status, 0) + 1
            if c.status == "scheduled" or (
                c.status == "active" and c.scheduled_at is not None and c.scheduled_at > now
            ):
                pending += 1
        return {
            "total": len(items),
            "active": by_status["active"],
            "pending": pending,
            "paused": by_status["paused"],
            "completed": by_status["completed"],
            "total_sent": sum(c.delivery_count for c in items),
            "updated_at": iso(now),
        }


class NotificationFeedStore(RecordStore[NotificationItem]):
    """User-facing notification feed; same upsert/merge rule as campaigns, no due-time semantics."""

    record_cls = NotificationItem
    payload_model = NotificationPayload
    clearable = frozenset({"media_kind", "room_id", "campaign_id"})

    def __init__(self, adapter: RecordAdapter, collection: Optional[str] = None, **kwargs):
        super().__init__(adapter, collection or cfg.NOTIFICATIONS_COLLECTION, **kwargs)

    def _new_item(self, fields: Dict[str, Any], now: datetime) -> NotificationItem:
        return NotificationItem(id=uuid.uuid4().hex, created_at=now, updated_at=now, **{
            "title": "",
            "message": "",
            **fields,
        })

    def add(self, title: str, message: str, **fields: Any) -> NotificationItem:
        """Always create a new feed entry (newest first in ``list``)."""
        return self.upsert({"title": title, "message": message, **fields}).item


__all__ = ["RecordAdapter", "RecordStore", "CampaignStore", "NotificationFeedStore"]
