"""Core records exchanged between the store, the scheduler and callers.

Campaigns are persisted as plain JSON-compatible dicts (ISO timestamps) so
every backend can store them unchanged; these dataclasses are the in-process
view. ``to_record`` / ``from_record`` convert between the two.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def utc_now() -> datetime:
    # Use timezone-aware UTC timestamps everywhere
    return datetime.now(timezone.utc)


def parse_ts(value: Any) -> Optional[datetime]:
    """Parse an ISO string (or pass through a datetime) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


_TS_FIELDS = ("scheduled_at", "ends_at", "last_delivered_at", "created_at", "updated_at")


@dataclass
class Campaign:
    """A stored push-notification job with targeting, content and scheduling state."""

    id: str
    status: str
    message: Dict[str, Any]
    audience: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    scheduled_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    recurrence: Optional[str] = None
    channels: List[str] = field(default_factory=lambda: ["push"])
    name: str = ""
    advertiser_name: str = ""
    budget_tier: str = "basic"
    last_delivered_at: Optional[datetime] = None
    delivery_count: int = 0
    version: int = 1

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None

    def copy(self) -> "Campaign":
        return copy.deepcopy(self)

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        for name in _TS_FIELDS:
            rec[name] = iso(rec[name])
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Campaign":
        data = dict(rec)
        for name in _TS_FIELDS:
            data[name] = parse_ts(data.get(name))
        data["message"] = dict(data.get("message") or {})
        data["audience"] = dict(data.get("audience") or {})
        data["channels"] = list(data.get("channels") or ["push"])
        data["delivery_count"] = int(data.get("delivery_count") or 0)
        data["version"] = int(data.get("version") or 1)
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class NotificationItem:
    """User-facing notification feed entry (sibling of campaigns, no due-time semantics)."""

    id: str
    title: str
    message: str
    created_at: datetime
    updated_at: datetime
    type: str = "system"
    unread: bool = True
    time: str = "just now"
    action_label: str = ""
    action_href: str = ""
    media_url: str = ""
    media_kind: Optional[str] = None
    room_id: Optional[str] = None
    campaign_id: Optional[str] = None
    version: int = 1

    def copy(self) -> "NotificationItem":
        return copy.deepcopy(self)

    def to_record(self) -> Dict[str, Any]:
        rec = asdict(self)
        rec["created_at"] = iso(self.created_at)
        rec["updated_at"] = iso(self.updated_at)
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "NotificationItem":
        data = dict(rec)
        data["created_at"] = parse_ts(data.get("created_at"))
        data["updated_at"] = parse_ts(data.get("updated_at"))
        data["version"] = int(data.get("version") or 1)
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result returned by a push transport's ``send``."""

    delivered: bool
    recipient_count: int = 0
    error: Optional[str] = None


@dataclass
class UpsertResult:
    created: bool
    item: Any

    def to_dict(self) -> Dict[str, Any]:
        item = self.item.to_record() if hasattr(self.item, "to_record") else self.item
        return {"created": self.created, "item": item}


@dataclass
class RunItem:
    id: str
    action: str  # "delivered" | "skipped" | "failed"
    detail: str = ""


@dataclass
class RunSummary:
    """Aggregate report of one scheduler invocation."""

    run_id: str
    started_at: datetime
    forced: bool = False
    checked: int = 0
    due: int = 0
    delivered: int = 0
    skipped: int = 0
    failed: int = 0
    items: List[RunItem] = field(default_factory=list)

    def record(self, campaign_id: str, action: str, detail: str = "") -> None:
        if action == "delivered":
            self.delivered += 1
        elif action == "skipped":
            self.skipped += 1
        elif action == "failed":
            self.failed += 1
        else:
            raise ValueError(f"unknown run action: {action}")
        self.items.append(RunItem(id=campaign_id, action=action, detail=detail))

    def item_for(self, campaign_id: str) -> Optional[RunItem]:
        for item in self.items:
            if item.id == campaign_id:
                return item
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": iso(self.started_at),
            "forced": self.forced,
            "checked": self.checked,
            "due": self.due,
            "delivered": self.delivered,
            "skipped": self.skipped,
            "failed": self.failed,
            "items": [asdict(i) for i in self.items],
        }


__all__ = [
    "Campaign",
    "NotificationItem",
    "DeliveryOutcome",
    "UpsertResult",
    "RunItem",
    "RunSummary",
    "utc_now",
    "parse_ts",
    "iso",
]
