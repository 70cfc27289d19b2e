"""Due evaluation for campaigns.

``is_due`` is pure: the same campaign snapshot and ``now`` always give the
same answer, and nothing is mutated. The scheduler captures ``now`` once per
run and calls this over the whole listing.

Delivery windows
----------------
A single-shot campaign (no ``recurrence``) has one window covering all time,
so it is due until it has been delivered once. A recurring campaign has one
window per key returned by its recurrence function; ``daily`` keys on the
calendar date in ``CAMPAIGN_WINDOW_TZ``. Extra cadences can be added with
``register_recurrence``.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List
from zoneinfo import ZoneInfo

from campaign_engine.config import engine_config as cfg
from campaign_engine.models import Campaign

WindowKey = Callable[[datetime], Hashable]

_RECURRENCES: Dict[str, WindowKey] = {}


def _window_tz() -> ZoneInfo:
    return ZoneInfo(cfg.CAMPAIGN_WINDOW_TZ)


def daily_window(ts: datetime) -> Hashable:
    return ts.astimezone(_window_tz()).date()


def register_recurrence(name: str, key_fn: WindowKey) -> None:
    """Register a recurrence cadence; ``key_fn`` maps a timestamp to its window key."""
    _RECURRENCES[name] = key_fn


def registered_recurrences() -> List[str]:
    return sorted(_RECURRENCES)


register_recurrence("daily", daily_window)


def delivered_in_window(campaign: Campaign, now: datetime) -> bool:
    last = campaign.last_delivered_at
    if last is None:
        return False
    if not campaign.is_recurring:
        return True
    key_fn = _RECURRENCES.get(campaign.recurrence)
    if key_fn is None:
        # a recurrence that is no longer registered degrades to single-shot
        return True
    return key_fn(last) == key_fn(now)


def has_push_channel(campaign: Campaign) -> bool:
    return any(c in cfg.PUSH_CHANNELS for c in campaign.channels)


def is_due(campaign: Campaign, now: datetime, ignore_window: bool = False) -> bool:
    """Return True if ``campaign`` is eligible for delivery at ``now``.

    ``ignore_window`` is the operator force override: it skips the
    already-delivered check and lets a ``completed`` campaign go out again.
    It never makes a draft, scheduled or paused campaign due.
    """
    allowed = ("active", "completed") if ignore_window else ("active",)
    if campaign.status not in allowed:
        return False
    if campaign.scheduled_at is not None and campaign.scheduled_at > now:
        return False
    if campaign.ends_at is not None and campaign.ends_at < now:
        return False
    if not has_push_channel(campaign):
        return False
    if ignore_window:
        return True
    return not delivered_in_window(campaign, now)


def due_campaigns(campaigns: Iterable[Campaign], now: datetime, ignore_window: bool = False) -> List[Campaign]:
    return [c for c in campaigns if is_due(c, now, ignore_window=ignore_window)]


__all__ = [
    "is_due",
    "due_campaigns",
    "delivered_in_window",
    "has_push_channel",
    "register_recurrence",
    "registered_recurrences",
    "daily_window",
]
