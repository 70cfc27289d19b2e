"""Central configuration for the scheduling and delivery engine.

All values can be overridden by environment variables. Services must read
these through this module rather than hard-coding their own defaults.

Settings
--------
* GUARD_LEASE_TTL      -> seconds a delivery lease lives before it expires
* STORE_SAVE_RETRIES   -> re-read/re-apply attempts after a ConflictError
* CAMPAIGN_WINDOW_TZ   -> timezone used to cut recurring delivery windows
* CAMPAIGNS_COLLECTION / NOTIFICATIONS_COLLECTION -> storage collection names
"""

from __future__ import annotations

import os
from typing import List

# Lease TTL must stay above the expected dispatch latency.
GUARD_LEASE_TTL = float(os.getenv("GUARD_LEASE_TTL", "30"))

STORE_SAVE_RETRIES = int(os.getenv("STORE_SAVE_RETRIES", "3"))

CAMPAIGN_WINDOW_TZ = os.getenv("CAMPAIGN_WINDOW_TZ", "UTC")

CAMPAIGNS_COLLECTION = os.getenv("CAMPAIGNS_COLLECTION", "campaigns")
NOTIFICATIONS_COLLECTION = os.getenv("NOTIFICATIONS_COLLECTION", "notifications")

CAMPAIGN_STATUSES: List[str] = ["draft", "scheduled", "active", "paused", "completed"]
CAMPAIGN_CHANNELS: List[str] = ["push", "call", "hybrid"]
PUSH_CHANNELS: List[str] = ["push", "hybrid"]

DEFAULT_STATUS = "draft"
DEFAULT_CHANNELS: List[str] = ["push"]
DEFAULT_BUDGET_TIER = "basic"


__all__ = [
    "GUARD_LEASE_TTL",
    "STORE_SAVE_RETRIES",
    "CAMPAIGN_WINDOW_TZ",
    "CAMPAIGNS_COLLECTION",
    "NOTIFICATIONS_COLLECTION",
    "CAMPAIGN_STATUSES",
    "CAMPAIGN_CHANNELS",
    "PUSH_CHANNELS",
    "DEFAULT_STATUS",
    "DEFAULT_CHANNELS",
    "DEFAULT_BUDGET_TIER",
]
