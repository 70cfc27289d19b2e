"""
Persistence tools for storing and retrieving campaigns and feed items.

This package provides a versioned keyed-store interface across different
storage backends (in-memory, Redis, Supabase).
"""

from campaign_engine.tools.persistence.service import (
    CampaignStore,
    NotificationFeedStore,
    RecordAdapter,
    RecordStore,
)

__all__ = [
    "CampaignStore",
    "NotificationFeedStore",
    "RecordAdapter",
    "RecordStore",
]
