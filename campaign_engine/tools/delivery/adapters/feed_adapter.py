"""Push transport that writes campaigns into the notification feed.

This is how sponsored campaigns reach the mobile app today: every delivery
becomes a ``promo`` entry in the user-facing feed. A campaign targeted at
rooms gets one entry per room; an untargeted campaign gets one broadcast
entry.
"""
from __future__ import annotations

from typing import Any, Dict

from campaign_engine.exceptions import CampaignEngineError
from campaign_engine.models import DeliveryOutcome
from campaign_engine.tools.persistence.service import NotificationFeedStore

DEFAULT_ACTION_LABEL = "View"
DEFAULT_ACTION_HREF = "/mobile/explore"


class FeedPushAdapter:
    def __init__(self, feed: NotificationFeedStore):
        self.feed = feed

    def _entry(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "type": "promo",
            "unread": True,
            "time": "just now",
            "action_label": message.get("action_label") or DEFAULT_ACTION_LABEL,
            "action_href": message.get("action_href") or DEFAULT_ACTION_HREF,
            "media_url": message.get("media_url") or "",
            "media_kind": message.get("media_kind"),
        }

    def send(self, message: Dict[str, Any], audience: Dict[str, Any]) -> DeliveryOutcome:
        title = str(message.get("title") or "Sponsored")
        text = str(message.get("text") or message.get("message") or "")
        rooms = list((audience or {}).get("room_ids") or []) or [None]
        written = 0
        try:
            for room_id in rooms:
                self.feed.add(title, text, room_id=room_id, **self._entry(message))
                written += 1
        except CampaignEngineError as e:
            # partial writes are reported as a failure; the retry rewrites every room
            return DeliveryOutcome(delivered=False, recipient_count=written, error=str(e))
        return DeliveryOutcome(delivered=True, recipient_count=written)


__all__ = ["FeedPushAdapter"]
