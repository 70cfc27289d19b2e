import threading
from typing import Any, Dict, List

from campaign_engine.models import DeliveryOutcome


class NoOpPushAdapter:
    """A no-op push transport for tests and dry-run mode.

    Records every call in `sent` and reports one recipient per targeted room
    (or one for an untargeted broadcast). No side-effects beyond that.
    """

    def __init__(self, disabled: bool = False):
        self.disabled = disabled
        self.sent: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def send(self, message: Dict[str, Any], audience: Dict[str, Any]) -> DeliveryOutcome:
        if self.disabled:
            return DeliveryOutcome(delivered=False, recipient_count=0, error="delivery disabled")
        with self._lock:
            self.sent.append({"message": message, "audience": audience})
        rooms = (audience or {}).get("room_ids") or []
        return DeliveryOutcome(delivered=True, recipient_count=len(rooms) or 1)


__all__ = ["NoOpPushAdapter"]
