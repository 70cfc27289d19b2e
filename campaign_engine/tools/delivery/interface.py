from __future__ import annotations

from typing import Any, Dict, Protocol

from campaign_engine.models import DeliveryOutcome


class PushTransport(Protocol):
    """Protocol for push delivery transports.

    Implementations must provide a `send` method that accepts a campaign's
    message payload and its audience (both opaque to the engine) and returns
    a DeliveryOutcome. Ordinary delivery failures are reported through the
    outcome (`delivered=False`, `error=...`), not raised.
    """

    def send(self, message: Dict[str, Any], audience: Dict[str, Any]) -> DeliveryOutcome:
        ...


__all__ = ["PushTransport"]
