from campaign_engine.tools.delivery.interface import PushTransport
from campaign_engine.tools.delivery.adapters.noop_adapter import NoOpPushAdapter

__all__ = ["PushTransport", "NoOpPushAdapter"]
