from .campaign_manager import CampaignManager
from .scheduler import PeriodicTrigger
from .audit import InMemoryAuditStore

__all__ = ["CampaignManager", "PeriodicTrigger", "InMemoryAuditStore"]
