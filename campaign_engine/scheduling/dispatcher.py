from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from campaign_engine.exceptions import CampaignEngineError, ConflictError, DispatchError
from campaign_engine.models import Campaign, DeliveryOutcome
from campaign_engine.tools.delivery.interface import PushTransport
from campaign_engine.tools.persistence.service import CampaignStore

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    action: str  # "delivered" | "failed"
    detail: str
    outcome: DeliveryOutcome
    campaign: Campaign


def apply_delivery(campaign: Campaign, now: datetime) -> bool:
    """Record one successful delivery on ``campaign`` in place."""
    campaign.delivery_count += 1
    campaign.last_delivered_at = now
    if not campaign.is_recurring and campaign.status == "active":
        campaign.status = "completed"
    campaign.updated_at = now
    return True


class DeliveryDispatcher:
    """Sends one campaign through the push transport and records the outcome.

    No retries happen here: a failed send is reported and left for the next
    scheduler run (or an operator forced delivery) to pick up.
    """

    def __init__(self, store: CampaignStore, transport: PushTransport):
        self.store = store
        self.transport = transport

    def send(self, campaign: Campaign) -> DeliveryOutcome:
        """Hand the campaign to the transport; DispatchError if the transport itself blows up."""
        try:
            return self.transport.send(campaign.message, campaign.audience)
        except Exception as e:  # unreachable transport; normal failures come back as outcomes
            raise DispatchError(f"transport raised {type(e).__name__}: {e}") from e

    def dispatch(self, campaign: Campaign, now: datetime) -> DispatchResult:
        try:
            outcome = self.send(campaign)
        except DispatchError as e:
            logger.warning("campaign %s: %s", campaign.id, e)
            outcome = DeliveryOutcome(delivered=False, recipient_count=0, error=str(e))
        if not outcome.delivered:
            return DispatchResult("failed", outcome.error or "delivery failed", outcome, self._touch(campaign, now))

        try:
            saved = self._record_delivery(campaign, now)
        except ConflictError as e:
            return DispatchResult("failed", f"sent but not recorded (conflict): {e}", outcome, campaign)
        except CampaignEngineError as e:
            return DispatchResult("failed", f"sent but not recorded: {e}", outcome, campaign)
        return DispatchResult("delivered", f"recipients={outcome.recipient_count}", outcome, saved)

    def _record_delivery(self, campaign: Campaign, now: datetime) -> Campaign:
        candidate = campaign.copy()
        apply_delivery(candidate, now)
        try:
            return self.store.save(candidate)
        except ConflictError:
            # the send already happened: re-read and re-apply so the increment is not lost
            logger.info("campaign %s changed during dispatch, re-applying delivery", campaign.id)
            return self.store.update(campaign.id, lambda c: apply_delivery(c, now))

    def _touch(self, campaign: Campaign, now: datetime) -> Campaign:
        candidate = campaign.copy()
        candidate.updated_at = now
        try:
            return self.store.save(candidate)
        except CampaignEngineError as e:
            logger.warning("campaign %s: could not touch updated_at after failed send: %s", campaign.id, e)
            return campaign


__all__ = ["DeliveryDispatcher", "DispatchResult", "apply_delivery"]
