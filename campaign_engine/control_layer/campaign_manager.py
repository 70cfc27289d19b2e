from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import platform_monitoring
from campaign_engine.control_layer.audit import AuditStore
from campaign_engine.exceptions import BusyError, CampaignEngineError
from campaign_engine.models import Campaign, RunSummary
from campaign_engine.scheduling.dispatcher import DeliveryDispatcher
from campaign_engine.scheduling.due import is_due
from campaign_engine.scheduling.guard import DeliveryGuard
from campaign_engine.tools.delivery.interface import PushTransport
from campaign_engine.tools.persistence.service import CampaignStore


class CampaignManager:
    """Control plane for campaign delivery runs.

    Every call is a discrete unit of work that may overlap with other calls
    (an admin action racing the periodic trigger, or several processes on a
    shared store). Per run: capture ``now`` once, list campaigns, evaluate
    due-ness, take the campaign's lease, re-read and re-check under the
    lease, dispatch, release. Busy leases become ``skipped`` and dispatch
    failures become ``failed``; neither stops the run.
    """

    def __init__(
        self,
        store: CampaignStore,
        guard: DeliveryGuard,
        transport: Optional[PushTransport] = None,
        dispatcher: Optional[DeliveryDispatcher] = None,
        audit_store: Optional[AuditStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if dispatcher is None:
            if transport is None:
                raise ValueError("either a transport or a dispatcher is required")
            dispatcher = DeliveryDispatcher(store, transport)
        self.store = store
        self.guard = guard
        self.dispatcher = dispatcher
        self.audit_store = audit_store
        self.clock = clock or store.clock

    # -------- trigger surface --------
    def run_due(self, force: bool = False) -> RunSummary:
        """Deliver every campaign that is due right now."""
        summary = self._start("run", force)
        try:
            campaigns = self.store.list()
        except CampaignEngineError as e:
            self._fail(summary, e)
            raise
        for campaign in campaigns:
            self._process(campaign, summary)
        return self._finish(summary)

    def deliver(self, campaign_id: str, force: bool = False) -> RunSummary:
        """Deliver a single campaign if it is due (or forced). NotFoundError if unknown."""
        summary = self._start("deliver", force)
        campaign = self.store.get(campaign_id)
        self._process(campaign, summary)
        return self._finish(summary)

    def upsert_and_deliver(self, payload: Dict[str, Any], deliver: bool = False, force: bool = False) -> Dict[str, Any]:
        """Create/update a campaign, optionally delivering it straight away.

        Payload validation errors raise ValidationError before anything is
        written. ``delivery`` is a RunSummary when ``deliver`` is set.
        """
        result = self.store.upsert(payload)
        item = result.item
        delivery = None
        if deliver:
            delivery = self.deliver(item.id, force=force)
            if delivery.delivered:
                item = self.store.get(item.id)
        return {"created": result.created, "item": item, "delivery": delivery}

    # -------- pass-throughs --------
    def list_campaigns(self) -> List[Campaign]:
        return self.store.list()

    def get_campaign(self, campaign_id: str) -> Campaign:
        return self.store.get(campaign_id)

    def counts(self) -> Dict[str, Any]:
        return self.store.counts(self.clock())

    def list_runs(self) -> List[Dict[str, Any]]:
        return list(getattr(self.audit_store, "summaries", []))

    # -------- run internals --------
    def _start(self, kind: str, force: bool) -> RunSummary:
        now = self.clock()
        run_id = f"{kind}-{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4().hex[:8]}"
        platform_monitoring.log_event("scheduler.run.start", {"run_id": run_id, "forced": force})
        return RunSummary(run_id=run_id, started_at=now, forced=force)

    def _process(self, campaign: Campaign, summary: RunSummary) -> None:
        now = summary.started_at
        summary.checked += 1
        if not is_due(campaign, now, ignore_window=summary.forced):
            return
        summary.due += 1
        try:
            with self.guard.hold(campaign.id):
                action, detail = self._dispatch_locked(campaign.id, now, summary.forced)
        except BusyError as e:
            action, detail = "skipped", str(e)
        except CampaignEngineError as e:
            action, detail = "failed", str(e)
        summary.record(campaign.id, action, detail)
        platform_monitoring.prometheus_metric("campaign_deliveries", 1, {"action": action})
        platform_monitoring.log_event(
            "scheduler.campaign",
            {"run_id": summary.run_id, "campaign_id": campaign.id, "action": action, "detail": detail},
        )

    def _dispatch_locked(self, campaign_id: str, now: datetime, force: bool) -> Tuple[str, str]:
        # the listing may predate another run's delivery; decide again on fresh state
        fresh = self.store.get(campaign_id)
        if not is_due(fresh, now, ignore_window=force):
            return "skipped", "no longer due"
        result = self.dispatcher.dispatch(fresh, now)
        return result.action, result.detail

    def _finish(self, summary: RunSummary) -> RunSummary:
        platform_monitoring.log_event(
            "scheduler.run.finish",
            {
                "run_id": summary.run_id,
                "checked": summary.checked,
                "due": summary.due,
                "delivered": summary.delivered,
                "skipped": summary.skipped,
                "failed": summary.failed,
            },
        )
        if self.audit_store is not None:
            self.audit_store.save_summary(summary.run_id, summary.to_dict())
        return summary

    def _fail(self, summary: RunSummary, error: Exception) -> None:
        platform_monitoring.log_event("scheduler.run.error", {"run_id": summary.run_id, "error": str(error)})
        if self.audit_store is not None:
            self.audit_store.save_failure(summary.run_id, str(error))


CONTROL_CLASS = CampaignManager
