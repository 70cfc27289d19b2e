from typing import Any, Callable, Dict
import threading
import traceback

import platform_monitoring


class PeriodicTrigger:
    """Simple in-process periodic trigger for campaign runs.

    This is only a caller of the entry point: it holds no scheduling state,
    and overlapping with manual triggers is safe because delivery leases are
    per campaign. Replace with cron or any external job runner in production.
    """

    def __init__(self):
        self.jobs: Dict[str, threading.Thread] = {}
        self._stops: Dict[str, threading.Event] = {}

    def schedule(self, name: str, interval_seconds: float, callback: Callable[..., Any], *args, **kwargs):
        if name in self.jobs:
            raise RuntimeError('job already scheduled')
        stop = threading.Event()

        def runner():
            while not stop.wait(interval_seconds):
                try:
                    callback(*args, **kwargs)
                except Exception:
                    platform_monitoring.log_event("trigger.job.error", {"job": name, "error": traceback.format_exc()})

        t = threading.Thread(target=runner, name=f"trigger-{name}", daemon=True)
        self.jobs[name] = t
        self._stops[name] = stop
        t.start()

    def cancel(self, name: str, timeout: float = 1.0) -> None:
        stop = self._stops.pop(name, None)
        thread = self.jobs.pop(name, None)
        if stop is not None:
            stop.set()
        if thread is not None:
            thread.join(timeout=timeout)

    def stop(self) -> None:
        for name in list(self.jobs):
            self.cancel(name)
