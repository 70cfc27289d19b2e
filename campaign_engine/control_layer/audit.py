from __future__ import annotations

import threading
from typing import Protocol, Dict, Any, List


class AuditStore(Protocol):
    """Protocol for persisting run summaries and run-level failures."""

    def save_summary(self, run_id: str, summary: Dict[str, Any]) -> None:
        ...

    def save_failure(self, run_id: str, error: str) -> None:
        ...


class InMemoryAuditStore:
    """Simple in-memory audit store for tests and local runs."""

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self.summaries: List[Dict[str, Any]] = []
        self.failures: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def save_summary(self, run_id: str, summary: Dict[str, Any]) -> None:
        with self._lock:
            self.summaries.append({"run_id": run_id, "summary": summary})
            del self.summaries[:-self.max_entries]

    def save_failure(self, run_id: str, error: str) -> None:
        with self._lock:
            self.failures.append({"run_id": run_id, "error": error})
            del self.failures[:-self.max_entries]


__all__ = ["AuditStore", "InMemoryAuditStore"]
