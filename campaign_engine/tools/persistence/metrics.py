"""Lightweight in-process metrics collectors for the campaign store.

Accumulates basic counters and latency aggregates per (operation,
collection) until a scrape-based backend is wired. Updates take a lock
because scheduler runs may overlap on several threads.
"""
from __future__ import annotations

import threading
from typing import Dict, Tuple

_lock = threading.Lock()
_counter: Dict[Tuple[str, str], int] = {}
_errors: Dict[Tuple[str, str], int] = {}
_latency: Dict[Tuple[str, str], Dict[str, float]] = {}


def inc(op: str, collection: str, error: bool = False):
    key = (op, collection)
    with _lock:
        _counter[key] = _counter.get(key, 0) + 1
        if error:
            _errors[key] = _errors.get(key, 0) + 1


def observe(op: str, collection: str, ms: float):  # min/max/count/total
    key = (op, collection)
    with _lock:
        bucket = _latency.setdefault(key, {"count": 0, "total": 0.0, "min": ms, "max": ms})
        bucket["count"] += 1
        bucket["total"] += ms
        bucket["min"] = min(bucket["min"], ms)
        bucket["max"] = max(bucket["max"], ms)


def snapshot():
    with _lock:
        out = []
        for (op, collection), c in _counter.items():
            row = {"op": op, "collection": collection, "count": c, "errors": _errors.get((op, collection), 0)}
            lat = _latency.get((op, collection))
            if lat:
                avg = lat["total"] / lat["count"] if lat["count"] else 0.0
                row.update({
                    "lat_min_ms": round(lat["min"], 2),
                    "lat_max_ms": round(lat["max"], 2),
                    "lat_avg_ms": round(avg, 2),
                })
            out.append(row)
    return sorted(out, key=lambda r: (r["op"], r["collection"]))


def reset():
    """Test helper: drop all collected values."""
    with _lock:
        _counter.clear()
        _errors.clear()
        _latency.clear()


__all__ = ["inc", "observe", "snapshot", "reset"]
