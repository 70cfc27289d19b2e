from __future__ import annotations

from typing import Dict, Any, Union
import logging
import re
import threading

from prometheus_client import CollectorRegistry, Counter

_SECRET_KEY_RE = re.compile(r"(?i)(key|token|secret|authorization|apikey|api_key|password|passwd|bearer)")
_SECRET_VAL_RE = re.compile(r"(?i)^(?:sk|ghp|hf|xox|ya29|eyJ|pk_|rk_)[A-Za-z0-9\-\._]{8,}$")

logger = logging.getLogger('platform_monitoring')

# Dedicated registry so tests and embedding apps do not collide with the default one
REGISTRY = CollectorRegistry()
_counters: Dict[str, Counter] = {}
_counters_lock = threading.Lock()


def _mask_value(v: Any) -> Any:
    if isinstance(v, str):
        # mask long token-like strings
        if _SECRET_VAL_RE.search(v.strip()):
            return "***REDACTED***"
        if v.lower().startswith("bearer "):
            return "Bearer ***REDACTED***"
    return v


def _sanitize(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if _SECRET_KEY_RE.search(str(k)):
                out[k] = "***REDACTED***"
            else:
                out[k] = _sanitize(v)
        return out
    if isinstance(obj, list):
        return [_sanitize(x) for x in obj]
    return _mask_value(obj)


def log_event(event: Union[str, Dict[str, Any]], payload: Dict[str, Any] | None = None):
    """Log a monitoring event to the central logger.

    Flexible signature supports:
      - log_event({'event': 'name', ...})
      - log_event('name', {...}) (preferred)
    """
    if isinstance(event, str):
        record = {'event': event, **(payload or {})}
    else:
        record = event
    logger.info('MONITOR_EVENT %s', _sanitize(record))


def _counter(name: str, label_names: tuple) -> Counter:
    with _counters_lock:
        counter = _counters.get(name)
        if counter is None:
            counter = Counter(name, f'campaign engine counter {name}', list(label_names), registry=REGISTRY)
            _counters[name] = counter
        return counter


def prometheus_metric(name: str, value: float, labels: Dict[str, str] | None = None):
    """Increment counter `name` by `value`.

    Label names are fixed by the first call for a given metric name.
    """
    labels = labels or {}
    counter = _counter(name, tuple(sorted(labels)))
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)
    logger.debug('PROM_METRIC %s=%s labels=%s', name, value, labels)


def metric_value(name: str, labels: Dict[str, str] | None = None) -> float:
    """Current value of a counter (0.0 if never incremented)."""
    value = REGISTRY.get_sample_value(f'{name}_total', labels or {})
    return value or 0.0
