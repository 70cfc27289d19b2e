"""Top-level platform monitoring helpers.

Usage: from platform_monitoring import log_event, prometheus_metric
"""
from .exporters import REGISTRY, log_event, metric_value, prometheus_metric

__all__ = ["REGISTRY", "log_event", "metric_value", "prometheus_metric"]
