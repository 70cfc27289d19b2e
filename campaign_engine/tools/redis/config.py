"""Central configuration for Redis key names used by the engine.

All values can be overridden by environment variables. Key builders return
names *without* the namespace prefix; `RedisKV.key` adds it.
"""
from __future__ import annotations

import os

NAMESPACE = os.getenv("REDIS_NAMESPACE", "campaigns")

# Record storage (one JSON string per record + newest-first id list)
RECORDS_PREFIX = os.getenv("REDIS_RECORDS_PREFIX", "records")
RECORDS_VERSION = os.getenv("REDIS_RECORDS_VERSION", "v1")

# Delivery leases
LEASE_PREFIX = os.getenv("REDIS_LEASE_PREFIX", "ops:lease")



def record_key(collection: str, record_id: str) -> str:
    return f"{RECORDS_PREFIX}:{collection}:{RECORDS_VERSION}:{record_id}"


def order_key(collection: str) -> str:
    return f"{RECORDS_PREFIX}:{collection}:{RECORDS_VERSION}:order"


def lease_key(scope: str, resource_id: str) -> str:
    return f"{LEASE_PREFIX}:{scope}:{resource_id}"


__all__ = [
    "NAMESPACE",
    "RECORDS_PREFIX",
    "RECORDS_VERSION",
    "LEASE_PREFIX",
    "record_key",
    "order_key",
    "lease_key",
]
