"""Redis connection wrapper shared by the record adapter and the lease guard.

Environment variables supported:
- REDIS_URL: full connection URL (preferred)
- REDIS_HOST (default: localhost)
- REDIS_PORT (default: 6379)
- REDIS_DB (default: 0)
- REDIS_PASSWORD (optional)
- REDIS_NAMESPACE (default: campaigns) used for namespacing keys
"""
from __future__ import annotations

import os
from typing import Any, Optional

import redis

from . import config as rconf


class RedisKV:
	"""Lightweight Redis client wrapper.

	If REDIS_URL is set, it is preferred (handles TLS via rediss://). Otherwise,
	falls back to host/port/db/password envs. An existing client may be passed
	in, which is how tests substitute a mock.
	"""

	def __init__(
		self,
		url: Optional[str] = None,
		host: Optional[str] = None,
		port: Optional[int] = None,
		db: Optional[int] = None,
		password: Optional[str] = None,
		namespace: Optional[str] = None,
		client: Optional[Any] = None,
	):
		self.ns = rconf.NAMESPACE if namespace is None else namespace
		if client is not None:
			self.client = client
			return
		url = url or os.getenv("REDIS_URL")
		if url:
			self.client = redis.from_url(url, decode_responses=True)
		else:
			self.client = redis.Redis(
				host=host or os.getenv("REDIS_HOST", "localhost"),
				port=int(port or os.getenv("REDIS_PORT", "6379")),
				db=int(db or os.getenv("REDIS_DB", "0")),
				password=password or os.getenv("REDIS_PASSWORD"),
				decode_responses=True,
			)

	def key(self, name: str) -> str:
		"""Prefix key with namespace."""
		return f"{self.ns}:{name}" if self.ns else name


__all__ = ["RedisKV"]
