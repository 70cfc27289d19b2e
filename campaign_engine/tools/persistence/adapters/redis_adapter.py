"""Redis record adapter.

Each record is one JSON string under ``records:<collection>:v1:<id>`` and a
per-collection list holds ids newest first. ``insert`` writes both in one
Lua script so a record never exists without its list entry. ``replace``
runs a WATCH/MULTI transaction on the record key, so a concurrent writer
between our read and our write aborts the transaction and surfaces as
ConflictError.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import redis

from campaign_engine.exceptions import ConflictError, NotFoundError
from campaign_engine.tools.redis import config as rconf
from campaign_engine.tools.redis.client import RedisKV


class RedisAdapter:
	# record and order list are written together or not at all
	INSERT_SCRIPT = """
	if redis.call("set", KEYS[1], ARGV[1], "NX") then
		redis.call("lpush", KEYS[2], ARGV[2])
		return 1
	end
	return 0
	"""

	def __init__(self, kv: Optional[RedisKV] = None):
		self.kv = kv or RedisKV()
		self._insert = self.kv.client.register_script(self.INSERT_SCRIPT)

	def _record_key(self, collection: str, record_id: str) -> str:
		return self.kv.key(rconf.record_key(collection, record_id))

	def _order_key(self, collection: str) -> str:
		return self.kv.key(rconf.order_key(collection))

	# -------------------------------------------------- Write Ops ---------
	def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
		rid = record.get("id")
		if not rid:
			raise ValueError("insert requires an id")
		stored = {**record, "version": 1}
		ok = self._insert(
			keys=[self._record_key(collection, rid), self._order_key(collection)],
			args=[json.dumps(stored, default=str), rid],
		)
		if int(ok or 0) != 1:
			raise ConflictError(f"{collection}/{rid} already exists")
		return stored

	def replace(self, collection: str, record: Dict[str, Any], expected_version: int) -> Dict[str, Any]:
		rid = record.get("id")
		key = self._record_key(collection, rid)
		stored = {**record, "version": int(expected_version) + 1}
		with self.kv.client.pipeline() as pipe:
			try:
				pipe.watch(key)
				raw = pipe.get(key)
				if raw is None:
					raise NotFoundError(f"{collection}/{rid} not found")
				current = json.loads(raw)
				if int(current.get("version") or 1) != int(expected_version):
					raise ConflictError(
						f"{collection}/{rid} modified concurrently (expected v{expected_version}, found v{current.get('version')})"
					)
				pipe.multi()
				pipe.set(key, json.dumps(stored, default=str))
				pipe.execute()
			except redis.WatchError as e:
				raise ConflictError(f"{collection}/{rid} modified concurrently") from e
		return stored

	# -------------------------------------------------- Read Ops ----------
	def read(self, collection: str, id_value: str) -> Optional[Dict[str, Any]]:
		raw = self.kv.client.get(self._record_key(collection, id_value))
		return json.loads(raw) if raw else None

	def list_all(self, collection: str) -> List[Dict[str, Any]]:
		ids = self.kv.client.lrange(self._order_key(collection), 0, -1) or []
		if not ids:
			return []
		raws = self.kv.client.mget([self._record_key(collection, rid) for rid in ids])
		return [json.loads(raw) for raw in raws if raw]


__all__ = ["RedisAdapter"]
