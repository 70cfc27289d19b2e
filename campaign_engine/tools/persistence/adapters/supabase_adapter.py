"""Supabase record adapter.

Implements the RecordAdapter contract using the official Supabase SDK, one
table per collection. Optimistic concurrency is an UPDATE filtered on both
``id`` and ``version``: zero affected rows means someone else saved first
(or the row is gone, which a follow-up read tells apart).

Notes
-----
- ``message`` / ``audience`` / ``channels`` are expected to be json/jsonb
	columns; the SDK serialises dicts and lists as-is.
- Listing falls back to PostgREST over ``requests`` when the SDK call fails,
	mirroring the ordering semantics (created_at desc).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
from supabase import create_client

from campaign_engine.exceptions import ConflictError, NotFoundError


def _data(resp: Any) -> Any:
	return getattr(resp, "data", None) if not isinstance(resp, dict) else resp.get("data")


class SupabaseAdapter:
	def __init__(self, url: str, key: str, client: Optional[Any] = None):
		self.url = url.rstrip("/")
		self.key = key
		self.client = client or create_client(url, key)

	# -------------------------------------------------- Write Ops ---------
	def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
		stored = {**record, "version": 1}
		data = _data(self.client.table(collection).insert(stored).execute())
		if isinstance(data, list) and data:
			return data[0]
		return stored

	def replace(self, collection: str, record: Dict[str, Any], expected_version: int) -> Dict[str, Any]:
		rid = record.get("id")
		stored = {**record, "version": int(expected_version) + 1}
		resp = (
			self.client.table(collection)
			.update(stored)
			.eq("id", rid)
			.eq("version", int(expected_version))
			.execute()
		)
		data = _data(resp)
		if isinstance(data, list) and data:
			return data[0]
		if self.read(collection, rid) is None:
			raise NotFoundError(f"{collection}/{rid} not found")
		raise ConflictError(f"{collection}/{rid} modified concurrently (expected v{expected_version})")

	# -------------------------------------------------- Read Ops ----------
	def read(self, collection: str, id_value: str) -> Optional[Dict[str, Any]]:
		resp = self.client.table(collection).select("*").eq("id", id_value).limit(1).execute()
		data = _data(resp)
		if isinstance(data, list) and data:
			return data[0]
		return None

	def list_all(self, collection: str) -> List[Dict[str, Any]]:
		try:
			resp = self.client.table(collection).select("*").order("created_at", desc=True).execute()
			data = _data(resp)
			return data if isinstance(data, list) else []
		except Exception:
			return self._rest_list(collection)

	# -------------------------------------------------- REST Fallbacks ----
	def _rest_headers(self) -> Dict[str, str]:
		return {
			"apikey": self.key,
			"Authorization": f"Bearer {self.key}",
			"Accept": "application/json",
			"Content-Type": "application/json",
		}

	def _rest_list(self, collection: str) -> List[Dict[str, Any]]:
		url = f"{self.url}/rest/v1/{collection}"
		params = {"select": "*", "order": "created_at.desc"}
		r = requests.get(url, headers=self._rest_headers(), params=params, timeout=15)
		r.raise_for_status()
		data = r.json()
		return data if isinstance(data, list) else []


__all__ = ["SupabaseAdapter"]
