"""In-memory record adapter.

Test/dev backend implementing the RecordAdapter contract. Records live in
per-collection dicts guarded by a single lock, so overlapping scheduler runs
on several threads see the same optimistic-concurrency behaviour as the
Redis and Supabase backends.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, List, Optional

from campaign_engine.exceptions import ConflictError, NotFoundError


class InMemoryAdapter:
	def __init__(self) -> None:
		self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
		self._lock = threading.Lock()

	# Internal helpers --------------------------------------------------
	def _ensure(self, collection: str) -> Dict[str, Dict[str, Any]]:
		return self._collections.setdefault(collection, {})

	def clear_collections(self) -> None:
		"""Test helper: reset all stored rows across all collections."""
		with self._lock:
			self._collections.clear()

	# Write ops ---------------------------------------------------------
	def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
		rid = record.get("id")
		if not rid:
			raise ValueError("insert requires an id")
		stored = copy.deepcopy({**record, "version": 1})
		with self._lock:
			rows = self._ensure(collection)
			if rid in rows:
				raise ConflictError(f"{collection}/{rid} already exists")
			rows[rid] = stored
		return copy.deepcopy(stored)

	def replace(self, collection: str, record: Dict[str, Any], expected_version: int) -> Dict[str, Any]:
		rid = record.get("id")
		with self._lock:
			rows = self._ensure(collection)
			current = rows.get(rid)
			if current is None:
				raise NotFoundError(f"{collection}/{rid} not found")
			if int(current.get("version") or 1) != int(expected_version):
				raise ConflictError(
					f"{collection}/{rid} modified concurrently (expected v{expected_version}, found v{current.get('version')})"
				)
			stored = copy.deepcopy({**record, "version": int(expected_version) + 1})
			rows[rid] = stored
		return copy.deepcopy(stored)

	# Read ops ----------------------------------------------------------
	def read(self, collection: str, id_value: str) -> Optional[Dict[str, Any]]:
		with self._lock:
			row = self._ensure(collection).get(id_value)
			return copy.deepcopy(row) if row is not None else None

	def list_all(self, collection: str) -> List[Dict[str, Any]]:
		# newest insert first; dicts keep insertion order
		with self._lock:
			rows = list(self._ensure(collection).values())
		return [copy.deepcopy(r) for r in reversed(rows)]


__all__ = ["InMemoryAdapter"]
