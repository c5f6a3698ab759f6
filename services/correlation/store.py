"""In-memory pending-image store keyed by sender."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from models.pending import PendingEntry


class CorrelationStore:
	"""Own every pending entry and its caption timer.

	All mutation goes through `put`, `take` and `cancel`, each atomic under one
	lock. `take` is the only way to resolve an entry, so a caption and an
	expiring timer racing for the same sender cannot both win.
	"""

	def __init__(self) -> None:
		self._entries: Dict[str, PendingEntry] = {}
		self._lock = threading.Lock()

	def put(self, sender: str, entry: PendingEntry) -> None:
		"""Insert or overwrite the entry for a sender.

		The prior entry's timer is not touched; callers dispose it first.
		"""
		with self._lock:
			self._entries[sender] = entry

	def get(self, sender: str) -> Optional[PendingEntry]:
		"""Return the pending entry for a sender without changing anything."""
		with self._lock:
			return self._entries.get(sender)

	def take(self, sender: str, expected: Optional[PendingEntry] = None) -> Optional[PendingEntry]:
		"""Remove and return the sender's entry, or None if there is nothing to resolve.

		With `expected`, the entry is only removed if it is that exact object;
		a replaced entry reports None to whoever still holds the old one.
		"""
		with self._lock:
			current = self._entries.get(sender)
			if current is None:
				return None
			if expected is not None and current is not expected:
				return None
			del self._entries[sender]
			return current

	def cancel(self, sender: str) -> bool:
		"""Drop the sender's entry and dispose its timer without resolving it."""
		with self._lock:
			entry = self._entries.pop(sender, None)
		if entry is None:
			return False
		entry.timer.cancel()
		return True

	def senders(self) -> List[str]:
		"""Snapshot of senders currently awaiting a caption."""
		with self._lock:
			return list(self._entries)

	def __len__(self) -> int:
		with self._lock:
			return len(self._entries)

	def __contains__(self, sender: object) -> bool:
		with self._lock:
			return sender in self._entries
