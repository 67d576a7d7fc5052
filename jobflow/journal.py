"""An in-memory event journal with per-id sequence numbers and snapshots."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from typing import Optional


class InMemoryJournal:
    """Append-only event logs keyed by persistence id, plus the latest snapshot of each."""

    def __init__(self) -> None:
        self._events: dict[str, list[tuple[int, bytes]]] = {}
        self._snapshots: dict[str, tuple[bytes, int]] = {}
        self._lock = threading.Lock()

    def persist(self, persistence_id: str, payload: bytes) -> int:
        """Append an event and return its sequence number (starting at 1)."""
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("journal payloads must be bytes")
        with self._lock:
            log = self._events.setdefault(persistence_id, [])
            seq = log[-1][0] + 1 if log else 1
            log.append((seq, bytes(payload)))
            return seq

    def replay(self, persistence_id: str, from_seq: int) -> Iterator[bytes]:
        """The payloads of events with a sequence number greater than `from_seq`, in order."""
        with self._lock:
            entries = list(self._events.get(persistence_id, ()))
        return (payload for seq, payload in entries if seq > from_seq)

    def save_snapshot(self, persistence_id: str, payload: bytes, seq: int) -> None:
        """Record a snapshot of state as of sequence number `seq`."""
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("journal payloads must be bytes")
        if seq < 0:
            raise ValueError("snapshot sequence number must not be negative")
        with self._lock:
            self._snapshots[persistence_id] = (bytes(payload), seq)

    def latest_snapshot(self, persistence_id: str) -> Optional[tuple[bytes, int]]:
        """The latest snapshot and its sequence number, or None."""
        with self._lock:
            return self._snapshots.get(persistence_id)