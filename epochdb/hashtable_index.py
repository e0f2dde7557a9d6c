"""Tables and the hashtable index of rows keyed by short byte strings."""

from __future__ import annotations

import threading
import types
from typing import Any, Callable, Optional, Union

from .hashing import default_hash

AUTO_INCREMENT_ZONES = 2048
KEY_SIZE = 16

HashFunc = Callable[[bytes], int]
Key = Union[bytes, bytearray, memoryview, str]


def _as_bytes(key: Key) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


class Table:
    """Common state of every relation: id, flags and auto-increment counters."""

    def __init__(
        self,
        enable_inline: bool = False,
        node_id: int = 1,
        row_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.relation_id = -1
        self.read_only = False
        self.key_length = 0
        self.enable_inline = enable_inline
        self.node_id = node_id
        self._row_factory = row_factory
        self._counters = [0] * AUTO_INCREMENT_ZONES
        self._counter_lock = threading.Lock()

    def _check_zone(self, zone: int) -> None:
        if not 0 <= zone < AUTO_INCREMENT_ZONES:
            raise ValueError(f"zone {zone} overflows")

    def _stamp(self, ts: int) -> int:
        # The node id in the low byte keeps keys from different nodes apart.
        return (ts << 8) | (self.node_id & 0xFF)

    def auto_increment(self, zone: int = 0) -> int:
        """Return the next key of a zone, tagged with this node's id."""
        self._check_zone(zone)
        with self._counter_lock:
            ts = self._counters[zone]
            self._counters[zone] = ts + 1
        return self._stamp(ts)

    def current_auto_increment(self, zone: int = 0) -> int:
        """Return the key auto_increment would hand out next."""
        self._check_zone(zone)
        with self._counter_lock:
            return self._stamp(self._counters[zone])

    def reset_auto_increment(self, zone: int = 0, ts: int = 0) -> None:
        self._check_zone(zone)
        with self._counter_lock:
            self._counters[zone] = ts

    def _new_row(self) -> Any:
        if self._row_factory is not None:
            return self._row_factory()
        return types.SimpleNamespace(capacity=1, inline=self.enable_inline)


class _Entry:
    __slots__ = ("key", "row")

    def __init__(self, key: bytes, row: Any) -> None:
        self.key = key
        self.row = row


class HashtableIndex(Table):
    """Fixed number of buckets, each a chain of 16-byte keys and their rows.

    Keys are zero padded to 16 bytes, so keys that differ only in
    trailing zero bytes name the same row when they share a bucket.
    """

    def __init__(
        self,
        hash_func: HashFunc = default_hash,
        nr_buckets: int = 1 << 16,
        enable_inline: bool = False,
        node_id: int = 1,
        row_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        super().__init__(enable_inline, node_id, row_factory)
        if nr_buckets <= 0:
            raise ValueError("nr_buckets must be positive")
        self.hash = hash_func
        self.nr_buckets = nr_buckets
        self._buckets: dict[int, list[_Entry]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _convert(key: bytes) -> bytes:
        if len(key) > KEY_SIZE:
            raise ValueError(f"key of {len(key)} bytes is longer than {KEY_SIZE}")
        return key.ljust(KEY_SIZE, b"\0")

    def _bucket_of(self, key: bytes) -> int:
        return self.hash(key) % self.nr_buckets

    def search_or_create(self, key: Key) -> tuple[Any, bool]:
        """Return the row for key and whether it was created just now."""
        raw = _as_bytes(key)
        fixed = self._convert(raw)
        idx = self._bucket_of(raw)
        with self._lock:
            chain = self._buckets.setdefault(idx, [])
            for entry in chain:
                if entry.key == fixed:
                    return entry.row, False
            row = self._new_row()
            if hasattr(row, "capacity"):
                row.capacity = 1
            chain.append(_Entry(fixed, row))
            return row, True

    def search(self, key: Key) -> Any:
        """Return the row for key, or None if there is none."""
        raw = _as_bytes(key)
        fixed = self._convert(raw)
        with self._lock:
            for entry in self._buckets.get(self._bucket_of(raw), ()):
                if entry.key == fixed:
                    return entry.row
        return None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(chain) for chain in self._buckets.values())

    def __contains__(self, key: Key) -> bool:
        return self.search(key) is not None