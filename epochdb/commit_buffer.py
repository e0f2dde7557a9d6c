"""Per-epoch buffer that detects repeated writes to a row by one transaction.

A transaction has no commit point of its own here, so the buffer lives for
a whole epoch and is cleared, one slice per core, at the epoch boundary.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from .hashing import xxh32

PER_TXN_HASH_SIZE = 16
PENDING_VALUE: Any = object()


def _short_sid(sid: int) -> int:
    return sid & 0xFFFFFFFF


def _seq_of(sid: int) -> int:
    return ((1 << 24) - 1) & (((_short_sid(sid) >> 8) - 1) & 0xFFFFFFFF)


@dataclass(eq=False)
class CommitEntry:
    """A write of one transaction to one row.

    The first write's entry points to a duplicate entry once the row is
    written again; the duplicate counts all writes and holds the value.
    """

    row: Any
    short_sid: int
    wcnt: int = 1
    dup: Optional[CommitEntry] = None
    value: Any = None
    next: Optional[CommitEntry] = field(default=None, repr=False)


class CommitBuffer:
    """Hash tables of write references and of duplicate writes for an epoch."""

    def __init__(
        self,
        txn_per_epoch: int,
        nr_threads: int,
        ready_timeout: Optional[float] = None,
    ) -> None:
        if txn_per_epoch <= 0 or nr_threads <= 0:
            raise ValueError("txn_per_epoch and nr_threads must be positive")
        self.nr_threads = nr_threads
        self.ref_size = txn_per_epoch * PER_TXN_HASH_SIZE
        self.dup_size = txn_per_epoch
        self.ready_timeout = ready_timeout
        self._ref: dict[int, CommitEntry] = {}
        self._dup: dict[int, CommitEntry] = {}
        self._cond = threading.Condition()
        self._clear_refcnt = nr_threads

    @property
    def is_ready(self) -> bool:
        with self._cond:
            return self._clear_refcnt == 0

    def reset(self) -> None:
        """Mark the buffer dirty; every core must clear its slice again."""
        with self._cond:
            self._clear_refcnt = self.nr_threads

    def clear(self, core_id: int) -> None:
        """Clear the slice of both tables that belongs to core_id."""
        with self._cond:
            if self._clear_refcnt == 0:
                return
            for table, size in ((self._ref, self.ref_size), (self._dup, self.dup_size)):
                start = size * core_id // self.nr_threads
                end = size * (core_id + 1) // self.nr_threads
                for slot in [s for s in table if start <= s < end]:
                    del table[slot]
            self._clear_refcnt -= 1
            self._cond.notify_all()

    def _ensure_ready(self) -> None:
        if not self._cond.wait_for(lambda: self._clear_refcnt == 0, self.ready_timeout):
            raise TimeoutError("commit buffer was not cleared by every core")

    def _ref_slot(self, row: Any, seq: int) -> int:
        r = (id(row) >> 6).to_bytes(8, "little")
        h = seq * PER_TXN_HASH_SIZE + xxh32(r, seq) % (PER_TXN_HASH_SIZE - 1)
        return h % self.ref_size

    def add_ref(self, core_id: int, row: Any, sid: int) -> bool:
        """Record a write of sid to row; True if sid has written row before."""
        short_sid = _short_sid(sid)
        seq = _seq_of(sid)
        slot = self._ref_slot(row, seq)
        with self._cond:
            self._ensure_ready()
            prev: Optional[CommitEntry] = None
            p = self._ref.get(slot)
            while p is not None:
                if p.short_sid == short_sid and p.row is row:
                    if p.dup is not None:
                        p.dup.wcnt += 1
                        return True
                    break
                prev, p = p, p.next

            new_ent = CommitEntry(row, short_sid)
            if p is None:
                if prev is None:
                    self._ref[slot] = new_ent
                else:
                    prev.next = new_ent
                return False

            p.dup = new_ent
            dup_slot = seq % self.dup_size
            new_ent.next = self._dup.get(dup_slot)
            self._dup[dup_slot] = new_ent
            new_ent.value = PENDING_VALUE
            new_ent.wcnt += 1
            return True

    def lookup_duplicate(self, row: Any, sid: int) -> Optional[CommitEntry]:
        """Return the duplicate entry for row written by sid, if any."""
        short_sid = _short_sid(sid)
        with self._cond:
            p = self._dup.get(_seq_of(sid) % self.dup_size)
            while p is not None:
                if p.row is row and p.short_sid == short_sid:
                    return p
                p = p.next
        return None