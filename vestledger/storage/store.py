"""
Record store for VestLedger.

Records are keyed by their derived address. The store does not know
how addresses are computed; it only guarantees:

    - insert_* is an atomic "create if absent" (False if occupied)
    - replace_schedule swaps a whole record in one step
    - locked(addr, ...) serializes every transition touching those
      records, so two claims on one schedule cannot both read the same
      total_withdrawn

Operations on different records never contend on a record lock.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from vestledger.core.models import VestingAuthority, VestingSchedule


class RecordStore:
    """Storage contract. Subclass to back the engine with another store."""

    def get_authority(self, address: str) -> Optional[VestingAuthority]:
        raise NotImplementedError

    def get_schedule(self, address: str) -> Optional[VestingSchedule]:
        raise NotImplementedError

    def insert_authority(self, record: VestingAuthority) -> bool:
        raise NotImplementedError

    def insert_schedule(self, record: VestingSchedule) -> bool:
        raise NotImplementedError

    def replace_schedule(self, record: VestingSchedule) -> None:
        raise NotImplementedError

    def authorities(self) -> List[VestingAuthority]:
        raise NotImplementedError

    def schedules(self) -> List[VestingSchedule]:
        raise NotImplementedError

    @contextmanager
    def locked(self, *addresses: str) -> Iterator[None]:
        raise NotImplementedError
        yield  # pragma: no cover


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed store with one lock per record address.

    Thread-safe within a single process. Record locks are created on
    first use and never dropped (records are never destroyed either).
    """

    def __init__(self) -> None:
        self._authorities:  Dict[str, VestingAuthority] = {}
        self._schedules:    Dict[str, VestingSchedule]  = {}
        self._record_locks: Dict[str, threading.RLock]  = {}
        self._guard:        threading.Lock              = threading.Lock()

    # ── Reads ─────────────────────────────────────────────────

    def get_authority(self, address: str) -> Optional[VestingAuthority]:
        with self._guard:
            return self._authorities.get(address)

    def get_schedule(self, address: str) -> Optional[VestingSchedule]:
        with self._guard:
            return self._schedules.get(address)

    def authorities(self) -> List[VestingAuthority]:
        with self._guard:
            return list(self._authorities.values())

    def schedules(self) -> List[VestingSchedule]:
        with self._guard:
            return list(self._schedules.values())

    # ── Writes ────────────────────────────────────────────────

    def insert_authority(self, record: VestingAuthority) -> bool:
        with self._guard:
            if record.address in self._authorities:
                return False
            self._authorities[record.address] = record
            return True

    def insert_schedule(self, record: VestingSchedule) -> bool:
        with self._guard:
            if record.address in self._schedules:
                return False
            self._schedules[record.address] = record
            return True

    def replace_schedule(self, record: VestingSchedule) -> None:
        with self._guard:
            if record.address not in self._schedules:
                raise KeyError(f"No schedule at {record.address}")
            self._schedules[record.address] = record

    # ── Locking ───────────────────────────────────────────────

    @contextmanager
    def locked(self, *addresses: str) -> Iterator[None]:
        """
        Hold the record locks for every address for the duration.

        Locks are taken in sorted address order so two transitions
        locking overlapping sets cannot deadlock.
        """
        locks = [self._lock_for(a) for a in sorted(set(addresses))]
        for lock in locks:
            lock.acquire()
        try:
            yield
        finally:
            for lock in reversed(locks):
                lock.release()

    def _lock_for(self, address: str) -> threading.RLock:
        with self._guard:
            lock = self._record_locks.get(address)
            if lock is None:
                lock = threading.RLock()
                self._record_locks[address] = lock
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._authorities) + len(self._schedules)
