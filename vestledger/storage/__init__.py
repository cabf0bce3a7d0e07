"""
VestLedger Storage

Address-keyed record storage. The engine specifies the transitions;
the store only has to make each one atomic.
"""

from vestledger.storage.store import InMemoryRecordStore, RecordStore

__all__ = ["RecordStore", "InMemoryRecordStore"]
