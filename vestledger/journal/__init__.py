"""
VestLedger Journal

Append-only, signed, hash-chained record of every state transition.
The journal is the engine's durable state: replaying it through a fresh
engine reproduces every record and treasury balance.
"""

from vestledger.journal.emitter import EventJournal
from vestledger.journal.entry import GENESIS_HASH, JOURNAL_VERSION, JournalEntry, RecordType
from vestledger.journal.replay import JournalReplay, JournalViolation, ReplaySummary

__all__ = [
    "EventJournal",
    "JournalEntry",
    "JournalReplay",
    "JournalViolation",
    "RecordType",
    "ReplaySummary",
    "GENESIS_HASH",
    "JOURNAL_VERSION",
]
